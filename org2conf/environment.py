"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import os
from typing import overload


class ArgumentError(ValueError):
    "Raised when wrong arguments are passed to a function call."


class PageError(ValueError):
    "Raised in case there is an issue with a Confluence page."


class ConfluenceError(RuntimeError):
    "Raised when a Confluence API call fails."


@overload
def _validate_domain(domain: str) -> str: ...


@overload
def _validate_domain(domain: str | None) -> str | None: ...


def _validate_domain(domain: str | None) -> str | None:
    if domain is None:
        return None

    if domain.startswith(("http://", "https://")) or domain.endswith("/"):
        raise ArgumentError("Confluence domain looks like a URL; only host name required")

    return domain


@overload
def _validate_base_path(base_path: str) -> str: ...


@overload
def _validate_base_path(base_path: str | None) -> str | None: ...


def _validate_base_path(base_path: str | None) -> str | None:
    if base_path is None:
        return None

    if not base_path.startswith("/") or not base_path.endswith("/"):
        raise ArgumentError("Confluence base path must start and end with a '/'")

    return base_path


def _parse_timeout(timeout: str | None) -> float | None:
    if timeout is None:
        return None

    try:
        value = float(timeout)
    except ValueError:
        raise ArgumentError(f"Confluence request timeout must be a number of seconds; got: {timeout}") from None

    if value <= 0:
        raise ArgumentError("Confluence request timeout must be positive")
    return value


class ConnectionProperties:
    """
    Properties related to connecting to Confluence.

    :param domain: Domain name for Confluence site, e.g. `example.atlassian.net`.
    :param base_path: Base path for Confluence site, e.g. `/wiki/`.
    :param space_key: Default Confluence space key (unless the document declares one).
    :param user_name: Confluence user name. When omitted, the API key is sent as a bearer token.
    :param api_key: Confluence API key (or password).
    :param timeout: Timeout for each REST API call [s].
    :param headers: Additional HTTP headers to pass to Confluence REST API calls.
    """

    domain: str
    base_path: str
    space_key: str | None
    user_name: str | None
    api_key: str
    timeout: float
    headers: dict[str, str] | None

    def __init__(
        self,
        *,
        domain: str | None = None,
        base_path: str | None = None,
        space_key: str | None = None,
        user_name: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        opt_domain = domain or os.getenv("CONFLUENCE_DOMAIN")
        opt_base_path = base_path or os.getenv("CONFLUENCE_PATH")
        opt_space_key = space_key or os.getenv("CONFLUENCE_SPACE_KEY")
        opt_user_name = user_name or os.getenv("CONFLUENCE_USER_NAME")
        opt_api_key = api_key or os.getenv("CONFLUENCE_API_KEY")
        opt_timeout = timeout or _parse_timeout(os.getenv("CONFLUENCE_TIMEOUT"))

        if not opt_api_key:
            raise ArgumentError("Confluence API key not specified")
        if not opt_domain:
            raise ArgumentError("Confluence domain not specified")
        if not opt_base_path:
            opt_base_path = "/wiki/"

        self.domain = _validate_domain(opt_domain)
        self.base_path = _validate_base_path(opt_base_path)
        self.space_key = opt_space_key
        self.user_name = opt_user_name
        self.api_key = opt_api_key
        self.timeout = opt_timeout or 3.0
        self.headers = headers


class JiraServerProperties:
    """
    Identifies the Jira server that Jira issue lists and charts embedded in a page query.

    :param name: Application link name of the Jira server, as shown in Confluence.
    :param server_id: Application link identifier of the Jira server.
    """

    name: str
    server_id: str

    def __init__(self, name: str | None = None, server_id: str | None = None) -> None:
        self.name = name or os.getenv("JIRA_SERVER_NAME") or ""
        self.server_id = server_id or os.getenv("JIRA_SERVER_ID") or ""
