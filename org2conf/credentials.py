"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import getpass
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from .environment import ArgumentError
from .serializer import json_payload_to_object, object_to_json_payload

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    """
    Credentials for a Confluence site.

    :param user_name: Confluence user name, or `None` to authenticate with a bearer token.
    :param api_key: Confluence API key (or password, or personal access token).
    """

    user_name: str | None
    api_key: str


def _default_cache_path() -> Path:
    cache_home = os.getenv("XDG_CACHE_HOME")
    base_dir = Path(cache_home) if cache_home else Path.home() / ".cache"
    return base_dir / "org2conf" / "credentials.json"


class CredentialCache:
    """
    Persists credentials between invocations, one entry per Confluence domain.

    The cache file is readable and writable only by the owner.
    """

    path: Path

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or _default_cache_path()

    def _read(self) -> dict[str, Credentials]:
        if not self.path.exists():
            return {}
        return json_payload_to_object(dict[str, Credentials], self.path.read_bytes())

    def load(self, domain: str) -> Credentials | None:
        "Returns cached credentials for a Confluence domain, if any."

        credentials = self._read().get(domain)
        if credentials is not None:
            LOGGER.debug("Using cached credentials for %s", domain)
        return credentials

    def store(self, domain: str, credentials: Credentials) -> None:
        "Saves credentials for a Confluence domain, replacing earlier credentials for the same domain."

        entries = self._read()
        entries[domain] = credentials

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(object_to_json_payload(entries))
        os.chmod(self.path, 0o600)
        LOGGER.info("Saved credentials for %s to %s", domain, self.path)

    def clear(self) -> bool:
        "Removes all cached credentials. Returns whether there were any."

        if not self.path.exists():
            return False
        self.path.unlink()
        LOGGER.info("Removed cached credentials: %s", self.path)
        return True


def prompt_credentials(
    domain: str,
    user_name: str | None,
    *,
    ask: Callable[[str], str] = input,
    ask_secret: Callable[[str], str] = getpass.getpass,
) -> Credentials:
    "Asks the user for credentials on the terminal."

    if not user_name:
        user_name = ask(f"Confluence user name for {domain} (leave empty for a personal access token): ").strip() or None
    api_key = ask_secret(f"Confluence API key for {domain}: ").strip()
    if not api_key:
        raise ArgumentError("Confluence API key not specified")
    return Credentials(user_name, api_key)


def resolve_credentials(
    domain: str,
    user_name: str | None,
    api_key: str | None,
    cache: CredentialCache,
    prompt: Callable[[str, str | None], Credentials] = prompt_credentials,
) -> Credentials:
    """
    Finds the credentials to connect with.

    An explicit API key wins; otherwise cached credentials are used; otherwise the user is prompted, and the answer is
    cached.

    :param domain: Confluence domain the credentials are for.
    :param user_name: User name from command-line arguments or environment, if any.
    :param api_key: API key from command-line arguments or environment, if any.
    :param cache: Credential store.
    :param prompt: Function that asks the user for credentials.
    """

    if api_key:
        return Credentials(user_name, api_key)

    cached = cache.load(domain)
    if cached is not None and (not user_name or user_name == cached.user_name):
        return cached

    credentials = prompt(domain, user_name)
    cache.store(domain, credentials)
    return credentials
