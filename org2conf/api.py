"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import enum
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any, TypeVar, overload
from urllib.parse import urlencode, urlparse, urlunparse

import requests
from cattrs.errors import BaseValidationError

from .environment import ArgumentError, ConfluenceError, ConnectionProperties, PageError
from .metadata import ConfluenceSiteMetadata
from .serializer import JsonType, json_to_object, object_to_json_payload

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@enum.unique
class ConfluenceRepresentation(enum.Enum):
    STORAGE = "storage"


@dataclass(frozen=True)
class ConfluenceSpace:
    key: str


@dataclass(frozen=True)
class ConfluenceContentVersion:
    number: int
    message: str = ""


@dataclass(frozen=True)
class ConfluencePageSnapshot:
    """
    Current state of a Confluence page, as fetched before an update.

    :param id: Confluence page ID.
    :param title: Page title.
    :param version: Current version of the page; an update must submit the next version number.
    :param space: Space the page belongs to, if returned by the server.
    """

    id: str
    title: str
    version: ConfluenceContentVersion
    space: ConfluenceSpace | None = None


@dataclass(frozen=True)
class ConfluenceAttachment:
    """
    An attachment of a Confluence page.

    :param id: Attachment ID, e.g. `att123456`.
    :param title: File name of the attachment.
    """

    id: str
    title: str


@dataclass(frozen=True)
class ConfluencePageStorage:
    representation: ConfluenceRepresentation
    value: str


@dataclass(frozen=True)
class ConfluencePageBody:
    storage: ConfluencePageStorage


@dataclass(frozen=True)
class ConfluenceUpdatePageRequest:
    id: str
    type: str
    title: str
    space: ConfluenceSpace
    body: ConfluencePageBody
    version: ConfluenceContentVersion


def find_attachment_id(attachments: list[ConfluenceAttachment], filename: str) -> str | None:
    """
    Looks up the ID of an attachment by file name.

    :param attachments: Attachments of a page.
    :param filename: File name to look for (exact match).
    :returns: ID of the first attachment with the given name, or `None` if a new attachment is to be created.
    """

    for attachment in attachments:
        if attachment.title == filename:
            return attachment.id
    return None


def build_url(base_url: str, query: dict[str, str] | None = None) -> str:
    "Builds a URL with scheme, host, port, path and query string parameters."

    scheme, netloc, path, params, query_str, fragment = urlparse(base_url)

    if params:
        raise ValueError("expected: url with no parameters")
    if query_str:
        raise ValueError("expected: url with no query string")
    if fragment:
        raise ValueError("expected: url with no fragment")

    url_parts = (scheme, netloc, path, None, urlencode(query) if query else None, None)
    return urlunparse(url_parts)


@overload
def response_cast(response_type: None, response: requests.Response) -> None: ...


@overload
def response_cast(response_type: type[T], response: requests.Response) -> T: ...


def response_cast(response_type: type[T] | None, response: requests.Response) -> T | None:
    "Converts a response body into the expected type."

    if response.text:
        LOGGER.debug("Received HTTP payload:\n%s", response.text)
    response.raise_for_status()
    if response_type is None:
        return None

    try:
        return json_to_object(response_type, response.json())
    except BaseValidationError as e:
        raise ConfluenceError(f"unexpected response from Confluence: {e}") from e


class ConfluenceAPI:
    """
    Represents an active connection to a Confluence server.

    Use as a context manager, which yields a session on entry and closes it on exit.
    """

    properties: ConnectionProperties
    session: "ConfluenceSession | None" = None

    def __init__(self, properties: ConnectionProperties | None = None) -> None:
        self.properties = properties or ConnectionProperties()

    def __enter__(self) -> "ConfluenceSession":
        session = requests.Session()
        if self.properties.user_name:
            session.auth = (self.properties.user_name, self.properties.api_key)
        else:
            session.headers.update({"Authorization": f"Bearer {self.properties.api_key}"})

        if self.properties.headers:
            session.headers.update(self.properties.headers)

        self.session = ConfluenceSession(
            session,
            domain=self.properties.domain,
            base_path=self.properties.base_path,
            space_key=self.properties.space_key,
            timeout=self.properties.timeout,
        )
        return self.session

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None


class ConfluenceSession:
    """
    Information about an open session to a Confluence server.

    Each call is a single blocking HTTP request with a fixed timeout; failed calls raise `requests` exceptions and are
    never retried.
    """

    session: requests.Session
    site: ConfluenceSiteMetadata
    timeout: float

    _api_url: str

    def __init__(
        self,
        session: requests.Session,
        *,
        domain: str | None,
        base_path: str | None,
        space_key: str | None,
        timeout: float = 3.0,
    ) -> None:
        if not domain:
            raise ArgumentError("Confluence domain not specified")
        if not base_path:
            raise ArgumentError("Confluence base path not specified")

        self.session = session
        self.site = ConfluenceSiteMetadata(domain, base_path, space_key)
        self.timeout = timeout
        self._api_url = f"https://{domain}{base_path}rest/api"
        LOGGER.debug("Configured Confluence REST API URL: %s", self._api_url)

    def close(self) -> None:
        self.session.close()
        self.session = requests.Session()

    def _build_url(self, path: str, query: dict[str, str] | None = None) -> str:
        """
        Builds a full URL for invoking the Confluence API.

        :param path: Path of API endpoint to invoke.
        :param query: Query parameters to pass to the API endpoint.
        :returns: A full URL.
        """

        return build_url(f"{self._api_url}{path}", query)

    def _get(self, path: str, response_type: type[T], *, query: dict[str, str] | None = None) -> T:
        "Retrieves an object via Confluence REST API."

        url = self._build_url(path, query)
        response = self.session.get(url, headers={"Accept": "application/json"}, timeout=self.timeout, verify=True)
        return response_cast(response_type, response)

    @overload
    def _put(self, path: str, body: Any, response_type: None) -> None: ...

    @overload
    def _put(self, path: str, body: Any, response_type: type[T]) -> T: ...

    def _put(self, path: str, body: Any, response_type: type[T] | None) -> T | None:
        "Updates an existing object via Confluence REST API."

        url = self._build_url(path)
        headers = {"Content-Type": "application/json"}
        if response_type is not None:
            headers["Accept"] = "application/json"
        data = object_to_json_payload(body)
        LOGGER.debug("Sending HTTP payload:\n%s", data.decode("utf-8"))
        response = self.session.put(url, data=data, headers=headers, timeout=self.timeout, verify=True)
        return response_cast(response_type, response)

    def _fetch(self, path: str, query: dict[str, str] | None = None) -> list[JsonType]:
        "Retrieves all results of a paginated result-set."

        items: list[JsonType] = []

        # offset-based pagination with start and limit parameters
        start = 0
        limit = 50

        while True:
            page_query = dict(query) if query else {}
            page_query["start"] = str(start)
            page_query["limit"] = str(limit)

            data = self._get(path, dict[str, JsonType], query=page_query)
            results = data.get("results")
            if not isinstance(results, list):
                raise ConfluenceError(f"expected: `results` array in paginated response from {path}")
            items.extend(results)

            # end pagination when fewer results are received than the limit
            if len(results) < limit:
                break

            start += limit

        return items

    def get_page_snapshot(self, page_id: str) -> ConfluencePageSnapshot:
        """
        Retrieves the title and current version number of a Confluence page.

        :param page_id: The Confluence page ID.
        :returns: Page title and version.
        """

        LOGGER.info("Fetching page: %s", page_id)
        path = f"/content/{page_id}"
        query = {"expand": "version.number"}
        return self._get(path, ConfluencePageSnapshot, query=query)

    def get_attachments(self, page_id: str) -> list[ConfluenceAttachment]:
        """
        Retrieves the attachments of a Confluence page, in the order returned by the server.

        :param page_id: The Confluence page ID.
        """

        LOGGER.info("Fetching attachments of page: %s", page_id)
        path = f"/content/{page_id}/child/attachment"
        results = self._fetch(path)
        try:
            return json_to_object(list[ConfluenceAttachment], results)
        except BaseValidationError as e:
            raise ConfluenceError(f"unexpected attachment list for page {page_id}: {e}") from e

    def upload_attachment(
        self,
        page_id: str,
        attachment_path: Path,
        *,
        attachment_name: str | None = None,
        attachment_id: str | None = None,
        comment: str | None = None,
    ) -> None:
        """
        Uploads a file as a page attachment.

        :param page_id: Confluence page ID.
        :param attachment_path: Path to the file to upload.
        :param attachment_name: Name of the attachment; defaults to the file name.
        :param attachment_id: ID of an existing attachment to replace, or `None` to create a new attachment.
        :param comment: Attachment description.
        """

        if not attachment_path.is_file():
            raise PageError(f"file not found: {attachment_path}")

        name = attachment_name or attachment_path.name
        content_type, _ = mimetypes.guess_type(name, strict=True)
        if content_type is None:
            content_type = "application/octet-stream"

        if attachment_id is not None:
            id = attachment_id.removeprefix("att")
            path = f"/content/{page_id}/child/attachment/{id}/data"
        else:
            path = f"/content/{page_id}/child/attachment"
        url = self._build_url(path)

        with open(attachment_path, "rb") as attachment_file:
            file_to_upload: dict[str, tuple[str | None, Any, str, dict[str, str]]] = {
                "file": (
                    name,
                    attachment_file,
                    content_type,
                    {"Expires": "0"},
                ),
            }
            if comment is not None:
                file_to_upload["comment"] = (None, comment, "text/plain; charset=utf-8", {})

            if attachment_id is not None:
                LOGGER.info("Replacing attachment: %s", name)
            else:
                LOGGER.info("Uploading attachment: %s", name)
            response = self.session.post(
                url,
                files=file_to_upload,
                headers={
                    "X-Atlassian-Token": "no-check",
                    "Accept": "application/json",
                },
                timeout=self.timeout,
                verify=True,
            )

        response_cast(None, response)

    def update_page(
        self,
        page_id: str,
        content: str,
        *,
        title: str,
        space_key: str,
        version: int,
        message: str,
    ) -> None:
        """
        Updates the content of a page.

        The server rejects the update if `version` is not the successor of the current version of the page.

        :param page_id: The Confluence page ID.
        :param content: Confluence Storage Format XHTML.
        :param title: Title to assign to the page. Needs to be unique within a space.
        :param space_key: Key of the space the page belongs to.
        :param version: New version to assign to the page.
        :param message: Version comment.
        """

        LOGGER.info("Updating page: %s (version %d)", page_id, version)
        path = f"/content/{page_id}"
        body = ConfluenceUpdatePageRequest(
            id=page_id,
            type="page",
            title=title,
            space=ConfluenceSpace(key=space_key),
            body=ConfluencePageBody(storage=ConfluencePageStorage(representation=ConfluenceRepresentation.STORAGE, value=content)),
            version=ConfluenceContentVersion(number=version, message=message),
        )
        self._put(path, body, None)
