"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import requests

from .api import ConfluenceAttachment, ConfluencePageSnapshot, ConfluenceSession, find_attachment_id
from .attachment import ImageData
from .converter import ConfluenceDocument
from .document import Document
from .environment import ConfluenceError, PageError
from .metadata import ExportContext
from .options import ConverterOptions
from .reader import read_document

LOGGER = logging.getLogger(__name__)


@dataclass
class PublisherOptions:
    """
    Options that control how page content is generated and synchronized.

    :param toc: Overrides the `toc` setting of `#+OPTIONS:` in documents.
    :param numbered_headings: Overrides the `num` setting of `#+OPTIONS:` in documents.
    :param converter: Options for converting a document tree into Confluence Storage Format.
    """

    toc: bool | None = None
    numbered_headings: bool | None = None
    converter: ConverterOptions = field(default_factory=ConverterOptions)


@dataclass(frozen=True)
class PublishResult:
    """
    Outcome of publishing a document.

    :param page_id: Confluence page ID.
    :param version: Version number submitted (or, without post, that would have been submitted).
    :param content: Page content in Confluence Storage Format.
    :param posted: Whether the page has been updated on the server.
    """

    page_id: str
    version: int
    content: str
    posted: bool


def convert(path: Path, options: PublisherOptions, *, space_key: str | None = None) -> ConfluenceDocument:
    "Converts an Org-mode file to Confluence Storage Format without contacting the server."

    return ConfluenceDocument.create(
        path,
        options.converter,
        space_key=space_key,
        toc=options.toc,
        numbered_headings=options.numbered_headings,
    )


class Publisher:
    """
    Updates an existing Confluence page with the content of an Org-mode document.
    """

    api: ConfluenceSession
    options: PublisherOptions
    user: str | None

    def __init__(
        self,
        api: ConfluenceSession,
        options: PublisherOptions | None = None,
        *,
        user: str | None = None,
        prompt: Callable[[str], str] = input,
    ) -> None:
        """
        Initializes a new publisher instance.

        :param api: Holds information about an open session to a Confluence server.
        :param options: Options that control the generated page content.
        :param user: Confluence user name acting on the page.
        :param prompt: Function that asks the user for a change comment.
        """

        self.api = api
        self.options = options or PublisherOptions()
        self.user = user
        self._prompt = prompt

    def _create_context(self, document: Document, *, upload_attachments: bool) -> ExportContext:
        return ExportContext.create(
            document,
            user=self.user,
            upload_attachments=upload_attachments,
            space_key=self.api.site.space_key,
            toc=self.options.toc,
            numbered_headings=self.options.numbered_headings,
        )

    def _get_page_id(self, path: Path, document: Document) -> str:
        if document.page_id is None:
            raise PageError(f"missing Confluence page ID in {path}; add `#+CONFLUENCE_PAGE_ID:` to the document header")
        return document.page_id

    def page_info(self, path: Path) -> ConfluencePageSnapshot:
        "Fetches the title and current version of the page an Org-mode file is associated with."

        document = read_document(path)
        return self.api.get_page_snapshot(self._get_page_id(path, document))

    def list_attachments(self, path: Path) -> list[ConfluenceAttachment]:
        "Fetches the attachments of the page an Org-mode file is associated with."

        document = read_document(path)
        return self.api.get_attachments(self._get_page_id(path, document))

    def publish(self, path: Path, *, post: bool = True, message: str | None = None) -> PublishResult | None:
        """
        Converts an Org-mode file and updates the Confluence page it is associated with.

        1. Reads the page ID from the document; fails before any network call if there is none.
        2. Fetches the current version of the page.
        3. Converts the document.
        4. Uploads local images as page attachments, replacing attachments with the same name.
        5. Asks for a change comment (unless given).
        6. Updates the page with the next version number.

        Without post, images are not uploaded and the page is not updated; the converted content is returned for
        inspection.

        :param path: Org-mode file to publish.
        :param post: Whether to upload attachments and update the page.
        :param message: Change comment for the new page version.
        :returns: Publishing outcome, or `None` if a server request failed.
        """

        document = read_document(path)
        page_id = self._get_page_id(path, document)
        context = self._create_context(document, upload_attachments=post)

        try:
            snapshot = self.api.get_page_snapshot(page_id)
        except (requests.RequestException, ConfluenceError) as e:
            LOGGER.error("Unable to fetch page %s: %s", page_id, e)
            return None

        space_key = context.space_key or (snapshot.space.key if snapshot.space is not None else None)
        if post and not space_key:
            raise PageError(f"missing Confluence space key for page {page_id}; add `#+CONFLUENCE_SPACE_KEY:` to the document header")

        page = ConfluenceDocument(document, context, self.options.converter)
        content = page.xhtml()

        if post and not self._upload_attachments(page_id, page.images):
            return None

        if message is None:
            message = self._prompt("Change comment: ")

        version = snapshot.version.number + 1

        if not post:
            LOGGER.info("Skipping update of page %s to version %d", page_id, version)
            return PublishResult(page_id, version, content, posted=False)

        try:
            self.api.update_page(
                page_id,
                content,
                title=context.title or snapshot.title,
                space_key=space_key or "",
                version=version,
                message=message,
            )
        except (requests.RequestException, ConfluenceError) as e:
            LOGGER.error("Unable to update page %s: %s", page_id, e)
            return None

        return PublishResult(page_id, version, content, posted=True)

    def _upload_attachments(self, page_id: str, images: list[ImageData]) -> bool:
        "Uploads images in document order. Stops at the first failure."

        if not images:
            return True

        try:
            attachments = self.api.get_attachments(page_id)
            for image in images:
                attachment_id = find_attachment_id(attachments, image.filename)
                self.api.upload_attachment(
                    page_id,
                    image.path,
                    attachment_name=image.filename,
                    attachment_id=attachment_id,
                )
        except (requests.RequestException, ConfluenceError, PageError) as e:
            LOGGER.error("Unable to upload attachments to page %s: %s", page_id, e)
            return False

        return True
