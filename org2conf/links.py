"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import quote

from .attachment import AttachmentCatalog, ImageData
from .csf import ElementType, Fragment, fragment_to_text
from .document import Document, Heading, Link, Node, Paragraph, confluence_anchor, reference_id
from .fragments import anchor_link, attached_image, external_link
from .metadata import ExportContext
from .options import ConverterOptions

LOGGER = logging.getLogger(__name__)

# characters with a reserved meaning in a URL, and the percent sign of sequences already encoded
_URL_SAFE = ":/?#[]@!$&'()*+,;=%~"


def encode_url(url: str) -> str:
    "Percent-encodes characters that are not permitted in a URL, such as spaces and non-ASCII characters."

    return quote(url, safe=_URL_SAFE)


def is_inline_image(link: Link, extensions: list[str]) -> bool:
    "True if the link is a file link without description that points to an image."

    if link.link_type != "file" or link.has_description:
        return False
    suffix = PurePosixPath(link.path).suffix.lower().removeprefix(".")
    return suffix in (ext.lower() for ext in extensions)


class LinkResolver:
    """
    Renders links found in a document.

    Internal links become same-page anchor references, local images become embedded attachments, and all other links
    become external hyperlinks. Images to upload are recorded in an attachment catalog, in document order.
    """

    document: Document
    context: ExportContext
    options: ConverterOptions
    attachments: AttachmentCatalog

    def __init__(
        self,
        document: Document,
        context: ExportContext,
        options: ConverterOptions,
        attachments: AttachmentCatalog,
    ) -> None:
        self.document = document
        self.context = context
        self.options = options
        self.attachments = attachments

    def render(self, link: Link, description: Fragment) -> Fragment:
        """
        Renders a link.

        :param link: Link node.
        :param description: Rendered description of the link, empty if the link has no description.
        :returns: Confluence Storage Format content for the link.
        """

        if link.is_internal:
            target = self.document.resolve_link(link)
            if target is None:
                LOGGER.warning("Unable to resolve link within document: %s", link.raw)
                return description or [link.path]
            return [self._internal_link(target, description)]

        if is_inline_image(link, self.options.image.extensions):
            return [self._image(link)]

        href = encode_url(link.path)
        return [external_link(href, description or [href])]

    def _internal_link(self, target: Node, description: Fragment) -> ElementType:
        if isinstance(target, Heading):
            text = description or [target.title_text]
            anchor_name = confluence_anchor(self.context.title, fragment_to_text(text))
        else:
            identifier = reference_id(target)
            text = description or [identifier]
            anchor_name = confluence_anchor(self.context.title, identifier)

        LOGGER.debug("Resolved link to same-page anchor: %s", anchor_name)
        return anchor_link(anchor_name, text)

    def _image(self, link: Link) -> ElementType:
        path = Path(link.path).expanduser()
        if not path.is_absolute():
            path = self.document.base_dir / path

        if self.context.upload_attachments:
            if not path.exists():
                LOGGER.warning("Image file not found: %s", path)
            self.attachments.add_image(ImageData(path, path.name))

        return attached_image(path.name, self._image_width(link))

    def _image_width(self, link: Link) -> str:
        "Width set with `#+ATTR_CONFLUENCE: :width` on the enclosing paragraph, or the default width."

        for node in link.ancestors():
            if isinstance(node, Paragraph):
                width = node.attributes.get("width")
                if width:
                    return width
                break
        return self.options.image.width
