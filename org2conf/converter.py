"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
from pathlib import Path
from typing import Callable

from .attachment import AttachmentCatalog, ImageData
from .codeblock import resolve_code_block
from .csf import HTML, ElementType, Fragment, elements_to_string, fragment_to_root
from .document import (
    Block,
    BlockVariant,
    Document,
    Heading,
    LatexEnvironment,
    Link,
    Markup,
    MarkupType,
    Node,
    NodeKind,
    PlainList,
    TableCell,
    TableRow,
    Target,
    Text,
    heading_level,
    reference_id,
    section_number,
)
from .fragments import admonition, anchor, change_history, html_macro, math_block, panel, toc
from .links import LinkResolver
from .metadata import ExportContext
from .options import ConverterOptions
from .reader import DocumentError, read_document

LOGGER = logging.getLogger(__name__)


class ConversionError(RuntimeError):
    "Raised when an Org-mode document cannot be converted to Confluence Storage Format."


# titles of admonition panels without a caption
_ADMONITION_TITLES = {
    "warning": "[Warning]",
    "note": "[Note]",
    "info": "[Info]",
    "tip": "[Tip]",
    "expand": "[Click to expand...]",
}

DEFAULT_EXAMPLE_TITLE = "[Example]"
DEFAULT_HISTORY_LIMIT = 3

_MARKUP_TAGS = {
    MarkupType.BOLD: "strong",
    MarkupType.ITALIC: "em",
    MarkupType.UNDERLINE: "u",
    MarkupType.STRIKE_THROUGH: "s",
    MarkupType.CODE: "code",
    MarkupType.VERBATIM: "code",
}


class ConfluenceStorageFormatConverter:
    """
    Transforms an Org-mode document tree into Confluence Storage Format.

    Nodes are rendered depth first: the rendered content of child nodes is passed to the rule that renders the parent.
    Each node kind has exactly one rendering rule.
    """

    document: Document
    context: ExportContext
    options: ConverterOptions
    attachments: AttachmentCatalog
    links: LinkResolver

    def __init__(self, document: Document, context: ExportContext, options: ConverterOptions) -> None:
        self.document = document
        self.context = context
        self.options = options
        self.attachments = AttachmentCatalog()
        self.links = LinkResolver(document, context, options, self.attachments)

    def render(self, node: Node) -> Fragment:
        "Renders a node and all its descendants."

        children = self.render_nodes(node.children)
        content = _RULES[node.kind](self, node, children)

        # elements with `#+NAME:` are link targets
        if node.name and node.kind is not NodeKind.DOCUMENT:
            content = [anchor(reference_id(node)), *content]
        return content

    def render_nodes(self, nodes: list[Node]) -> Fragment:
        content: Fragment = []
        for node in nodes:
            content.extend(self.render(node))
        return content

    def _document(self, node: Node, children: Fragment) -> Fragment:
        if self.context.toc:
            return [toc(), *children]
        return children

    def _heading(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, Heading):
            raise TypeError("expected: heading")

        level = min(heading_level(node), 6)
        title = self.render_nodes(node.title)
        if self.context.numbered_headings:
            title = [f"{section_number(node)} ", *title]
        return [HTML(f"h{level}", *title), *children]

    def _section(self, node: Node, children: Fragment) -> Fragment:
        return children

    def _paragraph(self, node: Node, children: Fragment) -> Fragment:
        if not children:
            return []
        return [HTML.p(*children)]

    def _text(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, Text):
            raise TypeError("expected: text")
        return [node.value.replace("\n", " ")]

    def _line_break(self, node: Node, children: Fragment) -> Fragment:
        return [HTML.br()]

    def _markup(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, Markup):
            raise TypeError("expected: text markup")
        return [HTML(_MARKUP_TAGS[node.markup], *children)]

    def _link(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, Link):
            raise TypeError("expected: link")
        return self.links.render(node, children)

    def _target(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, Target):
            raise TypeError("expected: target")
        return [anchor(reference_id(node))]

    def _plain_list(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, PlainList):
            raise TypeError("expected: plain list")
        if node.ordered:
            return [HTML.ol(*children)]
        else:
            return [HTML.ul(*children)]

    def _item(self, node: Node, children: Fragment) -> Fragment:
        return [HTML.li(*children)]

    def _table(self, node: Node, children: Fragment) -> Fragment:
        return [HTML.table(HTML.tbody(*children))]

    def _table_row(self, node: Node, children: Fragment) -> Fragment:
        return [HTML.tr(*children)]

    def _table_cell(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, TableCell):
            raise TypeError("expected: table cell")
        if isinstance(node.parent, TableRow) and node.parent.header:
            return [HTML.th(*children)]
        else:
            return [HTML.td(*children)]

    def _latex_environment(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, LatexEnvironment):
            raise TypeError("expected: LaTeX environment")
        return [math_block(node.value)]

    def _block(self, node: Node, children: Fragment) -> Fragment:
        if not isinstance(node, Block):
            raise TypeError("expected: block")
        return _BLOCK_RULES[node.variant](self, node, children)

    def _source_block(self, block: Block, children: Fragment) -> Fragment:
        return [resolve_code_block(block.language, block.parameters, block.value, block.caption, self.options)]

    def _example_block(self, block: Block, children: Fragment) -> Fragment:
        return [panel(block.caption or DEFAULT_EXAMPLE_TITLE, block.value)]

    def _center_block(self, block: Block, children: Fragment) -> Fragment:
        for item in children:
            if isinstance(item, str):
                continue
            for paragraph in item.iter("p"):
                paragraph.set("style", "text-align: center;")
        return children

    def _quote_block(self, block: Block, children: Fragment) -> Fragment:
        return [HTML.blockquote(*children)]

    def _export_block(self, block: Block, children: Fragment) -> Fragment:
        if block.language == "html":
            return [html_macro(block.value)]

        LOGGER.debug("Skipping export block for back-end: %s", block.language)
        return []

    def _special_block(self, block: Block, children: Fragment) -> Fragment:
        block_type = block.block_type or ""

        title = _ADMONITION_TITLES.get(block_type)
        if title is not None:
            return [admonition(block_type, block.caption or title, children)]

        if block_type == "history":
            limit = block.parameters.get_int("limit")
            return [change_history(limit if limit is not None else DEFAULT_HISTORY_LIMIT)]

        LOGGER.warning("Unsupported block type: %s", block_type)
        return []


_Rule = Callable[[ConfluenceStorageFormatConverter, Node, Fragment], Fragment]
_BlockRule = Callable[[ConfluenceStorageFormatConverter, Block, Fragment], Fragment]

_RULES: dict[NodeKind, _Rule] = {
    NodeKind.DOCUMENT: ConfluenceStorageFormatConverter._document,
    NodeKind.HEADING: ConfluenceStorageFormatConverter._heading,
    NodeKind.SECTION: ConfluenceStorageFormatConverter._section,
    NodeKind.PARAGRAPH: ConfluenceStorageFormatConverter._paragraph,
    NodeKind.BLOCK: ConfluenceStorageFormatConverter._block,
    NodeKind.LINK: ConfluenceStorageFormatConverter._link,
    NodeKind.TARGET: ConfluenceStorageFormatConverter._target,
    NodeKind.MARKUP: ConfluenceStorageFormatConverter._markup,
    NodeKind.TEXT: ConfluenceStorageFormatConverter._text,
    NodeKind.LINE_BREAK: ConfluenceStorageFormatConverter._line_break,
    NodeKind.PLAIN_LIST: ConfluenceStorageFormatConverter._plain_list,
    NodeKind.ITEM: ConfluenceStorageFormatConverter._item,
    NodeKind.TABLE: ConfluenceStorageFormatConverter._table,
    NodeKind.TABLE_ROW: ConfluenceStorageFormatConverter._table_row,
    NodeKind.TABLE_CELL: ConfluenceStorageFormatConverter._table_cell,
    NodeKind.LATEX_ENVIRONMENT: ConfluenceStorageFormatConverter._latex_environment,
}

_BLOCK_RULES: dict[BlockVariant, _BlockRule] = {
    BlockVariant.SOURCE: ConfluenceStorageFormatConverter._source_block,
    BlockVariant.EXAMPLE: ConfluenceStorageFormatConverter._example_block,
    BlockVariant.CENTER: ConfluenceStorageFormatConverter._center_block,
    BlockVariant.QUOTE: ConfluenceStorageFormatConverter._quote_block,
    BlockVariant.EXPORT: ConfluenceStorageFormatConverter._export_block,
    BlockVariant.SPECIAL: ConfluenceStorageFormatConverter._special_block,
}

if set(_RULES) != set(NodeKind) or set(_BLOCK_RULES) != set(BlockVariant):
    raise NotImplementedError("match not exhaustive for enumeration")


class ConfluenceDocument:
    "Encapsulates an element tree for a Confluence document created by converting an Org-mode document."

    document: Document
    context: ExportContext
    images: list[ImageData]
    root: ElementType

    @classmethod
    def create(
        cls,
        path: Path,
        options: ConverterOptions,
        *,
        user: str | None = None,
        upload_attachments: bool = False,
        space_key: str | None = None,
        toc: bool | None = None,
        numbered_headings: bool | None = None,
    ) -> "ConfluenceDocument":
        """
        Reads and converts an Org-mode file.

        :param path: Org-mode file to convert.
        :param options: Converter options.
        :param user: Confluence user name acting on the page.
        :param upload_attachments: Whether to collect local images as attachments to upload.
        :param space_key: Space key to use when the document does not declare one.
        :param toc: Overrides the `toc` setting in `#+OPTIONS:`.
        :param numbered_headings: Overrides the `num` setting in `#+OPTIONS:`.
        """

        try:
            document = read_document(path)
        except DocumentError as ex:
            raise ConversionError(f"{path}: {ex}") from ex

        context = ExportContext.create(
            document,
            user=user,
            upload_attachments=upload_attachments,
            space_key=space_key,
            toc=toc,
            numbered_headings=numbered_headings,
        )
        return ConfluenceDocument(document, context, options)

    def __init__(self, document: Document, context: ExportContext, options: ConverterOptions) -> None:
        "Converts a single Org-mode document tree to Confluence Storage Format."

        self.document = document
        self.context = context

        converter = ConfluenceStorageFormatConverter(document, context, options)
        self.root = fragment_to_root(converter.render(document))

        # extract information discovered by converter
        self.images = converter.attachments.images

    @property
    def title(self) -> str:
        return self.context.title

    @property
    def page_id(self) -> str | None:
        return self.context.page_id

    def xhtml(self) -> str:
        return elements_to_string(self.root)
