"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import enum
import hashlib
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Iterable, Iterator, TypeVar

LOGGER = logging.getLogger(__name__)

N = TypeVar("N", bound="Node")


@enum.unique
class NodeKind(enum.Enum):
    "Identifies the type of a node in the document tree."

    DOCUMENT = "document"
    HEADING = "heading"
    SECTION = "section"
    PARAGRAPH = "paragraph"
    BLOCK = "block"
    LINK = "link"
    TARGET = "target"
    MARKUP = "text-markup"
    TEXT = "text"
    LINE_BREAK = "line-break"
    PLAIN_LIST = "plain-list"
    ITEM = "item"
    TABLE = "table"
    TABLE_ROW = "table-row"
    TABLE_CELL = "table-cell"
    LATEX_ENVIRONMENT = "latex-environment"


@enum.unique
class BlockVariant(enum.Enum):
    "Identifies the type of a `#+BEGIN_...` / `#+END_...` block."

    SOURCE = "src"
    EXAMPLE = "example"
    CENTER = "center"
    QUOTE = "quote"
    EXPORT = "export"
    SPECIAL = "special"


@enum.unique
class MarkupType(enum.Enum):
    "Identifies inline emphasis markup."

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    STRIKE_THROUGH = "strike-through"
    CODE = "code"
    VERBATIM = "verbatim"


class BlockParameters:
    """
    Named parameters of a block, parsed from a header such as `:limit 10 :columns key,summary`.

    Lookup returns the first parameter with a matching name. A value that starts with `%` is a template placeholder that
    has not been substituted, and reads as if the parameter had been omitted.
    """

    _items: list[tuple[str, str]]

    def __init__(self, items: Iterable[tuple[str, str]] = ()) -> None:
        self._items = list(items)

    @classmethod
    def parse(cls, text: str) -> "BlockParameters":
        "Parses a header string of `:name value` pairs. Values may span several whitespace-separated words."

        items: list[tuple[str, str]] = []
        name: str | None = None
        values: list[str] = []
        for token in text.split():
            if token.startswith(":") and len(token) > 1:
                if name is not None:
                    items.append((name, " ".join(values)))
                name = token[1:]
                values = []
            elif name is not None:
                values.append(token)
        if name is not None:
            items.append((name, " ".join(values)))
        return cls(items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"

    def names(self) -> list[str]:
        return [name for name, _ in self._items]

    def raw(self, name: str) -> str | None:
        "Returns the literal value of a parameter, including unsubstituted placeholders."

        for key, value in self._items:
            if key == name:
                return value
        return None

    def get(self, name: str) -> str | None:
        "Returns the value of a parameter, or `None` if omitted or left as a `%` placeholder."

        value = self.raw(name)
        if value is None or value.startswith("%"):
            return None
        return value

    def get_int(self, name: str) -> int | None:
        "Returns the value of a numeric parameter, or `None` if omitted or not a number."

        value = self.get(name)
        if value is None:
            return None
        if not value.isdecimal():
            LOGGER.warning("Expected numeric value for parameter `:%s`; got: %s", name, value)
            return None
        return int(value)

    def get_flag(self, name: str) -> bool | None:
        "Returns `True` for the Lisp truth value `t`, `False` for any other value, or `None` if omitted."

        value = self.get(name)
        if value is None:
            return None
        return value == "t"


@dataclass(eq=False)
class Node:
    """
    A node in the parsed document tree.

    The tree is assembled once by the reader, and treated as read-only afterwards.

    :param children: Child nodes in document order.
    :param name: Element name assigned with `#+NAME:`, used as a cross-reference target.
    """

    kind: ClassVar[NodeKind]

    children: list["Node"] = field(default_factory=list, kw_only=True)
    name: str | None = field(default=None, kw_only=True)
    parent: "Node | None" = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        for child in self.children:
            child.parent = self

    def append(self, child: N) -> N:
        child.parent = self
        self.children.append(child)
        return child

    def ancestors(self) -> Iterator["Node"]:
        "Enumerates the parent, grandparent, etc. of this node, up to the root."

        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def walk(self) -> Iterator["Node"]:
        "Enumerates this node and all its descendants in document order."

        yield self
        for child in self.children:
            yield from child.walk()

    def position(self) -> list[int]:
        "Index path from the root of the tree to this node."

        path: list[int] = []
        node: Node = self
        while node.parent is not None:
            path.append(next(i for i, c in enumerate(node.parent.children) if c is node))
            node = node.parent
        path.reverse()
        return path


@dataclass(eq=False)
class Text(Node):
    kind = NodeKind.TEXT

    value: str = ""


@dataclass(eq=False)
class LineBreak(Node):
    kind = NodeKind.LINE_BREAK


@dataclass(eq=False)
class Markup(Node):
    kind = NodeKind.MARKUP

    markup: MarkupType = MarkupType.BOLD


@dataclass(eq=False)
class Link(Node):
    """
    A hyperlink. Children hold the parsed description, if any.

    :param link_type: Org link type, e.g. `https`, `file`, `id`, `custom-id` or `fuzzy`.
    :param path: Link address. URLs are kept whole; the `file:`, `id:` and `#` prefixes are removed.
    :param raw: Link as written in the source.
    """

    kind = NodeKind.LINK

    link_type: str = "fuzzy"
    path: str = ""
    raw: str = ""

    @property
    def has_description(self) -> bool:
        return len(self.children) > 0

    @property
    def is_internal(self) -> bool:
        return self.link_type in ("id", "custom-id", "fuzzy")


@dataclass(eq=False)
class Target(Node):
    "A dedicated target, written as `<<target>>`."

    kind = NodeKind.TARGET

    value: str = ""


@dataclass(eq=False)
class Paragraph(Node):
    """
    A paragraph of inline content.

    :param attributes: Export attributes given with `#+ATTR_CONFLUENCE:` or `#+ATTR_HTML:`.
    """

    kind = NodeKind.PARAGRAPH

    attributes: BlockParameters = field(default_factory=BlockParameters)


@dataclass(eq=False)
class Block(Node):
    """
    A greater or lesser block delimited with `#+BEGIN_...` and `#+END_...`.

    :param variant: Block type.
    :param value: Raw block content for blocks whose content is not parsed (source, example and export blocks).
    :param language: Language of a source block, or back-end of an export block.
    :param block_type: Sub-type of a special block, e.g. `note` for `#+BEGIN_NOTE`.
    :param parameters: Header parameters.
    :param caption: Caption given with `#+CAPTION:`.
    """

    kind = NodeKind.BLOCK

    variant: BlockVariant = BlockVariant.SPECIAL
    value: str = ""
    language: str | None = None
    block_type: str | None = None
    parameters: BlockParameters = field(default_factory=BlockParameters)
    caption: str | None = None


@dataclass(eq=False)
class PlainList(Node):
    kind = NodeKind.PLAIN_LIST

    ordered: bool = False


@dataclass(eq=False)
class Item(Node):
    kind = NodeKind.ITEM


@dataclass(eq=False)
class TableCell(Node):
    kind = NodeKind.TABLE_CELL


@dataclass(eq=False)
class TableRow(Node):
    kind = NodeKind.TABLE_ROW

    header: bool = False


@dataclass(eq=False)
class Table(Node):
    kind = NodeKind.TABLE

    caption: str | None = None


@dataclass(eq=False)
class LatexEnvironment(Node):
    kind = NodeKind.LATEX_ENVIRONMENT

    value: str = ""


@dataclass(eq=False)
class Section(Node):
    "Content of a heading that precedes its first sub-heading, or the front matter of a document."

    kind = NodeKind.SECTION


@dataclass(eq=False)
class Heading(Node):
    """
    A headline with its section and sub-headings as children.

    :param title: Parsed inline content of the headline.
    :param level: Number of stars in the source; the exported level is relative, see `heading_level`.
    :param tags: Headline tags.
    :param properties: Entries of the property drawer.
    """

    kind = NodeKind.HEADING

    title: list[Node] = field(default_factory=list)
    level: int = 1
    tags: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__post_init__()
        for node in self.title:
            node.parent = self

    @property
    def title_text(self) -> str:
        return node_to_text(self.title).strip()


@dataclass(eq=False)
class Document(Node):
    """
    The root of the document tree.

    :param keywords: Keyword directives such as `#+TITLE:`, with names converted to upper case. The last occurrence wins.
    :param path: Source file the document was read from.
    """

    kind = NodeKind.DOCUMENT

    keywords: dict[str, str] = field(default_factory=dict)
    path: Path | None = None

    @property
    def title(self) -> str:
        title = self.keywords.get("TITLE")
        if title:
            return title
        if self.path is not None:
            return self.path.stem
        return ""

    @property
    def author(self) -> str | None:
        return self.keywords.get("AUTHOR") or None

    @property
    def page_id(self) -> str | None:
        return self.keywords.get("CONFLUENCE_PAGE_ID") or None

    @property
    def space_key(self) -> str | None:
        return self.keywords.get("CONFLUENCE_SPACE_KEY") or self.keywords.get("CONFLUENCE_SPACE") or None

    @property
    def base_dir(self) -> Path:
        if self.path is not None:
            return self.path.parent
        return Path.cwd()

    def option(self, name: str) -> str | None:
        "Looks up a setting in `#+OPTIONS:` such as `toc:t` or `num:nil`."

        options = self.keywords.get("OPTIONS", "")
        for item in options.split():
            key, sep, value = item.partition(":")
            if sep and key == name:
                return value
        return None

    def option_flag(self, name: str) -> bool | None:
        "Interprets an option as a Boolean: `nil` is false, any other value is true."

        value = self.option(name)
        if value is None:
            return None
        return value != "nil"

    def resolve_link(self, link: Link) -> Node | None:
        """
        Finds the node an internal link points to.

        * `#id` matches a headline with a `CUSTOM_ID` property.
        * `id:X` matches a headline with an `ID` property.
        * `*Title` matches a headline by title.
        * Any other fuzzy link matches a dedicated target, then an element name, then a headline title.

        :returns: The target node, or `None` if the link does not resolve within the document.
        """

        if link.link_type in ("id", "custom-id"):
            prop = "ID" if link.link_type == "id" else "CUSTOM_ID"
            for node in self.walk():
                if isinstance(node, Heading) and node.properties.get(prop) == link.path:
                    return node
            return None

        if link.link_type != "fuzzy":
            return None

        if link.path.startswith("*"):
            return self._find_heading(link.path[1:].strip())

        for node in self.walk():
            if isinstance(node, Target) and node.value == link.path:
                return node
        for node in self.walk():
            if node.name == link.path and node is not self:
                return node
        return self._find_heading(link.path)

    def _find_heading(self, title: str) -> Heading | None:
        for node in self.walk():
            if isinstance(node, Heading) and node.title_text == title:
                return node
        return None


def node_to_text(nodes: Node | Iterable[Node]) -> str:
    "Extracts plain text from a node or a list of nodes, dropping all markup."

    if isinstance(nodes, Node):
        nodes = [nodes]

    parts: list[str] = []
    for node in nodes:
        if isinstance(node, Text):
            parts.append(node.value)
        elif isinstance(node, LineBreak):
            parts.append("\n")
        elif isinstance(node, Link) and not node.has_description:
            parts.append(node.path)
        elif isinstance(node, Target):
            parts.append(node.value)
        else:
            parts.append(node_to_text(node.children))
    return "".join(parts)


def heading_level(heading: Heading) -> int:
    "Exported level of a heading: 1 for a top-level heading, incremented for each enclosing heading."

    return 1 + sum(1 for node in heading.ancestors() if isinstance(node, Heading))


def section_number(heading: Heading) -> str:
    "Hierarchical section number of a heading, e.g. `2.1` for the first sub-heading of the second top-level heading."

    numbers: list[int] = []
    node: Node = heading
    while isinstance(node, Heading) and node.parent is not None:
        siblings = [c for c in node.parent.children if isinstance(c, Heading)]
        numbers.append(next(i for i, c in enumerate(siblings) if c is node) + 1)
        node = node.parent
    numbers.reverse()
    return ".".join(str(n) for n in numbers)


def reference_id(node: Node) -> str:
    """
    Stable identifier of a node that anchors and links within the same document agree on.

    The identifier is derived from the custom ID, target text or element name of the node; in the absence of these, from
    its position in the tree.
    """

    if isinstance(node, Heading):
        custom_id = node.properties.get("CUSTOM_ID")
        if custom_id:
            return custom_id

    if isinstance(node, Target):
        key = f"target:{node.value}"
    elif node.name:
        key = f"name:{node.name}"
    else:
        key = "position:" + ".".join(str(i) for i in node.position())

    return "org" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:7]


def confluence_anchor(page_title: str, text: str) -> str:
    "Same-page anchor as generated by Confluence: page title and anchor text joined by a hyphen, without whitespace."

    title_part = re.sub(r"\s+", "", page_title)
    text_part = re.sub(r"\s+", "", text)
    return f"{title_part}-{text_part}"
