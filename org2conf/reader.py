"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import re
import textwrap
from pathlib import Path

import orgparse
from orgparse.node import OrgNode

from .document import (
    Block,
    BlockParameters,
    BlockVariant,
    Document,
    Heading,
    Item,
    LatexEnvironment,
    LineBreak,
    Link,
    Markup,
    MarkupType,
    Node,
    Paragraph,
    PlainList,
    Section,
    Table,
    TableCell,
    TableRow,
    Target,
    Text,
)

LOGGER = logging.getLogger(__name__)


class DocumentError(RuntimeError):
    "Raised when an Org-mode document cannot be read."


_BLOCK_BEGIN = re.compile(r"^\s*#\+begin_(\S+)(?:[ \t]+(.*?))?\s*$", re.IGNORECASE)
_KEYWORD = re.compile(r"^\s*#\+(\w+):(?:[ \t]+(.*?))?\s*$")
_COMMENT = re.compile(r"^\s*#(?:[ \t]|$)")
_DRAWER_BEGIN = re.compile(r"^\s*:[\w-]+:\s*$")
_DRAWER_END = re.compile(r"^\s*:END:\s*$", re.IGNORECASE)
_FIXED_WIDTH = re.compile(r"^\s*:(?:[ \t]|$)")
_HORIZONTAL_RULE = re.compile(r"^\s*-{5,}\s*$")
_LATEX_BEGIN = re.compile(r"^\s*\\begin\{([^}]+)\}")
_LIST_ITEM = re.compile(r"^(\s*)([-+]|\d+[.)])(?:[ \t]+(.*)|$)")
_TABLE_ROW = re.compile(r"^\s*\|")
_TABLE_RULE = re.compile(r"^\s*\|-")

_EMPHASIS_TYPES = {
    "*": MarkupType.BOLD,
    "/": MarkupType.ITALIC,
    "_": MarkupType.UNDERLINE,
    "+": MarkupType.STRIKE_THROUGH,
    "=": MarkupType.VERBATIM,
    "~": MarkupType.CODE,
}

_INLINE = re.compile(
    r"""
    \[\[(?P<link>[^\]]+)\](?:\[(?P<description>.+?)\])?\]
    |<<(?P<target>[^<>\n]+)>>
    |(?P<linebreak>\\\\[ \t]*(?:\n|$))
    |(?P<url>\b(?:https?|ftp|mailto):[^\s<>\[\]()"']*[^\s<>\[\]()"'.,;:!?])
    |(?<![^\s\-({'"])(?P<marker>[*/_+=~])(?P<body>\S|\S[^\n]*?\S)(?P=marker)(?=[\s\-.,:;!?'")}\[]|$)
    """,
    re.VERBOSE,
)

_URL_SCHEMES = ("http", "https", "ftp", "mailto")


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _unescape(lines: list[str]) -> list[str]:
    "Removes the comma that protects lines starting with `*` or `#+` in literal blocks."

    return [re.sub(r"^(\s*),(\*|#\+)", r"\1\2", line) for line in lines]


def parse_link(target: str, description: str | None = None) -> Link:
    "Classifies a link by its target, e.g. `https://...`, `file:image.png`, `#custom-id` or `Heading title`."

    children = parse_inline(description) if description else []

    if target.startswith("#"):
        return Link(link_type="custom-id", path=target[1:], raw=target, children=children)

    m = re.match(r"^([A-Za-z][\w+-]*):(.*)$", target, re.DOTALL)
    if m:
        scheme = m.group(1).lower()
        if scheme in _URL_SCHEMES:
            return Link(link_type=scheme, path=target, raw=target, children=children)
        if scheme == "file":
            return Link(link_type="file", path=m.group(2), raw=target, children=children)
        if scheme == "id":
            return Link(link_type="id", path=m.group(2), raw=target, children=children)

    if target.startswith(("./", "../", "/", "~/")):
        return Link(link_type="file", path=target, raw=target, children=children)

    return Link(link_type="fuzzy", path=target, raw=target, children=children)


def parse_inline(text: str) -> list[Node]:
    "Splits a run of text into text, links, targets, line breaks and emphasis markup."

    nodes: list[Node] = []
    position = 0
    for m in _INLINE.finditer(text):
        if m.start() > position:
            nodes.append(Text(value=text[position : m.start()]))
        position = m.end()

        if m.group("link") is not None:
            nodes.append(parse_link(m.group("link"), m.group("description")))
        elif m.group("target") is not None:
            nodes.append(Target(value=m.group("target").strip()))
        elif m.group("linebreak") is not None:
            nodes.append(LineBreak())
        elif m.group("url") is not None:
            nodes.append(parse_link(m.group("url")))
        else:
            markup = _EMPHASIS_TYPES[m.group("marker")]
            body = m.group("body")
            if markup is MarkupType.CODE or markup is MarkupType.VERBATIM:
                children: list[Node] = [Text(value=body)]
            else:
                children = parse_inline(body)
            nodes.append(Markup(markup=markup, children=children))

    if position < len(text):
        nodes.append(Text(value=text[position:]))
    return nodes


class BodyParser:
    """
    Parses the body of a section (content between a headline and the next headline) into a list of elements.

    Affiliated keywords (`#+CAPTION:`, `#+NAME:`, `#+ATTR_CONFLUENCE:` and `#+ATTR_HTML:`) apply to the element that
    immediately follows them. Other keywords are collected into `keywords`, if a dictionary is passed.
    """

    lines: list[str]
    index: int
    keywords: dict[str, str] | None

    caption: str | None
    name: str | None
    attributes: BlockParameters

    def __init__(self, lines: list[str], keywords: dict[str, str] | None = None) -> None:
        self.lines = lines
        self.index = 0
        self.keywords = keywords
        self._reset_affiliated()

    def _reset_affiliated(self) -> None:
        self.caption = None
        self.name = None
        self.attributes = BlockParameters()

    def parse(self) -> list[Node]:
        nodes: list[Node] = []
        paragraph: list[str] = []

        def flush() -> None:
            if paragraph:
                text = "\n".join(line.strip() for line in paragraph)
                nodes.append(Paragraph(children=parse_inline(text), attributes=self.attributes, name=self.name))
                paragraph.clear()
                self._reset_affiliated()

        while self.index < len(self.lines):
            line = self.lines[self.index]

            if not line.strip():
                flush()
                self.index += 1
                continue

            if m := _BLOCK_BEGIN.match(line):
                flush()
                block = self._block(m.group(1).lower(), m.group(2) or "")
                if block is not None:
                    nodes.append(block)
                self._reset_affiliated()
                continue

            if m := _KEYWORD.match(line):
                flush()
                self._keyword(m.group(1).upper(), m.group(2) or "")
                self.index += 1
                continue

            if _COMMENT.match(line):
                flush()
                self.index += 1
                continue

            if _DRAWER_BEGIN.match(line) and not _DRAWER_END.match(line):
                flush()
                self._skip_drawer()
                continue

            if _FIXED_WIDTH.match(line):
                flush()
                nodes.append(self._fixed_width())
                self._reset_affiliated()
                continue

            if _HORIZONTAL_RULE.match(line):
                flush()
                LOGGER.debug("Skipping horizontal rule")
                self.index += 1
                continue

            if m := _LATEX_BEGIN.match(line):
                flush()
                nodes.append(self._latex_environment(m.group(1)))
                self._reset_affiliated()
                continue

            if m := _LIST_ITEM.match(line):
                flush()
                nodes.append(self._plain_list(_indent(line), m.group(2)[0].isdigit()))
                self._reset_affiliated()
                continue

            if _TABLE_ROW.match(line):
                flush()
                nodes.append(self._table())
                self._reset_affiliated()
                continue

            paragraph.append(line)
            self.index += 1

        flush()
        return nodes

    def _keyword(self, key: str, value: str) -> None:
        if key == "CAPTION":
            self.caption = value
        elif key == "NAME":
            self.name = value
        elif key in ("ATTR_CONFLUENCE", "ATTR_HTML"):
            self.attributes = BlockParameters.parse(value)
        elif self.keywords is not None:
            self.keywords[key] = value
        else:
            LOGGER.debug("Ignoring keyword outside of front matter: %s", key)

    def _skip_drawer(self) -> None:
        self.index += 1
        while self.index < len(self.lines):
            line = self.lines[self.index]
            self.index += 1
            if _DRAWER_END.match(line):
                break

    def _block(self, block_name: str, header: str) -> Block | None:
        end = re.compile(rf"^\s*#\+end_{re.escape(block_name)}\s*$", re.IGNORECASE)

        self.index += 1
        content: list[str] = []
        while self.index < len(self.lines) and not end.match(self.lines[self.index]):
            content.append(self.lines[self.index])
            self.index += 1
        if self.index < len(self.lines):
            self.index += 1
        else:
            LOGGER.warning("Missing `#+END_%s` for block", block_name.upper())

        raw = textwrap.dedent("\n".join(_unescape(content)))

        if block_name == "src":
            language, _, rest = header.partition(" ")
            return Block(
                variant=BlockVariant.SOURCE,
                value=raw,
                language=language or None,
                parameters=BlockParameters.parse(rest),
                caption=self.caption,
                name=self.name,
            )
        elif block_name == "example":
            return Block(
                variant=BlockVariant.EXAMPLE,
                value=raw,
                parameters=BlockParameters.parse(header),
                caption=self.caption,
                name=self.name,
            )
        elif block_name == "export":
            backend, _, _ = header.partition(" ")
            return Block(variant=BlockVariant.EXPORT, value=raw, language=backend.lower() or None, name=self.name)
        elif block_name == "comment":
            return None

        caption = self.caption
        name = self.name
        children = BodyParser(raw.splitlines()).parse()
        if block_name == "center":
            return Block(variant=BlockVariant.CENTER, children=children, caption=caption, name=name)
        elif block_name == "quote":
            return Block(variant=BlockVariant.QUOTE, children=children, caption=caption, name=name)
        else:
            return Block(
                variant=BlockVariant.SPECIAL,
                block_type=block_name,
                parameters=BlockParameters.parse(header),
                children=children,
                caption=caption,
                name=name,
            )

    def _fixed_width(self) -> Block:
        content: list[str] = []
        while self.index < len(self.lines) and _FIXED_WIDTH.match(self.lines[self.index]):
            content.append(re.sub(r"^\s*: ?", "", self.lines[self.index]))
            self.index += 1
        return Block(variant=BlockVariant.EXAMPLE, value="\n".join(content), caption=self.caption, name=self.name)

    def _latex_environment(self, environment: str) -> LatexEnvironment:
        end = re.compile(rf"\\end\{{{re.escape(environment)}\}}")

        content: list[str] = []
        while self.index < len(self.lines):
            line = self.lines[self.index]
            content.append(line)
            self.index += 1
            if end.search(line):
                break
        return LatexEnvironment(value=textwrap.dedent("\n".join(content)), name=self.name)

    def _plain_list(self, indent: int, ordered: bool) -> PlainList:
        plain_list = PlainList(ordered=ordered, name=self.name)

        while self.index < len(self.lines):
            m = _LIST_ITEM.match(self.lines[self.index])
            if not m or _indent(self.lines[self.index]) != indent:
                break
            self.index += 1

            body: list[str] = []
            while self.index < len(self.lines):
                line = self.lines[self.index]
                if not line.strip():
                    if self._next_indent() > indent:
                        body.append("")
                        self.index += 1
                        continue
                    break
                if _indent(line) <= indent:
                    break
                body.append(line)
                self.index += 1

            lines = [m.group(3) or ""] + textwrap.dedent("\n".join(body)).splitlines()
            children = BodyParser(lines).parse()

            # content on the line of the bullet is inline to the item
            if children and isinstance(children[0], Paragraph) and not len(children[0].attributes):
                children = children[0].children + children[1:]
            plain_list.append(Item(children=children))

            # a blank line followed by an item at the same level continues the list
            while self.index < len(self.lines) and not self.lines[self.index].strip():
                if self._next_indent() != indent:
                    break
                self.index += 1

        return plain_list

    def _next_indent(self) -> int:
        "Indentation of the next non-blank line, or -1 at the end of input."

        for line in self.lines[self.index :]:
            if line.strip():
                return _indent(line)
        return -1

    def _table(self) -> Table:
        table = Table(caption=self.caption, name=self.name)

        rows: list[TableRow] = []
        has_rule = False
        while self.index < len(self.lines) and _TABLE_ROW.match(self.lines[self.index]):
            line = self.lines[self.index].strip()
            self.index += 1

            if _TABLE_RULE.match(line):
                # rows above the first rule are header rows
                if rows and not has_rule:
                    for row in rows:
                        row.header = True
                has_rule = True
                continue

            line = line[1:]
            if line.endswith("|"):
                line = line[:-1]
            cells = [TableCell(children=parse_inline(cell.strip())) for cell in line.split("|")]
            rows.append(TableRow(children=cells))

        for row in rows:
            table.append(row)
        return table


def _parse_heading(node: OrgNode) -> Heading:
    heading = Heading(
        title=parse_inline(node.get_heading(format="raw")),
        level=node.level,
        tags=sorted(node.shallow_tags),
        properties={key: str(value) for key, value in node.properties.items()},
    )

    content = BodyParser(node.get_body(format="raw").splitlines()).parse()
    if content:
        heading.append(Section(children=content))

    for child in node.children:
        heading.append(_parse_heading(child))

    return heading


def parse_document(text: str, path: Path | None = None) -> Document:
    """
    Parses Org-mode text into a document tree.

    :param text: Org-mode source text.
    :param path: File the text was read from; used for the default title and to locate images.
    :returns: Root node of the document tree.
    """

    root = orgparse.loads(text, filename=str(path) if path is not None else "<string>")

    keywords: dict[str, str] = {}
    front_matter = BodyParser(root.get_body(format="raw").splitlines(), keywords).parse()

    document = Document(keywords=keywords, path=path)
    if front_matter:
        document.append(Section(children=front_matter))
    for child in root.children:
        document.append(_parse_heading(child))

    LOGGER.debug("Parsed document with %d top-level headings", len(root.children))
    return document


def read_document(path: Path) -> Document:
    "Reads an Org-mode file into a document tree."

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentError(f"unable to read Org-mode file: {path}") from e

    return parse_document(text, path.absolute())
