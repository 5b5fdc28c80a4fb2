"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import os.path
import tempfile
import unittest
from pathlib import Path

from org2conf.document import (
    Block,
    BlockVariant,
    Heading,
    Item,
    LatexEnvironment,
    LineBreak,
    Link,
    Markup,
    MarkupType,
    Paragraph,
    PlainList,
    Section,
    Table,
    TableRow,
    Target,
    Text,
)
from org2conf.reader import BodyParser, DocumentError, parse_document, parse_inline, parse_link, read_document
from tests.utility import TypedTestCase

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
)


def parse_body(text: str) -> list:
    return BodyParser(text.splitlines()).parse()


class TestInline(TypedTestCase):
    def test_plain(self) -> None:
        nodes = parse_inline("Nothing special here.")
        self.assertEqual(len(nodes), 1)
        self.assertIsInstance(nodes[0], Text)

    def test_emphasis(self) -> None:
        nodes = parse_inline("a *bold* and /italic/ and ~code~ word")
        markup = [node for node in nodes if isinstance(node, Markup)]
        self.assertListEqual([m.markup for m in markup], [MarkupType.BOLD, MarkupType.ITALIC, MarkupType.CODE])
        self.assertEqual(markup[0].children[0].value, "bold")  # type: ignore[attr-defined]

    def test_emphasis_within_word(self) -> None:
        nodes = parse_inline("file_name_here and 2*3*4")
        self.assertFalse(any(isinstance(node, Markup) for node in nodes))

    def test_link_with_description(self) -> None:
        nodes = parse_inline("see [[https://example.com][Example *site*]] now")
        self.assertEqual(len(nodes), 3)
        link = nodes[1]
        assert isinstance(link, Link)
        self.assertEqual(link.link_type, "https")
        self.assertEqual(link.path, "https://example.com")
        self.assertTrue(link.has_description)
        self.assertIsInstance(link.children[1], Markup)

    def test_plain_url(self) -> None:
        nodes = parse_inline("Visit https://example.com/docs.")
        link = nodes[1]
        assert isinstance(link, Link)
        self.assertEqual(link.path, "https://example.com/docs")
        self.assertFalse(link.has_description)
        self.assertEqual(nodes[2].value, ".")  # type: ignore[attr-defined]

    def test_target(self) -> None:
        nodes = parse_inline("here <<anchor point>> there")
        target = nodes[1]
        assert isinstance(target, Target)
        self.assertEqual(target.value, "anchor point")

    def test_line_break(self) -> None:
        nodes = parse_inline("first\\\\\nsecond")
        self.assertIsInstance(nodes[1], LineBreak)


class TestLinks(TypedTestCase):
    def test_types(self) -> None:
        cases = [
            ("https://example.com/a b", "https", "https://example.com/a b"),
            ("mailto:user@example.com", "mailto", "mailto:user@example.com"),
            ("file:images/diagram.png", "file", "images/diagram.png"),
            ("./images/diagram.png", "file", "./images/diagram.png"),
            ("id:3f2a1c9e", "id", "3f2a1c9e"),
            ("#installation", "custom-id", "installation"),
            ("*Getting Started", "fuzzy", "*Getting Started"),
            ("named element", "fuzzy", "named element"),
        ]
        for raw, link_type, path in cases:
            with self.subTest(link=raw):
                link = parse_link(raw)
                self.assertEqual(link.link_type, link_type)
                self.assertEqual(link.path, path)
                self.assertEqual(link.raw, raw)


class TestBody(TypedTestCase):
    def test_paragraphs(self) -> None:
        nodes = parse_body("first line\nsecond line\n\nnext paragraph")
        self.assertEqual(len(nodes), 2)
        self.assertIsInstance(nodes[0], Paragraph)
        self.assertEqual(nodes[0].children[0].value, "first line\nsecond line")

    def test_source_block(self) -> None:
        nodes = parse_body(
            "#+CAPTION: Example query\n"
            "#+BEGIN_SRC jira :limit 10 :columns key,summary\n"
            "  project = FOO\n"
            "#+END_SRC\n"
        )
        self.assertEqual(len(nodes), 1)
        block = nodes[0]
        assert isinstance(block, Block)
        self.assertEqual(block.variant, BlockVariant.SOURCE)
        self.assertEqual(block.language, "jira")
        self.assertEqual(block.value, "project = FOO")
        self.assertEqual(block.caption, "Example query")
        self.assertEqual(block.parameters.get_int("limit"), 10)
        self.assertEqual(block.parameters.get("columns"), "key,summary")

    def test_escaped_block_content(self) -> None:
        nodes = parse_body("#+begin_example\n,* not a heading\n,#+not a keyword\n#+end_example\n")
        block = nodes[0]
        assert isinstance(block, Block)
        self.assertEqual(block.variant, BlockVariant.EXAMPLE)
        self.assertEqual(block.value, "* not a heading\n#+not a keyword")

    def test_fixed_width(self) -> None:
        nodes = parse_body(": first\n: second\n")
        block = nodes[0]
        assert isinstance(block, Block)
        self.assertEqual(block.variant, BlockVariant.EXAMPLE)
        self.assertEqual(block.value, "first\nsecond")

    def test_special_block(self) -> None:
        nodes = parse_body("#+BEGIN_NOTE\nhi\n#+END_NOTE\n")
        block = nodes[0]
        assert isinstance(block, Block)
        self.assertEqual(block.variant, BlockVariant.SPECIAL)
        self.assertEqual(block.block_type, "note")
        self.assertIsInstance(block.children[0], Paragraph)
        self.assertIs(block.children[0].parent, block)

    def test_export_and_comment(self) -> None:
        nodes = parse_body("#+BEGIN_EXPORT HTML\n<b>x</b>\n#+END_EXPORT\n#+BEGIN_COMMENT\nhidden\n#+END_COMMENT\n")
        self.assertEqual(len(nodes), 1)
        block = nodes[0]
        assert isinstance(block, Block)
        self.assertEqual(block.variant, BlockVariant.EXPORT)
        self.assertEqual(block.language, "html")
        self.assertEqual(block.value, "<b>x</b>")

    def test_center_and_quote(self) -> None:
        nodes = parse_body("#+BEGIN_CENTER\ncentered\n#+END_CENTER\n#+BEGIN_QUOTE\nquoted\n#+END_QUOTE\n")
        self.assertListEqual([n.variant for n in nodes], [BlockVariant.CENTER, BlockVariant.QUOTE])

    def test_unterminated_block(self) -> None:
        with self.assertLogs("org2conf.reader", level=logging.WARNING):
            nodes = parse_body("#+BEGIN_SRC python\nprint()\n")
        self.assertEqual(nodes[0].value, "print()")

    def test_plain_list(self) -> None:
        nodes = parse_body("- one\n- two\n  - nested\n- three\n\nafter")
        self.assertEqual(len(nodes), 2)
        plain_list = nodes[0]
        assert isinstance(plain_list, PlainList)
        self.assertFalse(plain_list.ordered)
        self.assertEqual(len(plain_list.children), 3)

        second = plain_list.children[1]
        assert isinstance(second, Item)
        self.assertIsInstance(second.children[0], Text)
        self.assertIsInstance(second.children[1], PlainList)

        self.assertIsInstance(nodes[1], Paragraph)

    def test_ordered_list(self) -> None:
        nodes = parse_body("1. first\n2. second\n")
        plain_list = nodes[0]
        assert isinstance(plain_list, PlainList)
        self.assertTrue(plain_list.ordered)

    def test_table(self) -> None:
        nodes = parse_body("| Name | Value |\n|------+-------|\n| a    | 1     |\n| b    | 2     |\n")
        table = nodes[0]
        assert isinstance(table, Table)
        rows = [row for row in table.children if isinstance(row, TableRow)]
        self.assertListEqual([row.header for row in rows], [True, False, False])
        self.assertEqual(rows[0].children[1].children[0].value, "Value")  # type: ignore[attr-defined]

    def test_table_without_header(self) -> None:
        nodes = parse_body("| a | 1 |\n| b | 2 |\n")
        self.assertFalse(any(row.header for row in nodes[0].children))

    def test_latex_environment(self) -> None:
        nodes = parse_body("\\begin{equation}\nx^2\n\\end{equation}\n")
        environment = nodes[0]
        assert isinstance(environment, LatexEnvironment)
        self.assertEqual(environment.value, "\\begin{equation}\nx^2\n\\end{equation}")

    def test_attributes(self) -> None:
        nodes = parse_body("#+ATTR_CONFLUENCE: :width 30%\n[[file:a.png]]\n\n[[file:b.png]]\n")
        self.assertEqual(nodes[0].attributes.get("width"), "30%")
        self.assertIsNone(nodes[1].attributes.get("width"))

    def test_drawer_and_comment(self) -> None:
        nodes = parse_body(":LOGBOOK:\n- State DONE\n:END:\n# a comment\nvisible\n")
        self.assertEqual(len(nodes), 1)
        self.assertEqual(nodes[0].children[0].value, "visible")


class TestDocument(TypedTestCase):
    def test_parse(self) -> None:
        document = parse_document(
            "#+TITLE: Sample\n"
            "#+CONFLUENCE_PAGE_ID: 12345\n"
            "#+OPTIONS: toc:t\n"
            "\n"
            "Intro text.\n"
            "\n"
            "* First :tag:\n"
            "Body of first.\n"
            "** Sub\n"
            "* Second\n"
        )
        self.assertEqual(document.title, "Sample")
        self.assertEqual(document.page_id, "12345")
        self.assertEqual(document.option_flag("toc"), True)

        self.assertIsInstance(document.children[0], Section)
        headings = [node for node in document.children if isinstance(node, Heading)]
        self.assertListEqual([h.title_text for h in headings], ["First", "Second"])
        self.assertListEqual(headings[0].tags, ["tag"])

        first = headings[0]
        self.assertIsInstance(first.children[0], Section)
        self.assertIsInstance(first.children[1], Heading)

    def test_read(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / "page.org"
            path.write_text("Text only.\n", encoding="utf-8")
            document = read_document(path)
            self.assertEqual(document.title, "page")
            self.assertEqual(document.base_dir, Path(directory).absolute())

    def test_read_missing(self) -> None:
        with self.assertRaises(DocumentError):
            read_document(Path(os.path.dirname(__file__)) / "missing.org")


if __name__ == "__main__":
    unittest.main()
