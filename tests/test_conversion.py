"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import tempfile
import unittest
from pathlib import Path

from org2conf.attachment import ImageData
from org2conf.converter import ConfluenceDocument, ConversionError
from org2conf.document import Block, BlockVariant, Document, Paragraph, Text
from org2conf.metadata import ExportContext
from org2conf.options import ConverterOptions, ImageOptions
from tests.utility import TypedTestCase, convert_text

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
)


def convert(text: str, **kwargs) -> str:
    return convert_text(text, **kwargs).xhtml()


class TestConversion(TypedTestCase):
    def test_note_panel(self) -> None:
        document = Document(
            children=[
                Block(
                    variant=BlockVariant.SPECIAL,
                    block_type="note",
                    children=[Paragraph(children=[Text(value="hi")])],
                )
            ]
        )
        context = ExportContext(page_id=None, space_key=None, title="Page")
        xhtml = ConfluenceDocument(document, context, ConverterOptions()).xhtml()
        self.assertEqual(
            xhtml,
            '<ac:structured-macro ac:name="note" ac:schema-version="1">'
            '<ac:parameter ac:name="title">[Note]</ac:parameter>'
            "<ac:rich-text-body><p>hi</p></ac:rich-text-body>"
            "</ac:structured-macro>",
        )

    def test_admonitions(self) -> None:
        for block_type, title in [
            ("warning", "[Warning]"),
            ("info", "[Info]"),
            ("tip", "[Tip]"),
            ("expand", "[Click to expand...]"),
        ]:
            with self.subTest(block_type=block_type):
                xhtml = convert(f"#+BEGIN_{block_type.upper()}\ncontent\n#+END_{block_type.upper()}\n")
                self.assertStartsWith(xhtml, f'<ac:structured-macro ac:name="{block_type}" ac:schema-version="1">')
                self.assertIn(f'<ac:parameter ac:name="title">{title}</ac:parameter>', xhtml)

    def test_admonition_caption(self) -> None:
        text = "#+CAPTION: Read this\n#+BEGIN_WARNING\ncontent\n#+END_WARNING\n"
        xhtml = convert(text)
        self.assertIn('<ac:parameter ac:name="title">Read this</ac:parameter>', xhtml)

        # the same input always yields the same output
        self.assertEqual(convert(text), xhtml)

    def test_example(self) -> None:
        xhtml = convert("#+BEGIN_EXAMPLE\na < b\n#+END_EXAMPLE\n")
        self.assertEqual(
            xhtml,
            '<ac:structured-macro ac:name="panel" ac:schema-version="1">'
            '<ac:parameter ac:name="title">[Example]</ac:parameter>'
            '<ac:parameter ac:name="borderStyle">solid</ac:parameter>'
            "<ac:rich-text-body><pre>a &lt; b</pre></ac:rich-text-body>"
            "</ac:structured-macro>",
        )

    def test_example_caption(self) -> None:
        xhtml = convert("#+CAPTION: Output\n#+BEGIN_EXAMPLE\nok\n#+END_EXAMPLE\n")
        self.assertIn('<ac:parameter ac:name="title">Output</ac:parameter>', xhtml)

    def test_center(self) -> None:
        xhtml = convert("#+BEGIN_CENTER\ncentered text\n#+END_CENTER\n")
        self.assertEqual(xhtml, '<p style="text-align: center;">centered text</p>')

    def test_quote(self) -> None:
        xhtml = convert("#+BEGIN_QUOTE\nwise words\n#+END_QUOTE\n")
        self.assertEqual(xhtml, "<blockquote><p>wise words</p></blockquote>")

    def test_history(self) -> None:
        xhtml = convert("#+BEGIN_HISTORY\n#+END_HISTORY\n")
        self.assertEqual(
            xhtml,
            '<ac:structured-macro ac:name="change-history" ac:schema-version="1">'
            '<ac:parameter ac:name="limit">3</ac:parameter>'
            "</ac:structured-macro>",
        )
        self.assertIn('<ac:parameter ac:name="limit">7</ac:parameter>', convert("#+BEGIN_HISTORY :limit 7\n#+END_HISTORY\n"))
        self.assertIn('<ac:parameter ac:name="limit">0</ac:parameter>', convert("#+BEGIN_HISTORY :limit 0\n#+END_HISTORY\n"))

    def test_unknown_block(self) -> None:
        with self.assertLogs("org2conf.converter", level=logging.WARNING):
            xhtml = convert("#+BEGIN_SIDEBAR\ncontent\n#+END_SIDEBAR\n")
        self.assertEqual(xhtml, "")

    def test_export(self) -> None:
        xhtml = convert("#+BEGIN_EXPORT html\n<b>bold</b>\n#+END_EXPORT\n#+BEGIN_EXPORT latex\n\\LaTeX\n#+END_EXPORT\n")
        self.assertEqual(
            xhtml,
            '<ac:structured-macro ac:name="html" ac:schema-version="1">'
            "<ac:plain-text-body><![CDATA[<b>bold</b>]]></ac:plain-text-body>"
            "</ac:structured-macro>",
        )

    def test_latex_environment(self) -> None:
        xhtml = convert("\\begin{equation}\nE = mc^2\n\\end{equation}\n")
        self.assertStartsWith(xhtml, '<ac:structured-macro ac:name="mathblock" ac:schema-version="1">')
        self.assertIn("<![CDATA[\\begin{equation}\nE = mc^2\n\\end{equation}]]>", xhtml)

    def test_headings(self) -> None:
        xhtml = convert("* One\n** Two\n*** Three\n* Four\n")
        self.assertEqual(xhtml, "<h1>One</h1><h2>Two</h2><h3>Three</h3><h1>Four</h1>")

    def test_heading_level_clamped(self) -> None:
        xhtml = convert("* 1\n** 2\n*** 3\n**** 4\n***** 5\n****** 6\n******* 7\n")
        self.assertIn("<h6>6</h6><h6>7</h6>", xhtml)

    def test_numbered_headings(self) -> None:
        text = "* One\n** Sub\n* Two\n"
        self.assertEqual(convert(text, numbered_headings=True), "<h1>1 One</h1><h2>1.1 Sub</h2><h1>2 Two</h1>")
        self.assertEqual(convert("#+OPTIONS: num:t\n" + text), "<h1>1 One</h1><h2>1.1 Sub</h2><h1>2 Two</h1>")
        self.assertEqual(convert("#+OPTIONS: num:t\n" + text, numbered_headings=False), "<h1>One</h1><h2>Sub</h2><h1>Two</h1>")

    def test_toc(self) -> None:
        toc = (
            '<ac:structured-macro ac:name="toc" ac:schema-version="1" data-layout="default">'
            '<ac:parameter ac:name="outline">clear</ac:parameter>'
            '<ac:parameter ac:name="style">default</ac:parameter>'
            "</ac:structured-macro>"
        )
        self.assertEqual(convert("* Heading\n", toc=True), toc + "<h1>Heading</h1>")
        self.assertEqual(convert("#+OPTIONS: toc:t\n* Heading\n"), toc + "<h1>Heading</h1>")
        self.assertEqual(convert("#+OPTIONS: toc:nil\n* Heading\n"), "<h1>Heading</h1>")
        self.assertEqual(convert("* Heading\n"), "<h1>Heading</h1>")

    def test_markup(self) -> None:
        xhtml = convert("*bold* /italic/ _under_ +strike+ =verb= ~code~\n")
        self.assertEqual(
            xhtml,
            "<p><strong>bold</strong> <em>italic</em> <u>under</u> <s>strike</s> <code>verb</code> <code>code</code></p>",
        )

    def test_paragraph_joins_lines(self) -> None:
        self.assertEqual(convert("first\nsecond\n"), "<p>first second</p>")

    def test_line_break(self) -> None:
        self.assertEqual(convert("first\\\\\nsecond\n"), "<p>first<br/>second</p>")

    def test_lists(self) -> None:
        xhtml = convert("- one\n- two\n  1. nested\n")
        self.assertEqual(xhtml, "<ul><li>one</li><li>two<ol><li>nested</li></ol></li></ul>")

    def test_table(self) -> None:
        xhtml = convert("| Name | Value |\n|------+-------|\n| a | *1* |\n")
        self.assertEqual(
            xhtml,
            "<table><tbody>"
            "<tr><th>Name</th><th>Value</th></tr>"
            "<tr><td>a</td><td><strong>1</strong></td></tr>"
            "</tbody></table>",
        )

    def test_external_link(self) -> None:
        self.assertEqual(
            convert("[[https://example.com]]\n"),
            '<p><a href="https://example.com">https://example.com</a></p>',
        )
        self.assertEqual(
            convert("[[https://example.com/a b][Example]]\n"),
            '<p><a href="https://example.com/a%20b">Example</a></p>',
        )

    def test_heading_link(self) -> None:
        text = "#+TITLE: My Page\n* Getting Started\nSee [[*Getting Started][the intro]] or [[*Getting Started]].\n"
        xhtml = convert(text)
        self.assertIn('<a href="#MyPage-theintro">the intro</a>', xhtml)
        self.assertIn('<a href="#MyPage-GettingStarted">Getting Started</a>', xhtml)

    def test_custom_id_link(self) -> None:
        text = "#+TITLE: Page\n* Install\n:PROPERTIES:\n:CUSTOM_ID: install\n:END:\n* Use\nSee [[#install][setup]].\n"
        self.assertIn('<a href="#Page-setup">setup</a>', convert(text))

    def test_target_link(self) -> None:
        xhtml = convert("#+TITLE: Page\nA <<point>> here.\n\nGo to [[point]].\n")
        document = convert_text("#+TITLE: Page\nA <<point>> here.\n\nGo to [[point]].\n")
        self.assertEqual(document.xhtml(), xhtml)

        self.assertIn('<ac:structured-macro ac:name="anchor" ac:schema-version="1"><ac:parameter ac:name="">org', xhtml)
        self.assertIn('<a href="#Page-org', xhtml)

    def test_named_element(self) -> None:
        xhtml = convert("#+NAME: summary\n| a | b |\n")
        self.assertStartsWith(xhtml, '<ac:structured-macro ac:name="anchor" ac:schema-version="1">')
        self.assertIn("<table>", xhtml)

    def test_unresolved_link(self) -> None:
        with self.assertLogs("org2conf.links", level=logging.WARNING):
            xhtml = convert("See [[*Nowhere][elsewhere]].\n")
        self.assertEqual(xhtml, "<p>See elsewhere.</p>")

    def test_image(self) -> None:
        path = Path("/docs/page.org")
        text = "#+ATTR_CONFLUENCE: :width 30%\n[[file:images/diagram.png]]\n\n[[./photo.jpg]]\n"

        document = convert_text(text, path=path)
        self.assertEqual(
            document.xhtml(),
            '<p><ac:image ac:width="30%"><ri:attachment ri:filename="diagram.png"/></ac:image></p>'
            '<p><ac:image ac:width="60%"><ri:attachment ri:filename="photo.jpg"/></ac:image></p>',
        )
        self.assertListEqual(document.images, [])

    def test_image_width_option(self) -> None:
        options = ConverterOptions(image=ImageOptions(width="100%"))
        xhtml = convert("[[file:a.png]]\n", options=options)
        self.assertIn('ac:width="100%"', xhtml)

    def test_image_upload(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            base_dir = Path(directory)
            (base_dir / "a.png").write_bytes(b"")
            (base_dir / "b.png").write_bytes(b"")

            text = "[[file:b.png]]\n\n[[file:a.png]]\n\n[[file:b.png]]\n"
            document = convert_text(text, path=base_dir / "page.org", upload_attachments=True)
            self.assertListEqual(
                document.images,
                [ImageData(base_dir / "b.png", "b.png"), ImageData(base_dir / "a.png", "a.png")],
            )

    def test_image_name_conflict(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            base_dir = Path(directory)
            for subdir in ("first", "second"):
                (base_dir / subdir).mkdir()
                (base_dir / subdir / "diagram.png").write_bytes(b"")

            text = "[[file:first/diagram.png]]\n\n[[file:second/diagram.png]]\n"
            with self.assertLogs("org2conf.attachment", level=logging.WARNING):
                document = convert_text(text, path=base_dir / "page.org", upload_attachments=True)
            self.assertListEqual(document.images, [ImageData(base_dir / "first" / "diagram.png", "diagram.png")])

    def test_missing_image(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            with self.assertLogs("org2conf.links", level=logging.WARNING):
                document = convert_text("[[file:missing.png]]\n", path=Path(directory) / "page.org", upload_attachments=True)
            self.assertEqual(len(document.images), 1)

    def test_file_link(self) -> None:
        xhtml = convert("[[file:report.pdf][Report]]\n")
        self.assertEqual(xhtml, '<p><a href="report.pdf">Report</a></p>')

    def test_create(self) -> None:
        with tempfile.TemporaryDirectory() as directory:
            path = Path(directory) / "page.org"
            path.write_text("#+CONFLUENCE_PAGE_ID: 42\n#+CONFLUENCE_SPACE_KEY: DOCS\n* Heading\n", encoding="utf-8")
            document = ConfluenceDocument.create(path, ConverterOptions(), space_key="OTHER")
            self.assertEqual(document.page_id, "42")
            self.assertEqual(document.context.space_key, "DOCS")
            self.assertEqual(document.title, "page")
            self.assertEqual(document.xhtml(), "<h1>Heading</h1>")

    def test_create_missing(self) -> None:
        with self.assertRaises(ConversionError):
            ConfluenceDocument.create(Path("/nonexistent/page.org"), ConverterOptions())


if __name__ == "__main__":
    unittest.main()
