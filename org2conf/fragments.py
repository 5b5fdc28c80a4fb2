"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import lxml.etree as ET

from .csf import AC_ATTR, AC_ELEM, HTML, RI_ATTR, RI_ELEM, ElementType, Fragment
from .environment import JiraServerProperties


def parameter(name: str, value: str) -> ElementType:
    return AC_ELEM("parameter", {AC_ATTR("name"): name}, value)


def structured_macro(name: str, *content: ElementType, attributes: dict[str, str] | None = None) -> ElementType:
    "Creates a Confluence structured macro with the given parameters and body."

    return AC_ELEM(
        "structured-macro",
        {
            AC_ATTR("name"): name,
            AC_ATTR("schema-version"): "1",
            **(attributes or {}),
        },
        *content,
    )


def plain_text_body(content: str) -> ElementType:
    return AC_ELEM("plain-text-body", ET.CDATA(content))


def rich_text_body(content: Fragment) -> ElementType:
    return AC_ELEM("rich-text-body", {}, *content)


def toc() -> ElementType:
    "Creates a table of contents, constructed from headings in the document."

    return structured_macro(
        "toc",
        parameter("outline", "clear"),
        parameter("style", "default"),
        attributes={"data-layout": "default"},
    )


def math_block(formula: str) -> ElementType:
    "Creates a block-level LaTeX formula, e.g. a `\\begin{equation}` environment."

    return structured_macro("mathblock", plain_text_body(formula))


def html_macro(content: str) -> ElementType:
    "Embeds raw HTML, as given in an `#+BEGIN_EXPORT html` block."

    return structured_macro("html", plain_text_body(content))


def panel(title: str, text: str) -> ElementType:
    "Creates a bordered panel that shows text verbatim."

    return structured_macro(
        "panel",
        parameter("title", title),
        parameter("borderStyle", "solid"),
        rich_text_body([HTML.pre(text)]),
    )


def admonition(class_name: str, title: str, content: Fragment) -> ElementType:
    """
    Creates a titled panel with rich-text content.

    :param class_name: One of the Confluence structured macros `info`, `tip`, `note`, `warning` or `expand`.
    :param title: Title shown in the panel header (or the clickable text of an expand box).
    :param content: Panel content.
    """

    return structured_macro(class_name, parameter("title", title), rich_text_body(content))


def change_history(limit: int) -> ElementType:
    "Lists the most recent versions of the page with their change comments."

    return structured_macro("change-history", parameter("limit", str(limit)))


def code_panel(*, language: str, content: str, title: str, collapse: bool, theme: str) -> ElementType:
    """
    Creates a code block with syntax highlighting.

    :param language: Language identifier recognized by Confluence, or `none` for no highlighting.
    :param content: Source code.
    :param title: Title shown above the code.
    :param collapse: Whether the code block is initially collapsed.
    :param theme: Color scheme, e.g. `Emacs` or `Midnight`.
    """

    return structured_macro(
        "code",
        parameter("theme", theme),
        parameter("linenumbers", "true"),
        parameter("language", language),
        parameter("firstline", "1"),
        parameter("collapse", "true" if collapse else "false"),
        parameter("title", title),
        plain_text_body(content),
    )


def jira_issues(*, query: str, limit: int, columns: str, server: JiraServerProperties) -> ElementType:
    "Creates a list of Jira issues that match a JQL query."

    return structured_macro(
        "jira",
        parameter("server", server.name),
        parameter("serverId", server.server_id),
        parameter("jqlQuery", query),
        parameter("maximumIssues", str(limit)),
        parameter("columns", columns),
    )


def jira_pie_chart(*, query: str, stat_type: str, show_info: bool, server: JiraServerProperties) -> ElementType:
    "Creates a pie chart of Jira issues that match a JQL query, grouped by a statistics field."

    return structured_macro(
        "jirachart",
        parameter("chartType", "pie"),
        parameter("jql", query),
        parameter("statType", stat_type),
        parameter("showinfor", "true" if show_info else "false"),
        parameter("server", server.name),
        parameter("serverId", server.server_id),
    )


def jira_2d_chart(
    *, query: str, limit: int, x_stat_type: str, y_stat_type: str, server: JiraServerProperties
) -> ElementType:
    "Creates a two-dimensional table of Jira issue counts that match a JQL query, grouped by two statistics fields."

    return structured_macro(
        "jirachart",
        parameter("chartType", "twodimensional"),
        parameter("jql", query),
        parameter("numberToShow", str(limit)),
        parameter("xstattype", x_stat_type),
        parameter("ystattype", y_stat_type),
        parameter("server", server.name),
        parameter("serverId", server.server_id),
    )


def attached_image(filename: str, width: str) -> ElementType:
    "Embeds an image attached to the page."

    return AC_ELEM(
        "image",
        {AC_ATTR("width"): width},
        RI_ELEM("attachment", {RI_ATTR("filename"): filename}),
    )


def anchor(identifier: str) -> ElementType:
    "Creates an anchor that same-page links can point to."

    return structured_macro("anchor", parameter("", identifier))


def external_link(href: str, text: Fragment) -> ElementType:
    return HTML.a({"href": href}, *text)


def anchor_link(anchor_name: str, text: Fragment) -> ElementType:
    return HTML.a({"href": f"#{anchor_name}"}, *text)
