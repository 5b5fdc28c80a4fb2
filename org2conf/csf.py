"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import re
from typing import Iterable

import lxml.etree as ET
from lxml.builder import ElementMaker

# XML namespaces typically associated with Confluence Storage Format documents
_namespaces = {
    "ac": "http://atlassian.com/content",
    "ri": "http://atlassian.com/resource/identifier",
}
for key, value in _namespaces.items():
    ET.register_namespace(key, value)

HTML = ElementMaker()
AC_ELEM = ElementMaker(namespace=_namespaces["ac"])
RI_ELEM = ElementMaker(namespace=_namespaces["ri"])

ElementType = ET._Element  # pyright: ignore [reportPrivateUsage]

# mixed content: a sequence of elements and text nodes
Fragment = list[ElementType | str]


def _qname(namespace_uri: str, name: str) -> str:
    return ET.QName(namespace_uri, name).text


def AC_ATTR(name: str) -> str:
    return _qname(_namespaces["ac"], name)


def RI_ATTR(name: str) -> str:
    return _qname(_namespaces["ri"], name)


def append_content(parent: ElementType, content: Iterable[ElementType | str]) -> ElementType:
    """
    Appends mixed content to an element.

    Strings are chained as the text of the parent (before its first child) or the tail of the last child.

    :param parent: Element to extend.
    :param content: Elements and strings to append, in document order.
    :returns: The parent element.
    """

    for item in content:
        if isinstance(item, str):
            if len(parent):
                last = parent[-1]
                last.tail = (last.tail or "") + item
            else:
                parent.text = (parent.text or "") + item
        else:
            parent.append(item)
    return parent


def fragment_to_root(content: Iterable[ElementType | str]) -> ElementType:
    "Wraps mixed content in a root element that declares namespaces associated with Confluence documents."

    root = ET.Element("root", nsmap=_namespaces)
    return append_content(root, content)


def elements_to_string(root: ElementType) -> str:
    """
    Converts a Confluence Storage Format element tree into an XML string to push to Confluence REST API.

    :param root: Synthesized XML element tree of a Confluence Storage Format document.
    :returns: XML as a string.
    """

    xml = ET.tostring(root, encoding="utf8", method="xml").decode("utf8")
    if re.match(r"^<root\s+[^>]*/>\s*$", xml):
        return ""
    m = re.match(r"^<root\s+[^>]*>(.*)</root>\s*$", xml, re.DOTALL)
    if m:
        return m.group(1)
    else:
        raise ValueError("expected: Confluence content")


def fragment_to_string(content: Iterable[ElementType | str]) -> str:
    "Serializes mixed content into Confluence Storage Format XHTML."

    return elements_to_string(fragment_to_root(content))


def fragment_to_text(content: Iterable[ElementType | str]) -> str:
    "Concatenates the text content of mixed content, dropping markup."

    parts: list[str] = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
        else:
            parts.append("".join(item.itertext()))
    return "".join(parts)
