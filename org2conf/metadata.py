"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

from dataclasses import dataclass

from .document import Document


@dataclass
class ConfluenceSiteMetadata:
    """
    Data associated with a Confluence wiki site.

    :param domain: Confluence organization domain (e.g. `example.atlassian.net`).
    :param base_path: Base path for Confluence (default: `/wiki/`).
    :param space_key: Default Confluence space key (e.g. `~hunyadi` or `INST`).
    """

    domain: str
    base_path: str
    space_key: str | None


@dataclass(frozen=True)
class ExportContext:
    """
    Settings that apply to a single export of a document, fixed for the duration of the export.

    :param page_id: Confluence page ID of the page to update.
    :param space_key: Confluence space key of the page.
    :param title: Document title; also the title of the Confluence page.
    :param user: Confluence user name acting on the page.
    :param upload_attachments: Whether local images are to be uploaded as page attachments.
    :param toc: Whether a table of contents is placed at the top of the page.
    :param numbered_headings: Whether headings are prefixed with their section number.
    """

    page_id: str | None
    space_key: str | None
    title: str
    user: str | None = None
    upload_attachments: bool = False
    toc: bool = False
    numbered_headings: bool = False

    @classmethod
    def create(
        cls,
        document: Document,
        *,
        user: str | None = None,
        upload_attachments: bool = False,
        space_key: str | None = None,
        toc: bool | None = None,
        numbered_headings: bool | None = None,
    ) -> "ExportContext":
        """
        Builds an export context from document directives and caller overrides.

        Table of contents and numbered headings are taken from the argument when given, else from `#+OPTIONS:` in
        the document, and are off by default. The space key in the document takes precedence over `space_key`, which
        acts as a site-wide default.
        """

        if toc is None:
            toc = document.option_flag("toc") or False
        if numbered_headings is None:
            numbered_headings = document.option_flag("num") or False

        return cls(
            page_id=document.page_id,
            space_key=document.space_key or space_key,
            title=document.title,
            user=user,
            upload_attachments=upload_attachments,
            toc=toc,
            numbered_headings=numbered_headings,
        )
