"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

from dataclasses import dataclass, field
from typing import Literal

from .clio import composite_option, value_option
from .environment import JiraServerProperties

CodeTheme = Literal["Confluence", "Default", "DJango", "Eclipse", "Emacs", "FadeToGrey", "Midnight", "RDark"]


@dataclass
class ImageOptions:
    """
    Options for images embedded with a file link.

    :param width: Display width of images, unless overridden with `#+ATTR_CONFLUENCE: :width`.
    :param extensions: File extensions (without leading dot) that identify a file link as an inline image.
    """

    width: str = field(default="60%", metadata=value_option("Display width of embedded images."))
    extensions: list[str] = field(default_factory=lambda: ["png", "jpg", "jpeg", "gif", "svg", "bmp", "webp"])


@dataclass
class JiraOptions:
    """
    Identifies the Jira server queried by Jira issue lists and charts.

    :param server_name: Application link name of the Jira server.
    :param server_id: Application link identifier of the Jira server.
    """

    server_name: str | None = field(default=None, metadata=value_option("Application link name of the Jira server."))
    server_id: str | None = field(default=None, metadata=value_option("Application link identifier of the Jira server."))

    def get_server(self) -> JiraServerProperties:
        return JiraServerProperties(self.server_name, self.server_id)


@dataclass
class ConverterOptions:
    """
    Options for converting an Org-mode document tree into Confluence Storage Format.

    :param code_theme: Color scheme of code blocks.
    :param image: Options for embedded images.
    :param jira: Jira server for issue lists and charts.
    """

    code_theme: CodeTheme = field(default="Emacs", metadata=value_option("Color scheme of code blocks."))
    image: ImageOptions = field(default_factory=ImageOptions, metadata=composite_option())
    jira: JiraOptions = field(default_factory=JiraOptions, metadata=composite_option())
