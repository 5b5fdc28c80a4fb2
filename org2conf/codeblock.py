"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging

from .csf import ElementType
from .document import BlockParameters
from .fragments import code_panel, jira_2d_chart, jira_issues, jira_pie_chart
from .options import ConverterOptions

LOGGER = logging.getLogger(__name__)

# languages recognized by the Confluence code macro
_LANGUAGES = frozenset(
    [
        "actionscript3",
        "applescript",
        "bash",
        "c",
        "c#",
        "coldfusion",
        "cpp",
        "css",
        "delphi",
        "diff",
        "erl",
        "go",
        "groovy",
        "html",
        "java",
        "javafx",
        "js",
        "json",
        "kotlin",
        "perl",
        "php",
        "powershell",
        "py",
        "ruby",
        "rust",
        "sass",
        "scala",
        "shell",
        "sql",
        "swift",
        "text",
        "typescript",
        "vb",
        "xml",
        "yaml",
        "yml",
    ]
)

_LANGUAGE_ALIASES = {
    "asm": "c",
}

# remote shell session, shown as `bash` with a prompt line
_REMOTE_SHELL = "rs"

DEFAULT_JIRA_COLUMNS = "type,key,summary,priority,status,resolution,fixversions,created,updated,due,assignee,reporter"
DEFAULT_JIRA_LIMIT = 3
DEFAULT_CHART_LIMIT = 5


def resolve_language(language: str | None) -> str:
    "Maps an Org-mode source block language to a Confluence code macro language, or `none` for no highlighting."

    if language is None:
        return "none"
    if language in _LANGUAGES:
        return language
    if language == _REMOTE_SHELL:
        return "bash"
    return _LANGUAGE_ALIASES.get(language, "none")


def shell_prompt(parameters: BlockParameters) -> str:
    "A comment line that imitates a shell prompt, e.g. `# localhost:~$`."

    host = parameters.get("host") or "localhost"
    path = parameters.get("path") or "~"
    return f"# {host}:{path}$\n"


def resolve_code_block(
    language: str | None,
    parameters: BlockParameters,
    code: str,
    caption: str | None,
    options: ConverterOptions,
) -> ElementType:
    """
    Renders a source block as a Jira issue list, a Jira chart or a code block.

    :param language: Language of the source block, e.g. `python` or `jira`.
    :param parameters: Block header parameters such as `:limit 10`.
    :param code: Block content: source code, or a JQL query for Jira blocks.
    :param caption: Caption of the block, used as title of code blocks.
    :param options: Converter options that identify the Jira server and code theme.
    """

    if language == "jira":
        limit = parameters.get_int("limit")
        return jira_issues(
            query=code.strip(),
            limit=limit if limit is not None else DEFAULT_JIRA_LIMIT,
            columns=parameters.get("columns") or DEFAULT_JIRA_COLUMNS,
            server=options.jira.get_server(),
        )

    if language == "jirachart-pie":
        show_info = parameters.get_flag("showinfor")
        return jira_pie_chart(
            query=code.strip(),
            stat_type=parameters.get("statType") or "statuses",
            show_info=show_info if show_info is not None else True,
            server=options.jira.get_server(),
        )

    if language == "jirachart-2d":
        limit = parameters.get_int("limit")
        return jira_2d_chart(
            query=code.strip(),
            limit=limit if limit is not None else DEFAULT_CHART_LIMIT,
            x_stat_type=parameters.get("xstattype") or "statuses",
            y_stat_type=parameters.get("ystattype") or "labels",
            server=options.jira.get_server(),
        )

    language_id = resolve_language(language)
    if language_id == "none" and language is not None:
        LOGGER.debug("Language not recognized by Confluence code macro: %s", language)

    if language == _REMOTE_SHELL:
        code = shell_prompt(parameters) + code

    return code_panel(
        language=language_id,
        content=code,
        title=caption or "",
        collapse=parameters.get_flag("collapse") or False,
        theme=options.code_theme,
    )
