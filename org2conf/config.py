"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from cattrs.errors import BaseValidationError

from .environment import ArgumentError
from .options import ConverterOptions
from .serializer import json_to_object

LOGGER = logging.getLogger(__name__)


@dataclass
class ConnectionConfiguration:
    """
    Connection settings that can be stored in the configuration file.

    API keys are not read from the configuration file; use the environment, the command line, or the credential cache.
    """

    domain: str | None = None
    path: str | None = None
    space: str | None = None
    username: str | None = None
    timeout: float | None = None
    headers: dict[str, str] | None = None


@dataclass
class Configuration:
    """
    Contents of the configuration file.

    Example:
    ```yaml
    connection:
      domain: example.atlassian.net
      space: DOCS
    toc: true
    converter:
      code_theme: Midnight
      jira:
        server_name: "Example Jira"
        server_id: 12345678-abcd-ef01-2345-6789abcdef01
    ```
    """

    connection: ConnectionConfiguration = field(default_factory=ConnectionConfiguration)
    toc: bool | None = None
    numbered_headings: bool | None = None
    converter: ConverterOptions = field(default_factory=ConverterOptions)


def default_config_path() -> Path:
    config_home = os.getenv("XDG_CONFIG_HOME")
    base_dir = Path(config_home) if config_home else Path.home() / ".config"
    return base_dir / "org2conf" / "config.yaml"


def load_configuration(path: Path) -> Configuration:
    """
    Reads settings from a YAML configuration file.

    :param path: Configuration file; a missing file yields default settings.
    :returns: Settings read from the file.
    """

    if not path.exists():
        LOGGER.debug("Configuration file not found: %s", path)
        return Configuration()

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ArgumentError(f"invalid YAML in configuration file {path}: {e}") from e

    if data is None:
        return Configuration()
    if not isinstance(data, dict):
        raise ArgumentError(f"expected: mapping at top level of configuration file {path}")

    try:
        return json_to_object(Configuration, data)
    except (BaseValidationError, ValueError, TypeError) as e:
        raise ArgumentError(f"invalid configuration file {path}: {e}") from e
