"""
Publish Org-mode files to Confluence wiki.

Parses Org-mode files, converts the document tree into the Confluence Storage Format (XHTML), and invokes
Confluence API endpoints to upload images and update page content.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import argparse
import logging
import os
import sys
import typing
from pathlib import Path
from typing import Any, Sequence

from requests import HTTPError, JSONDecodeError, RequestException

from . import __version__
from .api import ConfluenceAPI
from .clio import add_arguments, get_options, set_defaults
from .config import Configuration, default_config_path, load_configuration
from .converter import ConversionError
from .credentials import CredentialCache, resolve_credentials
from .environment import ArgumentError, ConfluenceError, ConnectionProperties, PageError
from .extra import override
from .options import ConverterOptions
from .publisher import Publisher, PublisherOptions, convert
from .reader import DocumentError


class Arguments(argparse.Namespace):
    command: str
    orgpath: Path
    config: Path
    domain: str | None
    path: str | None
    username: str | None
    api_key: str | None
    space: str | None
    timeout: float | None
    loglevel: str
    headers: dict[str, str] | None
    output: str | None
    toc: bool | None
    numbered_headings: bool | None
    without_post: bool
    message: str | None


class KwargsAppendAction(argparse.Action):
    """Append key-value pairs to a dictionary."""

    @override
    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: None | str | Sequence[Any],
        option_string: str | None = None,
    ) -> None:
        try:
            d = dict(map(lambda x: x.split("=", 1), typing.cast(Sequence[str], values)))
        except ValueError:
            raise argparse.ArgumentError(
                self,
                f'Could not parse argument "{values}". It should follow the format: k1=v1 k2=v2 ...',
            ) from None
        setattr(namespace, self.dest, d)


def _add_content_arguments(parser: argparse.ArgumentParser, configuration: Configuration) -> None:
    "Options that control how a document is converted."

    parser.add_argument("orgpath", type=Path, help="Path to Org-mode file to convert.")
    parser.add_argument(
        "--toc",
        dest="toc",
        action="store_const",
        const=True,
        default=configuration.toc,
        help="Place a table of contents at the top of the page (overrides `#+OPTIONS: toc`).",
    )
    parser.add_argument(
        "--no-toc",
        dest="toc",
        action="store_const",
        const=False,
        help="Omit the table of contents (overrides `#+OPTIONS: toc`).",
    )
    parser.add_argument(
        "--numbered-headings",
        dest="numbered_headings",
        action="store_const",
        const=True,
        default=configuration.numbered_headings,
        help="Prefix headings with their section number (overrides `#+OPTIONS: num`).",
    )
    parser.add_argument(
        "--no-numbered-headings",
        dest="numbered_headings",
        action="store_const",
        const=False,
        help="Show headings without section number (overrides `#+OPTIONS: num`).",
    )

    converter_group = parser.add_argument_group("converter options")
    add_arguments(typing.cast(argparse.ArgumentParser, converter_group), ConverterOptions)
    set_defaults(parser, configuration.converter)


def get_parser(configuration: Configuration | None = None) -> argparse.ArgumentParser:
    configuration = configuration or Configuration()
    connection = configuration.connection

    parser = argparse.ArgumentParser(
        prog="org2conf",
        description="Publish Org-mode files to Confluence wiki.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=default_config_path(),
        help="YAML configuration file (default: '~/.config/org2conf/config.yaml').",
    )
    parser.add_argument("-d", "--domain", default=connection.domain, help="Confluence organization domain.")
    parser.add_argument("-p", "--path", default=connection.path, help="Base path for Confluence (default: '/wiki/').")
    parser.add_argument("-u", "--username", default=connection.username, help="Confluence user name.")
    parser.add_argument(
        "-a",
        "--api-key",
        dest="api_key",
        help="Confluence API key. If omitted, cached credentials are used, or prompted for.",
    )
    parser.add_argument(
        "-s",
        "--space",
        default=connection.space,
        help="Confluence space key, unless the document sets `#+CONFLUENCE_SPACE_KEY:`.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=connection.timeout,
        help="Timeout for each Confluence API request in seconds (default: 3).",
    )
    parser.add_argument(
        "-l",
        "--loglevel",
        choices=[
            logging.getLevelName(level).lower()
            for level in (
                logging.DEBUG,
                logging.INFO,
                logging.WARN,
                logging.ERROR,
                logging.CRITICAL,
            )
        ],
        default=logging.getLevelName(logging.WARN).lower(),
        help="Use this option to set the log verbosity.",
    )
    parser.add_argument(
        "--headers",
        nargs="+",
        required=False,
        default=connection.headers,
        action=KwargsAppendAction,
        metavar="KEY=VALUE",
        help="Apply custom headers to all Confluence API requests.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    preview = subparsers.add_parser("preview", help="Convert a file to Confluence Storage Format locally.")
    _add_content_arguments(preview, configuration)
    preview.add_argument(
        "-o",
        "--output",
        help="Output file, or '-' for standard output (default: source file with extension '.csf').",
    )

    info = subparsers.add_parser("info", help="Show title and version of the page a file is associated with.")
    info.add_argument("orgpath", type=Path, help="Path to Org-mode file.")

    attachments = subparsers.add_parser("attachments", help="List attachments of the page a file is associated with.")
    attachments.add_argument("orgpath", type=Path, help="Path to Org-mode file.")

    push = subparsers.add_parser("push", help="Convert a file and update the Confluence page it is associated with.")
    _add_content_arguments(push, configuration)
    push.add_argument(
        "--without-post",
        action="store_true",
        default=False,
        help="Fetch the page version and convert, but neither upload attachments nor update the page.",
    )
    push.add_argument("-m", "--message", help="Change comment for the new page version. If omitted, prompted for.")
    push.add_argument(
        "-o",
        "--output",
        help="With --without-post, file to write converted content to (default: source file with extension '.csf').",
    )

    subparsers.add_parser("logout", help="Remove cached credentials.")

    return parser


def _get_config_path(argv: Sequence[str] | None) -> Path:
    "Extracts the configuration file path ahead of full argument parsing, which depends on the configuration."

    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("-c", "--config", type=Path, default=default_config_path())
    args, _ = pre_parser.parse_known_args(argv)
    return typing.cast(Path, args.config)


def _get_connection_properties(args: Arguments, cache: CredentialCache) -> ConnectionProperties:
    domain = args.domain or os.getenv("CONFLUENCE_DOMAIN")
    if not domain:
        raise ArgumentError("Confluence domain not specified")

    credentials = resolve_credentials(
        domain,
        args.username or os.getenv("CONFLUENCE_USER_NAME"),
        args.api_key or os.getenv("CONFLUENCE_API_KEY"),
        cache,
    )

    return ConnectionProperties(
        domain=domain,
        base_path=args.path,
        space_key=args.space,
        user_name=credentials.user_name,
        api_key=credentials.api_key,
        timeout=args.timeout,
        headers=args.headers,
    )


def _write_output(content: str, orgpath: Path, output: str | None) -> str:
    if output == "-":
        sys.stdout.write(content)
        sys.stdout.write("\n")
        return "standard output"

    output_path = Path(output) if output else orgpath.with_suffix(".csf")
    output_path.write_text(content, encoding="utf-8")
    return str(output_path)


def _run(args: Arguments, configuration: Configuration) -> bool:
    "Executes a command. Returns whether the command succeeded."

    cache = CredentialCache()

    if args.command == "logout":
        if cache.clear():
            print("Removed cached credentials.")
        else:
            print("No cached credentials to remove.")
        return True

    if args.command == "preview":
        options = PublisherOptions(
            toc=args.toc,
            numbered_headings=args.numbered_headings,
            converter=get_options(args, ConverterOptions, configuration.converter),
        )
        document = convert(args.orgpath, options, space_key=args.space)
        target = _write_output(document.xhtml(), args.orgpath, args.output)
        print(f"Converted {args.orgpath} to {target}.")
        return True

    properties = _get_connection_properties(args, cache)
    with ConfluenceAPI(properties) as api:
        if args.command == "info":
            snapshot = Publisher(api, user=properties.user_name).page_info(args.orgpath)
            space = f" in space {snapshot.space.key}" if snapshot.space is not None else ""
            print(f"Page {snapshot.id}{space}: {snapshot.title} (version {snapshot.version.number})")
            return True

        if args.command == "attachments":
            page_attachments = Publisher(api, user=properties.user_name).list_attachments(args.orgpath)
            for attachment in page_attachments:
                print(f"{attachment.id}\t{attachment.title}")
            print(f"Found {len(page_attachments)} attachment(s).")
            return True

        if args.command == "push":
            options = PublisherOptions(
                toc=args.toc,
                numbered_headings=args.numbered_headings,
                converter=get_options(args, ConverterOptions, configuration.converter),
            )
            publisher = Publisher(api, options, user=properties.user_name)
            result = publisher.publish(args.orgpath, post=not args.without_post, message=args.message)
            if result is None:
                print(f"Failed to push {args.orgpath}; see log for details.")
                return False
            if result.posted:
                print(f"Updated page {result.page_id} to version {result.version}.")
            else:
                target = _write_output(result.content, args.orgpath, args.output)
                print(f"Converted {args.orgpath} to {target} for page {result.page_id} version {result.version} (not posted).")
            return True

    raise NotImplementedError("match not exhaustive for command")


def main(argv: Sequence[str] | None = None) -> None:
    config_path = _get_config_path(argv)
    try:
        configuration = load_configuration(config_path)
    except ArgumentError as e:
        get_parser().error(str(e))

    parser = get_parser(configuration)
    args = Arguments()
    parser.parse_args(argv, namespace=args)

    logging.basicConfig(
        level=getattr(logging, args.loglevel.upper(), logging.WARN),
        format="%(asctime)s - %(levelname)s - %(funcName)s [%(lineno)d] - %(message)s",
    )

    try:
        succeeded = _run(args, configuration)
    except ArgumentError as e:
        parser.error(str(e))
    except (ConfluenceError, PageError, DocumentError, ConversionError) as e:
        logging.error(e)
        print(f"Failed: {e}")
        sys.exit(1)
    except HTTPError as err:
        logging.error(err)

        # print details for a response with JSON body
        if err.response is not None:
            try:
                logging.error(err.response.json())
            except JSONDecodeError:
                pass

        print(f"Failed: {err}")
        sys.exit(1)
    except RequestException as err:
        logging.error(err)
        print(f"Failed: {err}")
        sys.exit(1)

    if not succeeded:
        sys.exit(1)


if __name__ == "__main__":
    main()
