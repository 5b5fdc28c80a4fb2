"""
Publish Org-mode files to Confluence wiki.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

from argparse import ArgumentParser, Namespace
from dataclasses import MISSING, Field, dataclass, fields, is_dataclass, replace
from types import NoneType, UnionType
from typing import Any, Literal, TypeVar, cast, get_args, get_origin

_METADATA_KEY = "argument"

T = TypeVar("T")


@dataclass
class ValueOption:
    text: str


@dataclass
class CompositeOption:
    pass


def value_option(text: str) -> dict[str, Any]:
    "Identifies a data-class field as a command-line option that assigns a value."

    return {_METADATA_KEY: ValueOption(text)}


def composite_option() -> dict[str, Any]:
    "Identifies a data-class field as a nested group of command-line options, prefixed with the field name."

    return {_METADATA_KEY: CompositeOption()}


def _help_text(field: Field[Any], text: str) -> str:
    if field.default is not MISSING and field.default is not None:
        return f"{text} (default: {field.default!s})"
    return text


def _add_arguments(parser: ArgumentParser, options_type: type[Any], prefixes: tuple[str, ...]) -> None:
    for field in fields(options_type):
        option = field.metadata.get(_METADATA_KEY)
        if option is None:
            continue

        names = (*prefixes, field.name)
        flag = "--" + "-".join(name.replace("_", "-") for name in names)
        dest = "_".join(names)

        if isinstance(option, CompositeOption):
            if not (isinstance(field.type, type) and is_dataclass(field.type)):
                raise TypeError(f"expected: data-class for composite option `{field.name}`; got: {field.type}")
            _add_arguments(parser, field.type, names)
            continue

        if not isinstance(option, ValueOption):
            raise TypeError(f"expected: value option for `{field.name}`; got: {type(option).__name__}")

        default = field.default if field.default is not MISSING else None
        origin = get_origin(field.type)
        if origin is Literal:
            parser.add_argument(flag, dest=dest, choices=get_args(field.type), default=default, help=_help_text(field, option.text))
            continue

        value_type = field.type
        if origin is UnionType:
            union_types = [tp for tp in get_args(field.type) if tp is not NoneType]
            if len(union_types) != 1:
                raise TypeError(f"expected: `T` or `T | None` as argument type; got: {field.type}")
            value_type = union_types[0]

        if not isinstance(value_type, type):
            raise TypeError(f"expected: known argument type; got: {field.type}")

        parser.add_argument(
            flag,
            dest=dest,
            type=value_type,
            default=default,
            metavar=value_type.__name__.upper(),
            help=_help_text(field, option.text),
        )


def add_arguments(parser: ArgumentParser, options_type: type[Any]) -> None:
    """
    Adds arguments to a command-line argument parser.

    :param parser: A command-line argument parser.
    :param options_type: A data-class type whose fields carry option metadata.
    """

    if not is_dataclass(options_type):
        raise TypeError(f"expected: data-class as argument source; got: {options_type.__name__}")
    _add_arguments(parser, options_type, ())


def set_defaults(parser: ArgumentParser, options: object) -> None:
    "Replaces the defaults of arguments added with `add_arguments` with values taken from an options object."

    defaults: dict[str, Any] = {}

    def _collect(obj: object, prefixes: tuple[str, ...]) -> None:
        for field in fields(cast(Any, obj)):
            option = field.metadata.get(_METADATA_KEY)
            value = getattr(obj, field.name)
            if isinstance(option, CompositeOption):
                _collect(value, (*prefixes, field.name))
            elif isinstance(option, ValueOption):
                defaults["_".join((*prefixes, field.name))] = value

    _collect(options, ())
    parser.set_defaults(**defaults)


def _get_options(args: Namespace, options_type: type[T], prefixes: tuple[str, ...], base: T | None) -> T:
    params: dict[str, Any] = {}
    for field in fields(cast(Any, options_type)):
        option = field.metadata.get(_METADATA_KEY)
        names = (*prefixes, field.name)
        if isinstance(option, CompositeOption):
            nested_base = getattr(base, field.name) if base is not None else None
            params[field.name] = _get_options(args, cast(type[Any], field.type), names, nested_base)
        elif isinstance(option, ValueOption):
            value = getattr(args, "_".join(names), MISSING)
            if value is not MISSING:
                params[field.name] = value
    if base is not None:
        return replace(cast(Any, base), **params)
    return options_type(**params)


def get_options(args: Namespace, options_type: type[T], base: T | None = None) -> T:
    """
    Extracts configuration options from command-line arguments acquired by an argument parser.

    :param args: Arguments acquired by a command-line argument parser.
    :param options_type: A data-class type that encapsulates configuration options.
    :param base: Options that supply values for fields not exposed on the command line (e.g. read from a file).
    :returns: Configuration options as a data-class instance.
    """

    if not is_dataclass(options_type):
        raise TypeError(f"expected: data-class as argument target; got: {options_type.__name__}")
    return _get_options(args, options_type, (), base)
