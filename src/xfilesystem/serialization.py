"""
Encode/decode helpers for the JSON, YAML and Python-literal formats.

Parsed data comes back either as plain containers (ParseMode.ASSOC) or with
every mapping turned into a SimpleNamespace (ParseMode.OBJECT). Objects
passed for dumping (namespaces, dataclasses) are written as mappings.
"""
from __future__ import annotations

import ast
import dataclasses
import json
import pprint
from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any

import yaml

from xfilesystem import config
from xfilesystem.csv_codec import ParseMode, coerce_mode
from xfilesystem.errors import DecodeError, EncodeError, InvalidArgumentError


def check_document_mode(mode: Any) -> ParseMode:
    """Accept ParseMode.ASSOC or ParseMode.OBJECT; ARRAY only makes sense for CSV."""
    mode = coerce_mode(ParseMode, mode, "mode")
    if mode is ParseMode.ARRAY:
        raise InvalidArgumentError(
            'Invalid mode: "array", must be one of ParseMode.ASSOC, ParseMode.OBJECT.',
            argument="mode",
            value=mode,
        )
    return mode


def to_plain(value: Any) -> Any:
    """Recursively turn namespaces and dataclasses into dicts, tuples into lists."""
    if isinstance(value, SimpleNamespace):
        return {k: to_plain(v) for k, v in vars(value).items()}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {k: to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


def to_namespace(value: Any) -> Any:
    """Recursively turn mappings into SimpleNamespace objects."""
    if isinstance(value, Mapping):
        ns = SimpleNamespace()
        for k, v in value.items():
            setattr(ns, str(k), to_namespace(v))
        return ns
    if isinstance(value, list):
        return [to_namespace(v) for v in value]
    return value


def decode_json(text: str, mode: ParseMode | str = ParseMode.OBJECT) -> Any:
    mode = check_document_mode(mode)
    try:
        if mode is ParseMode.OBJECT:
            return json.loads(text, object_hook=lambda d: SimpleNamespace(**d))
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON: {e}", format="json")


def encode_json(data: Any, indent: int | None = config.JSON_INDENT) -> str:
    try:
        return json.dumps(to_plain(data), indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Could not encode JSON: {e}", format="json")


def decode_yaml(text: str, mode: ParseMode | str = ParseMode.OBJECT) -> Any:
    mode = check_document_mode(mode)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DecodeError(f"Invalid YAML: {e}", format="yaml")
    return to_namespace(data) if mode is ParseMode.OBJECT else data


class _FlowMapping(dict):
    pass


class _FlowSequence(list):
    pass


class _YamlDumper(yaml.SafeDumper):
    """SafeDumper writing _FlowMapping/_FlowSequence in flow style."""


_YamlDumper.add_representer(
    _FlowMapping,
    lambda dumper, data: dumper.represent_mapping("tag:yaml.org,2002:map", data, flow_style=True),
)
_YamlDumper.add_representer(
    _FlowSequence,
    lambda dumper, data: dumper.represent_sequence("tag:yaml.org,2002:seq", data, flow_style=True),
)


def _mark_inline(value: Any, inline: int, depth: int = 0) -> Any:
    """Wrap every container nested `inline` levels deep or more for flow style."""
    if isinstance(value, dict):
        items = {k: _mark_inline(v, inline, depth + 1) for k, v in value.items()}
        return _FlowMapping(items) if depth >= inline else items
    if isinstance(value, list):
        items = [_mark_inline(v, inline, depth + 1) for v in value]
        return _FlowSequence(items) if depth >= inline else items
    return value


def encode_yaml(data: Any, inline: int = config.YAML_INLINE, indent: int = config.YAML_INDENT) -> str:
    """
    Dump data as YAML.

    Args:
        data: Document to dump
        inline: Nesting level from which containers are written in flow
            style ({a: 1}, [1, 2]); 0 writes the whole document inline
        indent: Spaces per nesting level
    """
    try:
        return yaml.dump(
            _mark_inline(to_plain(data), inline),
            Dumper=_YamlDumper,
            indent=indent,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
    except yaml.YAMLError as e:
        raise EncodeError(f"Could not encode YAML: {e}", format="yaml")


def decode_python(text: str) -> Any:
    """Evaluate a Python literal. Never executes code."""
    try:
        return ast.literal_eval(text.strip())
    except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError) as e:
        raise DecodeError(f"Invalid Python literal: {e}", format="python")


def encode_python(data: Any) -> str:
    plain = to_plain(data)
    text = pprint.pformat(plain, indent=1, width=100, sort_dicts=False)
    # Everything written must read back
    try:
        decode_python(text)
    except DecodeError as e:
        raise EncodeError(f"Could not encode Python literal: {e}", format="python")
    return text + "\n"


__all__ = [
    "check_document_mode",
    "to_plain",
    "to_namespace",
    "decode_json",
    "encode_json",
    "decode_yaml",
    "encode_yaml",
    "decode_python",
    "encode_python",
]
