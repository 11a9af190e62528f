"""Encoding and decoding functions."""

import base64
import binascii
import json
from decimal import Decimal
from urllib.parse import quote, unquote

import yaml

from strata._codec import dump_json, dump_yaml
from strata._errors import ParseError
from strata._value import ParamType, Value, from_native, to_plain

from ._registry import FunctionGroup

functions = FunctionGroup()


def _reject_constant(name: str) -> Value:
    msg = f"Invalid JSON number '{name}'"
    raise ParseError(msg)


@functions.register("encode::base64", ParamType.STRING, aliases=("base64encode",))
def base64encode(value: str) -> Value:
    return base64.b64encode(value.encode()).decode("ascii")


@functions.register("decode::base64", ParamType.STRING, aliases=("base64decode",))
def base64decode(value: str) -> Value:
    """Decode base64 text that encodes UTF-8."""
    try:
        return base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        msg = f"Invalid base64 input: {e}"
        raise ParseError(msg) from e


@functions.register("encode::json", ParamType.ANY, aliases=("jsonencode",))
def jsonencode(value: Value) -> Value:
    return dump_json(to_plain(value))


@functions.register("decode::json", ParamType.STRING, aliases=("jsondecode",))
def jsondecode(value: str) -> Value:
    try:
        decoded = json.loads(value, parse_float=Decimal, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        msg = f"Invalid JSON input: {e}"
        raise ParseError(msg) from e
    return from_native(decoded)


@functions.register("encode::url", ParamType.STRING, aliases=("urlencode",))
def urlencode(value: str) -> Value:
    """Percent-encode everything except unreserved characters."""
    return quote(value, safe="")


@functions.register("decode::url", ParamType.STRING, aliases=("urldecode",))
def urldecode(value: str) -> Value:
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError as e:
        msg = f"Invalid URL-encoded input: {e}"
        raise ParseError(msg) from e


@functions.register("encode::yaml", ParamType.ANY, aliases=("yamlencode",))
def yamlencode(value: Value) -> Value:
    return dump_yaml(to_plain(value))


@functions.register("decode::yaml", ParamType.STRING, aliases=("yamldecode",))
def yamldecode(value: str) -> Value:
    try:
        decoded = yaml.safe_load(value)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML input: {e}"
        raise ParseError(msg) from e
    return from_native(decoded)
