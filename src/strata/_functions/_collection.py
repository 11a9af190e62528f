"""Collection and generic functions."""

import re
from decimal import Decimal, InvalidOperation

from strata._errors import ParseError, TypeMismatch
from strata._value import ParamType, Value, coerce, kind_of, require_integer, stringify, value_key, values_equal

from ._registry import FunctionGroup

functions = FunctionGroup()

_INTEGER = re.compile(r"[+-]?\d+")


@functions.register("list", variadic=ParamType.ANY, aliases=("s", "tuple"))
def make_list(*items: Value) -> Value:
    """Build a list from the arguments."""
    return list(items)


@functions.register("length", ParamType.ANY)
def length(value: Value) -> Value:
    """Number of elements of a list or map, or characters of a string."""
    if isinstance(value, (list, dict, str)):
        return len(value)
    msg = f"length() expects a list, map or string, got {kind_of(value)}"
    raise TypeMismatch(msg)


@functions.register("range", ParamType.NUMBER, ParamType.NUMBER, optional=(ParamType.NUMBER,))
def range_(start: Value, end: Value, step: Value = 1) -> Value:
    """Integers from start (inclusive) to end (exclusive)."""
    first = require_integer(start, "range() start")
    last = require_integer(end, "range() end")
    increment = require_integer(step, "range() step")
    if increment == 0:
        msg = "range() step must not be zero"
        raise ValueError(msg)
    return list(range(first, last, increment))


@functions.register("merge", variadic=ParamType.MAP)
def merge(*maps: dict[str, Value]) -> Value:
    """Merge maps; later maps win on key conflicts."""
    merged: dict[str, Value] = {}
    for mapping in maps:
        merged.update(mapping)
    return merged


@functions.register("unique", ParamType.LIST)
@functions.register("set", ParamType.LIST, aliases=("toset",))
def unique(items: list[Value]) -> Value:
    """Remove duplicate elements, keeping the first occurrence."""
    seen: set[object] = set()
    result: list[Value] = []
    for item in items:
        key = value_key(item)
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


@functions.register("compact", ParamType.ANY)
def compact(value: Value) -> Value:
    """Remove null elements from a list or null entries from a map."""
    if isinstance(value, list):
        return [item for item in value if item is not None]
    if isinstance(value, dict):
        return {k: v for k, v in value.items() if v is not None}
    msg = f"compact() expects a list or map, got {kind_of(value)}"
    raise TypeMismatch(msg)


@functions.register("flatten", ParamType.LIST)
def flatten(items: list[Value]) -> Value:
    """Flatten one level of nested lists."""
    result: list[Value] = []
    for item in items:
        if isinstance(item, list):
            result.extend(item)
        else:
            result.append(item)
    return result


@functions.register("reverse", ParamType.ANY)
def reverse(value: Value) -> Value:
    """Reverse a list or a string."""
    if isinstance(value, list):
        return value[::-1]
    if isinstance(value, str):
        return value[::-1]
    msg = f"reverse() expects a list or string, got {kind_of(value)}"
    raise TypeMismatch(msg)


@functions.register("contains", ParamType.ANY, ParamType.ANY)
def contains(haystack: Value, needle: Value) -> Value:
    """Whether a list contains a value, or a string contains a substring."""
    if isinstance(haystack, list):
        return any(values_equal(item, needle) for item in haystack)
    if isinstance(haystack, str):
        return coerce(needle, ParamType.STRING) in haystack  # type: ignore[operator]
    msg = f"contains() expects a list or string, got {kind_of(haystack)}"
    raise TypeMismatch(msg)


@functions.register("type_of", ParamType.ANY, aliases=("typeof",))
def type_of(value: Value) -> Value:
    """Name of the value's type."""
    return str(kind_of(value))


@functions.register("map::keys", ParamType.MAP, aliases=("keys",))
def keys(mapping: dict[str, Value]) -> Value:
    """Keys of a map, in insertion order."""
    return list(mapping)


@functions.register("map::values", ParamType.MAP, aliases=("values",))
def values(mapping: dict[str, Value]) -> Value:
    """Values of a map, in key insertion order."""
    return list(mapping.values())


@functions.register("string", ParamType.ANY, aliases=("tostring",))
def to_string(value: Value) -> Value:
    """Convert a value to its string form."""
    return stringify(value)


@functions.register("number", ParamType.ANY, aliases=("tonumber",))
def to_number(value: Value) -> Value:
    """Convert a string to a number; numbers pass through and null stays null."""
    if value is None or (isinstance(value, (int, Decimal)) and not isinstance(value, bool)):
        return value
    if not isinstance(value, str):
        msg = f"number() cannot convert {kind_of(value)}"
        raise TypeMismatch(msg)
    text = value.strip()
    if _INTEGER.fullmatch(text):
        return int(text)
    try:
        number = Decimal(text)
    except InvalidOperation:
        number = None
    if number is None or not number.is_finite():
        msg = f"Cannot parse '{value}' as a number"
        raise ParseError(msg)
    return number
