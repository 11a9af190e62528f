"""Runtime value model.

Values are plain Python objects:

- ``None`` (null)
- ``bool``
- ``int`` or ``decimal.Decimal`` (number)
- ``str``
- ``list`` of values
- ``dict`` mapping ``str`` to values (insertion ordered)

Floats never appear inside a value; foreign floats are converted to
``Decimal`` through their shortest representation so that fractions stay
lossless.
"""

from __future__ import annotations

import datetime
import math
from collections.abc import Hashable, Mapping
from decimal import Decimal
from enum import StrEnum
from typing import Any

from ._codec import dump_json
from ._errors import TypeMismatch

type Number = int | Decimal
type Value = None | bool | int | Decimal | str | list[Value] | dict[str, Value]


class ValueKind(StrEnum):
    """Type names reported to document authors."""

    NULL = "null"
    BOOL = "boolean"
    NUMBER = "number"
    STRING = "string"
    LIST = "array"
    MAP = "object"


class ParamType(StrEnum):
    """Declared parameter type of a built-in function."""

    ANY = "any"
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"


def kind_of(value: object) -> ValueKind:
    """Return the kind of a runtime value.

    Raises:
        TypeError: If the object is not a runtime value.

    """
    # bool must be checked before int
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, (int, Decimal)):
        return ValueKind.NUMBER
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, list):
        return ValueKind.LIST
    if isinstance(value, dict):
        return ValueKind.MAP
    msg = f"Not a runtime value: {type(value).__name__}"
    raise TypeError(msg)


def is_number(value: object) -> bool:
    return isinstance(value, (int, Decimal)) and not isinstance(value, bool)


def from_native(obj: Any) -> Value:  # noqa: PLR0911
    """Convert decoded data (JSON, YAML, secret payloads) into a runtime value.

    Raises:
        TypeMismatch: If the object has no runtime value equivalent.

    """
    if obj is None or isinstance(obj, (bool, int, str, Decimal)):
        return obj
    if isinstance(obj, float):
        if not math.isfinite(obj):
            msg = f"Non-finite number {obj!r} is not a valid value"
            raise TypeMismatch(msg)
        return Decimal(repr(obj))
    if isinstance(obj, (datetime.datetime, datetime.date)):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return obj.decode("utf-8")
    if isinstance(obj, Mapping):
        return {str(k) if not isinstance(k, str) else k: from_native(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [from_native(item) for item in obj]
    msg = f"Unsupported value of type {type(obj).__name__}"
    raise TypeMismatch(msg)


def value_key(value: Value) -> Hashable:
    """Return a hashable key such that equal values share the same key.

    Numbers compare by magnitude (``1 == 1.0``) but never equal booleans or
    strings.
    """
    kind = kind_of(value)
    if isinstance(value, list):
        return (kind, tuple(value_key(item) for item in value))
    if isinstance(value, dict):
        return (kind, frozenset((k, value_key(v)) for k, v in value.items()))
    if kind is ValueKind.NUMBER:
        return (kind, Decimal(value))
    return (kind, value)


def values_equal(left: Value, right: Value) -> bool:
    """Structural, type-aware equality."""
    return value_key(left) == value_key(right)


def compare_values(left: Value, right: Value) -> int:
    """Order two numbers or two strings.

    Returns:
        A negative number, zero or a positive number.

    Raises:
        TypeMismatch: If the values are not both numbers or both strings.

    """
    if isinstance(left, str) and isinstance(right, str):
        return (left > right) - (left < right)
    if is_number(left) and is_number(right):
        a, b = Decimal(left), Decimal(right)
        return (a > b) - (a < b)
    msg = f"Cannot compare {kind_of(left)} with {kind_of(right)}"
    raise TypeMismatch(msg)


def format_number(value: Number) -> str:
    """Format a number without exponent notation or superfluous zeros."""
    if isinstance(value, int):
        return str(value)
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


def stringify(value: Value) -> str:
    """Canonical text form used by string conversion, joining and formatting."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, (int, Decimal)):
        return format_number(value)
    return dump_json(to_plain(value))


def to_plain(value: Value) -> Any:
    """Convert a runtime value to plain objects for the encoders.

    Integral numbers become ``int``; fractional numbers stay ``Decimal``
    (without trailing zeros) so that no digit is lost on output.
    """
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        return value.normalize()
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    if isinstance(value, dict):
        return {k: to_plain(v) for k, v in value.items()}
    return value


def coerce(value: Value, param_type: ParamType) -> Value:
    """Coerce an argument to a declared parameter type.

    Numbers and booleans are formatted when a string is expected. No other
    implicit conversion exists.

    Raises:
        TypeMismatch: If the value cannot be used as the declared type.

    """
    kind = kind_of(value)
    match param_type:
        case ParamType.ANY:
            return value
        case ParamType.STRING:
            if kind in (ValueKind.STRING, ValueKind.NUMBER, ValueKind.BOOL):
                return stringify(value)
        case ParamType.NUMBER:
            if kind is ValueKind.NUMBER:
                return value
        case ParamType.BOOL:
            if kind is ValueKind.BOOL:
                return value
        case ParamType.LIST:
            if kind is ValueKind.LIST:
                return value
        case ParamType.MAP:
            if kind is ValueKind.MAP:
                return value
    msg = f"expected {param_type}, got {kind}"
    raise TypeMismatch(msg)


def require_integer(value: Value, what: str = "value") -> int:
    """Return a number as an int, rejecting fractions.

    Raises:
        TypeMismatch: If the value is not an integral number.

    """
    if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
        msg = f"{what} must be a number, got {kind_of(value)}"
        raise TypeMismatch(msg)
    if value != int(value):
        msg = f"{what} must be a whole number, got {format_number(value)}"
        raise TypeMismatch(msg)
    return int(value)
