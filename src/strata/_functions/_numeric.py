"""Numeric functions."""

import math
from decimal import Decimal
from functools import cmp_to_key

from strata._errors import EmptyCollection, ParseError, TypeMismatch
from strata._value import Number, ParamType, Value, compare_values, is_number, kind_of, require_integer

from ._registry import FunctionGroup

functions = FunctionGroup()


@functions.register("abs", ParamType.NUMBER)
def abs_(value: Number) -> Value:
    return abs(value)


@functions.register("ceil", ParamType.NUMBER)
def ceil(value: Number) -> Value:
    """Round toward positive infinity."""
    return math.ceil(value)


@functions.register("floor", ParamType.NUMBER)
def floor(value: Number) -> Value:
    """Round toward negative infinity."""
    return math.floor(value)


@functions.register("sum", ParamType.LIST)
def sum_(items: list[Value]) -> Value:
    """Sum of a list of numbers."""
    if not items:
        raise EmptyCollection("sum")
    total: int | Decimal = 0
    for position, item in enumerate(items, start=1):
        if not is_number(item):
            msg = f"sum() element {position} is {kind_of(item)}, expected number"
            raise TypeMismatch(msg)
        total += item  # type: ignore[operator]
    return total


def _elements(name: str, args: tuple[Value, ...]) -> list[Value]:
    # max([1, 2]) and max(1, 2) are both accepted
    elements = args[0] if len(args) == 1 and isinstance(args[0], list) else list(args)
    if not elements:
        raise EmptyCollection(name)
    for position, item in enumerate(elements, start=1):
        if not is_number(item) and not isinstance(item, str):
            msg = f"{name}() element {position} is {kind_of(item)}, expected number or string"
            raise TypeMismatch(msg)
    return elements


@functions.register("max", variadic=ParamType.ANY)
def max_(*args: Value) -> Value:
    """Largest element of a list of numbers or of strings."""
    return max(_elements("max", args), key=cmp_to_key(compare_values))


@functions.register("min", variadic=ParamType.ANY)
def min_(*args: Value) -> Value:
    """Smallest element of a list of numbers or of strings."""
    return min(_elements("min", args), key=cmp_to_key(compare_values))


@functions.register("parseint", ParamType.STRING, optional=(ParamType.NUMBER,))
def parseint(value: str, base: Value = 10) -> Value:
    """Parse an integer string in the given base (default 10)."""
    radix = require_integer(base, "parseint() base")
    if not 2 <= radix <= 36:  # noqa: PLR2004
        msg = f"parseint() base must be between 2 and 36, got {radix}"
        raise ValueError(msg)
    text = value.strip()
    # int() would also accept digit separators
    if text and "_" not in text:
        try:
            return int(text, radix)
        except ValueError:
            pass
    msg = f"Cannot parse '{value}' as an integer in base {radix}"
    raise ParseError(msg)
