"""String functions."""

from decimal import Decimal

from strata._errors import TypeMismatch
from strata._value import ParamType, Value, format_number, kind_of, stringify

from ._registry import FunctionGroup

functions = FunctionGroup()


@functions.register("str::upper", ParamType.STRING, aliases=("upper",))
def upper(value: str) -> Value:
    return value.upper()


@functions.register("str::lower", ParamType.STRING, aliases=("lower",))
def lower(value: str) -> Value:
    return value.lower()


@functions.register("str::trim", ParamType.STRING, ParamType.STRING, aliases=("trim",))
def trim(value: str, cutset: str) -> Value:
    """Remove the given characters from both ends."""
    return value.strip(cutset)


@functions.register("str::trimspace", ParamType.STRING, aliases=("trimspace",))
def trimspace(value: str) -> Value:
    """Remove leading and trailing whitespace."""
    return value.strip()


@functions.register("str::trimprefix", ParamType.STRING, ParamType.STRING, aliases=("trimprefix",))
def trimprefix(value: str, prefix: str) -> Value:
    """Remove a prefix if present."""
    return value.removeprefix(prefix)


@functions.register("str::trimsuffix", ParamType.STRING, ParamType.STRING, aliases=("trimsuffix",))
def trimsuffix(value: str, suffix: str) -> Value:
    """Remove a suffix if present."""
    return value.removesuffix(suffix)


@functions.register("concat", variadic=ParamType.STRING)
def concat(*parts: str) -> Value:
    """Concatenate strings."""
    return "".join(parts)


@functions.register("join", ParamType.LIST, ParamType.STRING)
def join(items: list[Value], separator: str) -> Value:
    """Join list elements with a separator; non-strings are converted to text."""
    return separator.join(stringify(item) for item in items)


@functions.register("split", ParamType.STRING, ParamType.STRING)
def split(value: str, separator: str) -> Value:
    """Split a string; an empty separator splits into characters."""
    if not separator:
        return list(value)
    return value.split(separator)


def _number_arg(arg: Value, spec: str) -> int | Decimal:
    if isinstance(arg, bool) or not isinstance(arg, (int, Decimal)):
        msg = f"format() verb %{spec} expects a number, got {kind_of(arg)}"
        raise TypeMismatch(msg)
    return arg


@functions.register("format", ParamType.STRING, variadic=ParamType.ANY)
def format_(template: str, *args: Value) -> Value:
    """Printf-style formatting with the ``%s``, ``%d``, ``%f`` and ``%%`` verbs."""
    out: list[str] = []
    remaining = list(args)
    chars = iter(template)
    for char in chars:
        if char != "%":
            out.append(char)
            continue
        spec = next(chars, "")
        if spec == "%":
            out.append("%")
            continue
        if spec not in ("s", "d", "f"):
            msg = f"Unknown format specifier '%{spec}'"
            raise ValueError(msg)
        if not remaining:
            msg = "Not enough arguments for format string"
            raise ValueError(msg)
        arg = remaining.pop(0)
        if spec == "s":
            out.append(stringify(arg))
        elif spec == "d":
            out.append(str(int(_number_arg(arg, spec))))
        else:
            out.append(format_number(_number_arg(arg, spec)))
    return "".join(out)
