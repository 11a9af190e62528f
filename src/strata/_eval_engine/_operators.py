"""Unary and binary operators of the expression language."""

from decimal import Decimal

from strata._errors import InvalidOperation, TypeMismatch
from strata._value import Number, Value, compare_values, is_number, kind_of, values_equal


def require_bool(value: Value, what: str) -> bool:
    """Return a boolean operand.

    Raises:
        TypeMismatch: If the value is not a boolean.

    """
    if not isinstance(value, bool):
        msg = f"{what} must be a boolean, got {kind_of(value)}"
        raise TypeMismatch(msg)
    return value


def _numbers(op: str, left: Value, right: Value) -> tuple[Number, Number]:
    if not (is_number(left) and is_number(right)):
        msg = f"Operator '{op}' expects numbers, got {kind_of(left)} and {kind_of(right)}"
        raise TypeMismatch(msg)
    return left, right  # type: ignore[return-value]


def _divide(left: Number, right: Number) -> Number:
    if right == 0:
        msg = "Division by zero"
        raise InvalidOperation(msg)
    if isinstance(left, int) and isinstance(right, int) and left % right == 0:
        return left // right
    return Decimal(left) / Decimal(right)


def _modulo(left: Number, right: Number) -> Number:
    if right == 0:
        msg = "Modulo by zero"
        raise InvalidOperation(msg)
    return left % right


def apply_unary(op: str, operand: Value) -> Value:
    """Apply ``-`` or ``!``."""
    if op == "!":
        return not require_bool(operand, "Operand of '!'")
    if op == "-":
        if not is_number(operand):
            msg = f"Operator '-' expects a number, got {kind_of(operand)}"
            raise TypeMismatch(msg)
        return -operand  # type: ignore[operator]
    msg = f"Unknown unary operator '{op}'"
    raise ValueError(msg)


def apply_binary(op: str, left: Value, right: Value) -> Value:  # noqa: PLR0911
    """Apply a non short-circuiting binary operator to evaluated operands."""
    match op:
        case "==":
            return values_equal(left, right)
        case "!=":
            return not values_equal(left, right)
        case "<":
            return compare_values(left, right) < 0
        case "<=":
            return compare_values(left, right) <= 0
        case ">":
            return compare_values(left, right) > 0
        case ">=":
            return compare_values(left, right) >= 0
    a, b = _numbers(op, left, right)
    match op:
        case "+":
            return a + b
        case "-":
            return a - b
        case "*":
            return a * b
        case "/":
            return _divide(a, b)
        case "%":
            return _modulo(a, b)
    msg = f"Unknown binary operator '{op}'"
    raise ValueError(msg)
