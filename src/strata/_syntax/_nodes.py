"""Syntax tree of a parsed document.

Expression nodes are immutable and carry the source location of their first
token. The evaluator dispatches on the node class.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from strata._errors import SourceLocation
    from strata._value import Value


@dataclass(frozen=True, slots=True)
class Literal:
    value: Value
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class GetAttr:
    """``target.name``"""

    target: Expression
    name: str
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Index:
    """``target[key]``"""

    target: Expression
    key: Expression
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class FunctionCall:
    """Call of a registered function.

    Attributes:
        name: Function name, possibly namespaced (``str::upper``).
        args: Argument expressions in source order.
        expand_final: The last argument was written as ``list...`` and its
            elements are passed as separate arguments.

    """

    name: str
    args: tuple[Expression, ...] = ()
    expand_final: bool = False
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class ListLiteral:
    items: tuple[Expression, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class MapLiteral:
    items: tuple[tuple[Expression, Expression], ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Template:
    """String with ``${...}`` interpolations; parts are literals or expressions."""

    parts: tuple[Expression, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class UnaryOp:
    op: str
    operand: Expression
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class BinaryOp:
    op: str
    left: Expression
    right: Expression
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Conditional:
    condition: Expression
    then: Expression
    otherwise: Expression
    location: SourceLocation | None = field(default=None, compare=False)


type Expression = (
    Literal
    | Identifier
    | GetAttr
    | Index
    | FunctionCall
    | ListLiteral
    | MapLiteral
    | Template
    | UnaryOp
    | BinaryOp
    | Conditional
)


@dataclass(frozen=True, slots=True)
class Attribute:
    """``name = expression``"""

    name: str
    expression: Expression
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Block:
    """``type label... { body }``"""

    type: str
    labels: tuple[str, ...] = ()
    body: tuple[Attribute | Block, ...] = ()
    location: SourceLocation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Document:
    body: tuple[Attribute | Block, ...] = ()
    source: str | None = None


def child_expressions(node: Expression) -> tuple[Expression, ...]:
    """Direct sub-expressions of a node, in evaluation order."""
    match node:
        case GetAttr(target=target):
            return (target,)
        case Index(target=target, key=key):
            return (target, key)
        case FunctionCall(args=args) | ListLiteral(items=args) | Template(parts=args):
            return args
        case MapLiteral(items=items):
            return tuple(expr for pair in items for expr in pair)
        case UnaryOp(operand=operand):
            return (operand,)
        case BinaryOp(left=left, right=right):
            return (left, right)
        case Conditional(condition=condition, then=then, otherwise=otherwise):
            return (condition, then, otherwise)
    return ()
