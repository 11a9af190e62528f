"""Core evaluation engine for document expressions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from strata._errors import CircularReference, DuplicateKey, StrataError, TypeMismatch, UndefinedReference
from strata._scope import NAMESPACE_ROOTS
from strata._syntax import (
    BinaryOp,
    Conditional,
    FunctionCall,
    GetAttr,
    Identifier,
    Index,
    ListLiteral,
    Literal,
    MapLiteral,
    Template,
    UnaryOp,
)
from strata._value import Value, kind_of, require_integer, stringify

from ._operators import apply_binary, apply_unary, require_bool

if TYPE_CHECKING:
    from strata._capability import Capability
    from strata._functions import FunctionRegistry
    from strata._scope import Scope
    from strata._syntax import Expression

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Result of evaluating a document.

    Attributes:
        tree: The document tree: every block and attribute that is not a
            declaration, evaluated.
        meta: Evaluated ``meta`` attributes.
        values: Evaluated variables, locals and consts by name.
        order: Names of the declarations in evaluation order.

    """

    tree: dict[str, Value] = field(default_factory=dict)
    meta: dict[str, Value] = field(default_factory=dict)
    values: dict[str, Value] = field(default_factory=dict)
    order: tuple[str, ...] = ()

    def get_value(self, name: str) -> Value:
        """Get the evaluated value of a declaration.

        Raises:
            KeyError: If no declaration has this name.

        """
        return self.values[name]


class Evaluator:
    """Evaluate expressions against a scope.

    Declarations are evaluated on first reference and recorded in the scope,
    so each one is computed at most once per evaluation.

    Args:
        scope: Declarations and built-in values.
        registry: Functions callable from expressions.
        capability: Effect handle passed to effectful functions.

    """

    def __init__(self, scope: Scope, registry: FunctionRegistry, capability: Capability) -> None:
        self.scope = scope
        self.registry = registry
        self.capability = capability
        self._in_progress: list[str] = []

    def evaluate(self, expression: Expression) -> Value:
        """Evaluate one expression.

        Raises:
            StrataError: Any evaluation failure, located at the innermost
                expression that carries a source location.

        """
        try:
            return self._evaluate(expression)
        except StrataError as e:
            e.locate(expression.location)
            raise

    def resolve(self, name: str) -> Value:
        """Return the value of a declaration, evaluating it if needed.

        Raises:
            UndefinedReference: If there is no such declaration.
            CircularReference: If the declaration is already being evaluated.

        """
        declaration = self.scope.lookup(name)
        if declaration.resolved:
            return declaration.value
        if name in self._in_progress:
            cycle = self._in_progress[self._in_progress.index(name) :]
            raise CircularReference(tuple(cycle))

        self._in_progress.append(name)
        try:
            value = self.evaluate(declaration.expression)
        except StrataError as e:
            e.within(declaration.qualified_name)
            raise
        finally:
            self._in_progress.pop()

        self.scope.mark_resolved(name, value)
        logger.debug("Resolved %s = %r", declaration.qualified_name, value)
        return value

    def _evaluate(self, node: Expression) -> Value:  # noqa: C901, PLR0911
        match node:
            case Literal(value=value):
                return value
            case Identifier(name=name):
                return self._identifier(name)
            case GetAttr(target=Identifier(name=root), name=name) if root in NAMESPACE_ROOTS:
                return self.resolve(self.scope.lookup_qualified(root, name).name)
            case GetAttr(target=target, name=name):
                return _get_attr(self.evaluate(target), name)
            case Index(target=target, key=key):
                return _index(self.evaluate(target), self.evaluate(key))
            case FunctionCall():
                return self._call(node)
            case ListLiteral(items=items):
                return [self.evaluate(item) for item in items]
            case MapLiteral(items=items):
                return self._map(items)
            case Template(parts=parts):
                return "".join(_interpolate(self.evaluate(part)) for part in parts)
            case UnaryOp(op=op, operand=operand):
                return apply_unary(op, self.evaluate(operand))
            case BinaryOp(op="&&", left=left, right=right):
                if not require_bool(self.evaluate(left), "Left operand of '&&'"):
                    return False
                return require_bool(self.evaluate(right), "Right operand of '&&'")
            case BinaryOp(op="||", left=left, right=right):
                if require_bool(self.evaluate(left), "Left operand of '||'"):
                    return True
                return require_bool(self.evaluate(right), "Right operand of '||'")
            case BinaryOp(op=op, left=left, right=right):
                return apply_binary(op, self.evaluate(left), self.evaluate(right))
            case Conditional(condition=condition, then=then, otherwise=otherwise):
                if require_bool(self.evaluate(condition), "Condition"):
                    return self.evaluate(then)
                return self.evaluate(otherwise)
        msg = f"Unsupported expression node {type(node).__name__}"
        raise TypeError(msg)

    def _identifier(self, name: str) -> Value:
        if name in NAMESPACE_ROOTS:
            return {d.name: self.resolve(d.name) for d in self.scope.family(name)}
        if name in self.scope:
            return self.resolve(name)
        if name in self.scope.builtins:
            return self.scope.builtins[name]
        raise UndefinedReference(name)

    def _call(self, node: FunctionCall) -> Value:
        args = [self.evaluate(arg) for arg in node.args]
        if node.expand_final:
            expanded = args.pop()
            if not isinstance(expanded, list):
                msg = f"Only a list can be expanded into arguments, got {kind_of(expanded)}"
                raise TypeMismatch(msg)
            args.extend(expanded)
        return self.registry.call(node.name, args, self.capability)

    def _map(self, items: tuple[tuple[Expression, Expression], ...]) -> Value:
        result: dict[str, Value] = {}
        for key_expr, value_expr in items:
            key = self.evaluate(key_expr)
            if isinstance(key, (list, dict)) or key is None:
                msg = f"Map keys must be strings, got {kind_of(key)}"
                raise TypeMismatch(msg, location=key_expr.location)
            text = stringify(key)
            if text in result:
                raise DuplicateKey(text, location=key_expr.location)
            result[text] = self.evaluate(value_expr)
        return result


def _interpolate(value: Value) -> str:
    if value is None or isinstance(value, (list, dict)):
        msg = f"Cannot interpolate {kind_of(value)} into a string"
        raise TypeMismatch(msg)
    return stringify(value)


def _get_attr(target: Value, name: str) -> Value:
    if isinstance(target, dict):
        if name not in target:
            raise UndefinedReference(name, f"Map has no key '{name}'")
        return target[name]
    msg = f"Cannot access attribute '{name}' of {kind_of(target)}"
    raise TypeMismatch(msg)


def _index(target: Value, key: Value) -> Value:
    if isinstance(target, list):
        position = require_integer(key, "List index")
        if not 0 <= position < len(target):
            raise UndefinedReference(str(position), f"Index {position} is out of range for a list of {len(target)}")
        return target[position]
    if isinstance(target, dict):
        if isinstance(key, (list, dict)) or key is None:
            msg = f"Map keys must be strings, got {kind_of(key)}"
            raise TypeMismatch(msg)
        return _get_attr(target, stringify(key))
    msg = f"Cannot index {kind_of(target)}"
    raise TypeMismatch(msg)
