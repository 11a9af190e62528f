"""Declarations and the symbol table of one evaluation."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import TYPE_CHECKING

from ._errors import DuplicateConst, DuplicateKey, InvalidOverride, UndefinedReference
from ._syntax import Literal
from ._value import from_native

if TYPE_CHECKING:
    from ._errors import SourceLocation
    from ._syntax import Expression
    from ._value import Value

logger = logging.getLogger(__name__)


class DeclarationKind(StrEnum):
    """Mutability class of a declaration."""

    VARIABLE = auto()  # overridable before evaluation
    LOCAL = auto()  # fixed by the document
    CONST = auto()  # write-once, never redefined or overridden
    META = auto()  # document metadata, not referenceable


# qualified reference roots and the kinds they may resolve to
NAMESPACE_ROOTS: Mapping[str, tuple[DeclarationKind, ...]] = {
    "var": (DeclarationKind.VARIABLE, DeclarationKind.CONST),
    "local": (DeclarationKind.LOCAL,),
    "const": (DeclarationKind.CONST,),
}


@dataclass(slots=True)
class Declaration:
    """A named binding awaiting (or holding) its evaluated value.

    Attributes:
        name: Name, unique within its namespace.
        kind: Mutability class.
        expression: Unevaluated expression.
        index: Position in the document, used to keep source order.
        location: Source location of the declaring attribute.
        value: Evaluated value, once resolved.
        resolved: Whether ``value`` has been set.
        overridden: Whether the expression was replaced by a request override.

    """

    name: str
    kind: DeclarationKind
    expression: Expression
    index: int
    location: SourceLocation | None = None
    value: Value = None
    resolved: bool = False
    overridden: bool = False

    @property
    def qualified_name(self) -> str:
        """Name as written in a qualified reference, e.g. ``local.region``."""
        prefix = {
            DeclarationKind.VARIABLE: "var",
            DeclarationKind.LOCAL: "local",
            DeclarationKind.CONST: "const",
            DeclarationKind.META: "meta",
        }[self.kind]
        return f"{prefix}.{self.name}"


@dataclass(slots=True)
class Scope:
    """Symbol table of one evaluation.

    Variables, locals and consts share one namespace; meta declarations live
    in their own namespace and cannot be referenced from expressions. Built-in
    values are consulted only when no declaration matches.
    """

    builtins: dict[str, Value] = field(default_factory=dict)
    _declarations: dict[str, Declaration] = field(default_factory=dict)
    _meta: dict[str, Declaration] = field(default_factory=dict)

    def define(
        self,
        name: str,
        kind: DeclarationKind,
        expression: Expression,
        location: SourceLocation | None = None,
    ) -> Declaration:
        """Register a declaration.

        Raises:
            DuplicateConst: If the name is already a const, or a const is
                declared over an existing name.
            DuplicateKey: For any other redefinition of a name.

        """
        table = self._meta if kind is DeclarationKind.META else self._declarations
        existing = table.get(name)
        if existing is not None:
            if DeclarationKind.CONST in (existing.kind, kind):
                raise DuplicateConst(name, location=location)
            msg = f"Duplicate declaration '{name}' (already declared as {existing.kind})"
            raise DuplicateKey(name, msg, location=location)

        declaration = Declaration(
            name=name,
            kind=kind,
            expression=expression,
            index=len(self._declarations) + len(self._meta),
            location=location,
        )
        table[name] = declaration
        logger.debug("Declared %s %s", kind, name)
        return declaration

    def lookup(self, name: str) -> Declaration:
        """Find a variable, local or const by name.

        Raises:
            UndefinedReference: If no such declaration exists.

        """
        try:
            return self._declarations[name]
        except KeyError:
            raise UndefinedReference(name) from None

    def lookup_qualified(self, root: str, name: str) -> Declaration:
        """Find a declaration through a qualified reference such as ``local.name``.

        Raises:
            UndefinedReference: If the declaration does not exist or has a kind
                the root does not cover.

        """
        declaration = self._declarations.get(name)
        if declaration is None or declaration.kind not in NAMESPACE_ROOTS[root]:
            raise UndefinedReference(f"{root}.{name}")
        return declaration

    def family(self, root: str) -> list[Declaration]:
        """Declarations reachable through a namespace root, in source order."""
        kinds = NAMESPACE_ROOTS[root]
        return [d for d in self._declarations.values() if d.kind in kinds]

    def mark_resolved(self, name: str, value: Value, *, meta: bool = False) -> None:
        """Record the evaluated value of a declaration.

        Args:
            name: Declaration name.
            value: Evaluated value.
            meta: Whether the name refers to the meta namespace.

        Raises:
            ValueError: If the declaration was already resolved.

        """
        declaration = self._meta[name] if meta else self.lookup(name)
        if declaration.resolved:
            msg = f"Declaration '{name}' is already resolved"
            raise ValueError(msg)
        declaration.value = value
        declaration.resolved = True

    def apply_overrides(self, overrides: Mapping[str, Value]) -> None:
        """Replace variable expressions with request-supplied values.

        Must be called before any declaration is evaluated. Values are
        normalized with ``from_native``, so floats become decimals.

        Raises:
            UndefinedReference: If an override names no declaration.
            DuplicateConst: If an override targets a const.
            InvalidOverride: If an override targets a local or meta value.
            TypeMismatch: If an override value has no runtime equivalent.

        """
        for name, value in overrides.items():
            if name in self._meta and name not in self._declarations:
                msg = f"Cannot override meta value '{name}'"
                raise InvalidOverride(msg)
            declaration = self.lookup(name)
            if declaration.kind is DeclarationKind.CONST:
                raise DuplicateConst(name)
            if declaration.kind is not DeclarationKind.VARIABLE:
                msg = f"Cannot override {declaration.kind} '{name}'; only variables accept overrides"
                raise InvalidOverride(msg)
            if declaration.resolved:
                msg = f"Declaration '{name}' is already resolved"
                raise ValueError(msg)
            declaration.expression = Literal(from_native(value), declaration.location)
            declaration.overridden = True
            logger.debug("Overrode variable %s", name)

    def declarations(self) -> list[Declaration]:
        """Variables, locals and consts in source order."""
        return list(self._declarations.values())

    def meta_declarations(self) -> list[Declaration]:
        """Meta declarations in source order."""
        return list(self._meta.values())

    def values(self) -> dict[str, Value]:
        """Resolved values of variables, locals and consts."""
        return {name: d.value for name, d in self._declarations.items() if d.resolved}

    def __contains__(self, name: object) -> bool:
        return name in self._declarations

    def __iter__(self) -> Iterator[str]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)
