"""Reference resolution utilities for the evaluation engine.

Declarations are ordered by a static scan of their expressions: every
identifier that names another declaration becomes an edge of a dependency
graph, and the graph's topological order is the evaluation order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from strata._errors import CircularReference
from strata._graph import CycleError, DependencyGraph
from strata._scope import NAMESPACE_ROOTS
from strata._syntax import GetAttr, Identifier, child_expressions

if TYPE_CHECKING:
    from strata._scope import Declaration, Scope
    from strata._syntax import Expression

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reference:
    """An identifier found in an expression.

    Attributes:
        root: Namespace root (``var``, ``local``, ``const``) or None for a bare name.
        name: Referenced name, or None when a whole namespace root is referenced.

    """

    root: str | None
    name: str | None


def collect_references(expression: Expression) -> Iterator[Reference]:
    """Yield every reference made by an expression, in source order."""
    match expression:
        case GetAttr(target=Identifier(name=root), name=name) if root in NAMESPACE_ROOTS:
            yield Reference(root, name)
            return
        case Identifier(name=name) if name in NAMESPACE_ROOTS:
            yield Reference(name, None)
            return
        case Identifier(name=name):
            yield Reference(None, name)
            return
    for child in child_expressions(expression):
        yield from collect_references(child)


def declaration_dependencies(scope: Scope, declaration: Declaration) -> list[str]:
    """Names of the declarations that a declaration references directly.

    References to built-ins or to undefined names are ignored here; the latter
    fail at evaluation time.
    """
    found: dict[str, None] = {}
    for ref in collect_references(declaration.expression):
        if ref.root is None:
            if ref.name in scope:
                found[ref.name] = None
        elif ref.name is None:
            found.update(dict.fromkeys(d.name for d in scope.family(ref.root)))
        elif any(d.name == ref.name for d in scope.family(ref.root)):
            found[ref.name] = None
    return list(found)


def build_reference_graph(scope: Scope) -> DependencyGraph[str]:
    """Build the dependency graph of a scope's declarations.

    An edge (a, b) means declaration b references declaration a. Every
    declaration is a node, in source order.
    """
    edges: list[tuple[str, str]] = []
    for declaration in scope.declarations():
        edges.extend((dep, declaration.name) for dep in declaration_dependencies(scope, declaration))
    return DependencyGraph.from_edges(edges, nodes=[d.name for d in scope.declarations()])


def resolve_order(scope: Scope) -> list[str]:
    """Order declarations so that each one follows everything it references.

    Independent declarations keep their source order, so the result is
    deterministic.

    Raises:
        CircularReference: If declarations reference each other in a cycle.
            The error names every declaration of the cycle, starting with the
            one declared first.

    """
    graph = build_reference_graph(scope)
    try:
        order = graph.topological_order()
    except CycleError:
        cycle = list(graph.find_cycle())
        start = min(range(len(cycle)), key=lambda i: scope.lookup(cycle[i]).index)
        cycle = cycle[start:] + cycle[:start]
        raise CircularReference(tuple(cycle), location=scope.lookup(cycle[0]).location) from None

    logger.debug("Evaluation order: %s", ", ".join(order))
    return order
