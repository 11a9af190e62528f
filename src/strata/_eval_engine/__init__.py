"""Evaluation engine module for strata.

This module orders declarations by their references and evaluates
expressions against a scope.

Key types:
- EvaluationResult: Evaluated document tree, meta values and declarations
- Evaluator: Expression evaluator bound to a scope, registry and capability
- resolve_order: Dependency-ordered declaration names
"""

from ._engine import EvaluationResult, Evaluator
from ._resolution import Reference, build_reference_graph, collect_references, declaration_dependencies, resolve_order

__all__ = [
    "EvaluationResult",
    "Evaluator",
    "Reference",
    "build_reference_graph",
    "collect_references",
    "declaration_dependencies",
    "resolve_order",
]
