"""Graph module providing dependency graph abstractions.

This module contains:
- DependencyGraph[T]: A generic, immutable directed graph with stable ordering
- topological_sort: Algorithm for ordering nodes by dependencies
- CycleError: Raised with the offending cycle when ordering is impossible
"""

from ._algorithms import CycleError, find_cycle, topological_sort
from ._dependency_graph import DependencyGraph

__all__ = ["CycleError", "DependencyGraph", "find_cycle", "topological_sort"]
