"""Generic dependency graph abstraction."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from ._algorithms import CycleError, topological_sort


@dataclass(frozen=True, slots=True)
class DependencyGraph[T]:
    """A directed graph representing dependencies between nodes.

    This is a pure, immutable data structure with query methods.
    It is generic over the node type T (e.g., declaration names).

    The graph represents "depends on" relationships:
    - predecessors[b] = {a} means "b depends on a"
    - successors[a] = {b} means "a is depended on by b"

    Nodes remember the order in which they were added. That order breaks ties
    in ``topological_order`` so independent nodes keep their original order.

    Attributes:
        _predecessors: Mapping from node to its direct dependencies.
        _successors: Mapping from node to nodes that depend on it.
        _order: Every node, in insertion order.

    """

    _predecessors: dict[T, frozenset[T]] = field(default_factory=dict)
    _successors: dict[T, frozenset[T]] = field(default_factory=dict)
    _order: tuple[T, ...] = ()

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]], nodes: Iterable[T] = ()) -> DependencyGraph[T]:
        """Build a graph from (source, target) edges and optional isolated nodes.

        An edge (a, b) means "b depends on a" (a -> b in the DAG).

        Args:
            edges: (source, target) tuples.
            nodes: Nodes to include even without edges. Their order comes
                first in the graph's node order.

        Returns:
            A new DependencyGraph instance.

        Example:
            >>> # b depends on a, c depends on b
            >>> graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
            >>> graph.predecessors("b")
            frozenset({'a'})

        """
        predecessors: defaultdict[T, set[T]] = defaultdict(set)
        successors: defaultdict[T, set[T]] = defaultdict(set)
        order: dict[T, None] = dict.fromkeys(nodes)

        for node in order:
            predecessors.setdefault(node, set())
            successors.setdefault(node, set())

        for src, dst in edges:
            predecessors[dst].add(src)
            successors[src].add(dst)
            # Ensure both nodes exist in the graph
            predecessors.setdefault(src, set())
            successors.setdefault(dst, set())
            order.setdefault(src)
            order.setdefault(dst)

        return cls(
            _predecessors={k: frozenset(v) for k, v in predecessors.items()},
            _successors={k: frozenset(v) for k, v in successors.items()},
            _order=tuple(order),
        )

    @property
    def nodes(self) -> tuple[T, ...]:
        """All nodes in the graph, in insertion order."""
        return self._order

    def _sorted(self, nodes: Iterable[T]) -> tuple[T, ...]:
        members = set(nodes)
        return tuple(n for n in self._order if n in members)

    def predecessors(self, node: T) -> tuple[T, ...]:
        """Get direct dependencies of a node (nodes it depends on).

        Args:
            node: The node to query.

        Returns:
            Nodes that this node directly depends on, in node order.

        """
        return self._sorted(self._predecessors.get(node, frozenset()))

    def successors(self, node: T) -> tuple[T, ...]:
        """Get direct dependents of a node (nodes that depend on it).

        Args:
            node: The node to query.

        Returns:
            Nodes that directly depend on this node, in node order.

        """
        return self._sorted(self._successors.get(node, frozenset()))

    def roots(self) -> tuple[T, ...]:
        """Get nodes with no predecessors."""
        return tuple(n for n in self._order if not self._predecessors.get(n))

    def ancestors(self, node: T) -> tuple[T, ...]:
        """Get all transitive dependencies of a node.

        Args:
            node: The node to query.

        Returns:
            Nodes that this node transitively depends on, in node order.

        """
        visited: set[T] = set()
        stack = list(self._predecessors.get(node, frozenset()))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(self._predecessors.get(current, frozenset()))
        return self._sorted(visited)

    def topological_order(self) -> list[T]:
        """Return nodes in topological order (dependencies before dependents).

        Returns:
            List of nodes where each node appears before all nodes that depend
            on it. Independent nodes keep insertion order.

        Raises:
            CycleError: If the graph contains a cycle.

        """
        successors = {node: self.successors(node) for node in self._order}
        return topological_sort(successors, self._order)

    def find_cycle(self) -> tuple[T, ...]:
        """Return one cycle of the graph, or an empty tuple if it is acyclic.

        Nodes are listed in dependency direction: each node depends on the next
        one, and the last node depends on the first.
        """
        try:
            self.topological_order()
        except CycleError as e:
            # the sort reports edges in successor direction
            return tuple(reversed(e.cycle))
        return ()

    def has_cycle(self) -> bool:
        """Check if the graph contains a cycle."""
        return bool(self.find_cycle())

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self._order)

    def __contains__(self, node: T) -> bool:
        """Check if a node is in the graph."""
        return node in self._predecessors
