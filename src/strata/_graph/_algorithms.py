"""Graph algorithms for dependency graph operations."""

import heapq
from collections import defaultdict
from collections.abc import Collection, Hashable, Mapping, Sequence


class CycleError(ValueError):
    """Raised when a graph that must be acyclic contains a cycle.

    Attributes:
        cycle: The nodes of one cycle, in edge order. The last node has an
            edge back to the first.

    """

    def __init__(self, cycle: Sequence[Hashable]) -> None:
        super().__init__("Cycle detected in graph")
        self.cycle = tuple(cycle)


def topological_sort[T: Hashable](
    successors: Mapping[T, Collection[T]],
    order: Sequence[T] | None = None,
) -> list[T]:
    """Sort a graph topologically (dependencies before dependents).

    Given a graph represented as a mapping from nodes to their successors
    (nodes that depend on them), return nodes in an order where each node
    appears before all nodes that depend on it. Among nodes that are ready at
    the same time, the one appearing first in ``order`` is emitted first, so
    the result is deterministic.

    Args:
        successors: Mapping from node to collection of nodes that depend on it.
            An edge (a -> b) means "b depends on a".
        order: Preferred node order used to break ties. Defaults to the
            insertion order of ``successors`` followed by first appearance as
            a successor.

    Returns:
        List of nodes in topological order.

    Raises:
        CycleError: If the graph contains a cycle.

    Example:
        >>> # a -> b -> c means c depends on b, b depends on a
        >>> topological_sort({"a": ["b"], "b": ["c"], "c": []})
        ['a', 'b', 'c']

    """
    # Calculate in-degree for each node
    indegree: defaultdict[T, int] = defaultdict(int)
    for node, deps in successors.items():
        indegree[node] = indegree.get(node, 0)
        for dep in deps:
            indegree[dep] += 1

    rank = {node: i for i, node in enumerate(order if order is not None else indegree)}
    for node in indegree:
        rank.setdefault(node, len(rank))

    # Start with nodes that have no predecessors (in-degree 0)
    heap = [(rank[node], node) for node, deg in indegree.items() if deg == 0]
    heapq.heapify(heap)
    result: list[T] = []

    while heap:
        _, node = heapq.heappop(heap)
        result.append(node)
        for successor in successors.get(node, []):
            indegree[successor] -= 1
            if indegree[successor] == 0:
                heapq.heappush(heap, (rank[successor], successor))

    if len(result) != len(indegree):
        remaining = [node for node in sorted(indegree, key=rank.__getitem__) if indegree[node] > 0]
        raise CycleError(find_cycle(successors, remaining))

    return result


def find_cycle[T: Hashable](successors: Mapping[T, Collection[T]], candidates: Sequence[T]) -> list[T]:
    """Find one cycle among ``candidates``.

    The search starts from the first candidate and follows edges between
    candidates depth first, so the same graph always yields the same cycle.

    Args:
        successors: Mapping from node to nodes that depend on it.
        candidates: Nodes known to be on or downstream of a cycle.

    Returns:
        The nodes of the cycle in edge order, or an empty list if none exists.

    """
    allowed = set(candidates)
    done: set[T] = set()

    for start in candidates:
        if start in done:
            continue
        path: list[T] = []
        on_path: dict[T, int] = {}
        stack: list[tuple[T, list[T]]] = [(start, [s for s in successors.get(start, []) if s in allowed])]
        path.append(start)
        on_path[start] = 0
        while stack:
            node, pending = stack[-1]
            if not pending:
                stack.pop()
                path.pop()
                del on_path[node]
                done.add(node)
                continue
            nxt = pending.pop(0)
            if nxt in on_path:
                return path[on_path[nxt] :]
            if nxt in done:
                continue
            on_path[nxt] = len(path)
            path.append(nxt)
            stack.append((nxt, [s for s in successors.get(nxt, []) if s in allowed]))
    return []
