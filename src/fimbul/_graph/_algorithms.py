"""Graph algorithms over node dependency mappings."""

from collections import deque
from collections.abc import Hashable, Iterable, Mapping, Sequence


def topological_sort[T: Hashable](dependencies: Mapping[T, Sequence[T]]) -> list[T]:
    """Sort nodes so that every node comes after all of its dependencies.

    Ties are broken by the iteration order of ``dependencies``, so the result
    is deterministic for a given mapping.

    Args:
        dependencies: Mapping from node to the nodes it depends on.
            Dependencies that are not keys of the mapping are treated as nodes
            without dependencies of their own.

    Returns:
        List of nodes in dependency order.

    Raises:
        ValueError: If the graph contains a cycle.

    Example:
        >>> topological_sort({"c": ["b"], "b": ["a"], "a": []})
        ['a', 'b', 'c']

    """
    remaining: dict[T, int] = {}
    dependents: dict[T, list[T]] = {}
    for node, deps in dependencies.items():
        remaining.setdefault(node, 0)
        for dep in deps:
            remaining.setdefault(dep, 0)
            remaining[node] += 1
            dependents.setdefault(dep, []).append(node)

    queue = deque(node for node, count in remaining.items() if count == 0)
    order: list[T] = []

    while queue:
        node = queue.popleft()
        order.append(node)
        for dependent in dependents.get(node, []):
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(remaining):
        msg = "Cycle detected in graph"
        raise ValueError(msg)

    return order


def resolution_order[T: Hashable](
    dependencies: Mapping[T, Sequence[T]],
    targets: Iterable[T],
) -> list[T]:
    """Order in which nodes are evaluated when ``targets`` are requested.

    This mirrors the evaluators: each target is resolved in turn, and every
    node resolves its dependencies depth-first in declared order before it is
    evaluated itself. Nodes reached more than once appear only the first time.

    Args:
        dependencies: Mapping from node to the nodes it depends on.
        targets: The requested nodes, in request order.

    Returns:
        List of every node needed by ``targets``, in evaluation order.

    Example:
        >>> resolution_order({"a": [], "b": [], "c": ["b", "a"]}, ["c"])
        ['b', 'a', 'c']

    """
    order: list[T] = []
    seen: set[T] = set()

    def visit(node: T) -> None:
        if node in seen:
            return
        seen.add(node)
        for dep in dependencies.get(node, ()):
            visit(dep)
        order.append(node)

    for target in targets:
        visit(target)

    return order
