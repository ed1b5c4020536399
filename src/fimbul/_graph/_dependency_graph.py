"""Read-only dependency graph of registered nodes."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from ._algorithms import resolution_order, topological_sort


@dataclass(frozen=True, slots=True)
class DependencyGraph[T: Hashable]:
    """A directed graph of "depends on" relationships between nodes.

    Unlike a plain edge set, the graph keeps the declared order of each node's
    dependencies, because evaluators resolve dependencies in that order.

    - dependencies(b) == (a,) means "b depends on a"
    - dependents(a) == (b,) means "a is depended on by b"

    Attributes:
        _dependencies: Mapping from node to its direct dependencies, in declared order.
        _dependents: Mapping from node to the nodes that directly depend on it.

    """

    _dependencies: dict[T, tuple[T, ...]] = field(default_factory=dict)
    _dependents: dict[T, tuple[T, ...]] = field(default_factory=dict)

    @classmethod
    def from_dependencies(cls, dependencies: Mapping[T, Sequence[T]]) -> DependencyGraph[T]:
        """Build a graph from a mapping of node to its dependencies.

        Args:
            dependencies: Mapping from node to the nodes it depends on.

        Returns:
            A new DependencyGraph instance.

        Example:
            >>> graph = DependencyGraph.from_dependencies({"a": [], "b": ["a"]})
            >>> graph.dependents("a")
            ('b',)

        """
        resolved: dict[T, tuple[T, ...]] = {}
        dependents: dict[T, list[T]] = {}
        for node, deps in dependencies.items():
            resolved[node] = tuple(deps)
            dependents.setdefault(node, [])
            for dep in deps:
                dependents.setdefault(dep, []).append(node)
                resolved.setdefault(dep, ())

        return cls(
            _dependencies=resolved,
            _dependents={node: tuple(nodes) for node, nodes in dependents.items()},
        )

    @property
    def nodes(self) -> tuple[T, ...]:
        """All nodes in the graph, in insertion order."""
        return tuple(self._dependencies)

    def dependencies(self, node: T) -> tuple[T, ...]:
        """Get the direct dependencies of a node, in declared order."""
        return self._dependencies.get(node, ())

    def dependents(self, node: T) -> tuple[T, ...]:
        """Get the nodes that directly depend on a node."""
        return self._dependents.get(node, ())

    def roots(self) -> tuple[T, ...]:
        """Get nodes without dependencies."""
        return tuple(n for n, deps in self._dependencies.items() if not deps)

    def leaves(self) -> tuple[T, ...]:
        """Get nodes that nothing depends on."""
        return tuple(n for n in self._dependencies if not self._dependents.get(n))

    def ancestors(self, node: T) -> frozenset[T]:
        """Get all transitive dependencies of a node."""
        return self._reachable(node, self._dependencies)

    def descendants(self, node: T) -> frozenset[T]:
        """Get all nodes that transitively depend on a node."""
        return self._reachable(node, self._dependents)

    def topological_order(self) -> list[T]:
        """Return nodes with every node after all of its dependencies.

        Raises:
            ValueError: If the graph contains a cycle.

        """
        return topological_sort(self._dependencies)

    def resolution_order(self, targets: Iterable[T]) -> list[T]:
        """Return the order in which nodes are evaluated for ``targets``.

        Args:
            targets: Requested nodes, in request order.

        Returns:
            Every node needed by ``targets`` in the order an evaluator with an
            empty cache calls their compute functions.

        """
        return resolution_order(self._dependencies, targets)

    @staticmethod
    def _reachable(node: T, adjacency: Mapping[T, tuple[T, ...]]) -> frozenset[T]:
        visited: set[T] = set()
        stack = list(adjacency.get(node, ()))
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(adjacency.get(current, ()))
        return frozenset(visited)

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self._dependencies)

    def __iter__(self) -> Iterator[T]:
        """Iterate over nodes in insertion order."""
        return iter(self._dependencies)

    def __contains__(self, node: object) -> bool:
        """Check if a node is in the graph."""
        return node in self._dependencies
