"""Registry of computation nodes."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from ._errors import DuplicateKeyError, UndefinedNodeError, UnknownDependencyError
from ._graph import DependencyGraph
from ._node import Node

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterable, Iterator

logger = logging.getLogger(__name__)


class Registry:
    """Owns node definitions and validates them as they are added.

    A node may only depend on nodes that are already registered. Because a
    node cannot reference itself or anything defined after it, the registry
    can never contain a dependency cycle.

    Example:
        >>> registry = Registry()
        >>> _ = registry.define("double", lambda params, deps: params["value"] * 2)
        >>> _ = registry.define("quadruple", lambda params, deps: deps["double"] * 2, ["double"])
        >>> registry.dependencies_of("quadruple")
        ('double',)

    """

    def __init__(self) -> None:
        self._nodes: dict[Hashable, Node] = {}

    def define(
        self,
        key: Hashable,
        compute_fn: Callable[[Any, dict[Hashable, Any]], Any],
        dependencies: Iterable[Hashable] = (),
        *,
        description: str | None = None,
    ) -> Node:
        """Register a new node.

        Args:
            key: Unique identifier of the node.
            compute_fn: Function called as ``compute_fn(params, dependency_results)``.
            dependencies: Keys of already registered nodes that ``compute_fn`` needs.
                Repeated keys are kept once, at their first position.
            description: Human-readable summary. Defaults to the docstring of ``compute_fn``.

        Returns:
            The registered Node.

        Raises:
            DuplicateKeyError: If ``key`` is already registered.
            UnknownDependencyError: If a dependency is not registered yet.
            TypeError: If ``compute_fn`` is not callable or ``dependencies`` is a string.

        """
        if key in self._nodes:
            raise DuplicateKeyError(key)

        if not callable(compute_fn):
            msg = f"Compute function for node {key!r} must be callable, got {type(compute_fn).__name__}"
            raise TypeError(msg)

        if isinstance(dependencies, (str, bytes)):
            msg = f"Dependencies of node {key!r} must be a collection of keys, not a single string"
            raise TypeError(msg)

        resolved = tuple(dict.fromkeys(dependencies))
        for dependency in resolved:
            if dependency not in self._nodes:
                raise UnknownDependencyError(key, dependency)

        if description is None:
            description = inspect.getdoc(compute_fn)

        node = Node(key=key, compute_fn=compute_fn, dependencies=resolved, description=description)
        self._nodes[key] = node
        logger.debug("Defined node %r with dependencies %r", key, resolved)
        return node

    def has(self, key: Hashable) -> bool:
        """Check if a node is registered under ``key``."""
        return key in self._nodes

    def node(self, key: Hashable) -> Node:
        """Get a registered node.

        Raises:
            UndefinedNodeError: If no node is registered under ``key``.

        """
        try:
            return self._nodes[key]
        except KeyError:
            raise UndefinedNodeError(key) from None

    def keys(self) -> tuple[Hashable, ...]:
        """Keys of all registered nodes, in definition order."""
        return tuple(self._nodes)

    def dependencies_of(self, key: Hashable) -> tuple[Hashable, ...]:
        """Declared dependencies of a node.

        Raises:
            UndefinedNodeError: If no node is registered under ``key``.

        """
        return self.node(key).dependencies

    def graph(self) -> DependencyGraph[Hashable]:
        """Build a read-only dependency graph of the registered nodes."""
        return DependencyGraph.from_dependencies(
            {key: node.dependencies for key, node in self._nodes.items()},
        )

    def __contains__(self, key: object) -> bool:
        """Check if a node is registered under ``key``."""
        return key in self._nodes

    def __len__(self) -> int:
        """Return the number of registered nodes."""
        return len(self._nodes)

    def __iter__(self) -> Iterator[Hashable]:
        """Iterate over keys in definition order."""
        return iter(self._nodes)
