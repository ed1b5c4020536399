"""Graph query functions for CLI commands.

This module provides pure functions for querying computation managers.
These are the functional core - no I/O, no Rich rendering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

    from .discover import Manager


@dataclass(frozen=True, slots=True)
class NodeInfo:
    """Information about a node for listing."""

    key: Hashable
    dependencies: tuple[Hashable, ...]
    dependents: tuple[Hashable, ...]
    description: str | None
    is_async: bool


@dataclass(slots=True)
class TreeNode:
    """A node in a dependency tree for rendering."""

    key: Hashable
    children: list[TreeNode]


def list_nodes(manager: Manager, *, leaves_only: bool = False) -> list[NodeInfo]:
    """List nodes in definition order.

    Args:
        manager: The computation manager to analyze.
        leaves_only: If True, only return nodes that nothing depends on.

    Returns:
        List of NodeInfo.

    """
    graph = manager.graph()
    keys = graph.leaves() if leaves_only else graph.nodes

    infos: list[NodeInfo] = []
    for key in keys:
        node = manager.registry.node(key)
        infos.append(
            NodeInfo(
                key=key,
                dependencies=node.dependencies,
                dependents=graph.dependents(key),
                description=node.description,
                is_async=node.is_async,
            ),
        )
    return infos


def get_dependency_tree(
    manager: Manager,
    key: Hashable,
    *,
    invert: bool = False,
    max_depth: int | None = None,
) -> TreeNode:
    """Build a dependency tree for visualization.

    Children keep the declared dependency order. A node reached a second time
    is shown again, since shared dependencies are the interesting part of the tree.

    Args:
        manager: The computation manager containing the node.
        key: The root node of the tree.
        invert: If False, show what the node depends on.
                If True, show what depends on the node.
        max_depth: Maximum depth to traverse (None for unlimited).

    Returns:
        TreeNode representing the dependency tree.

    Raises:
        UndefinedNodeError: If the node is not defined.

    """
    manager.registry.node(key)
    graph = manager.graph()

    def build_tree(node_key: Hashable, depth: int) -> TreeNode:
        if max_depth is not None and depth >= max_depth:
            return TreeNode(key=node_key, children=[])
        neighbors = graph.dependents(node_key) if invert else graph.dependencies(node_key)
        return TreeNode(key=node_key, children=[build_tree(n, depth + 1) for n in neighbors])

    return build_tree(key, 0)


def get_evaluation_plan(manager: Manager, keys: Iterable[Hashable]) -> list[Hashable]:
    """Order in which node functions run when ``keys`` are requested with an empty cache.

    Raises:
        UndefinedNodeError: If one of the keys is not defined.

    """
    requested = list(keys)
    for key in requested:
        manager.registry.node(key)
    return manager.graph().resolution_order(requested)
