"""Rich rendering utilities for CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from collections.abc import Hashable, Mapping

    from rich.console import Console

    from .graph_query import NodeInfo, TreeNode


def _format_keys(keys: tuple[Hashable, ...]) -> str:
    if not keys:
        return "[dim]-[/dim]"
    return ", ".join(escape(str(k)) for k in keys)


def render_node_table(nodes: list[NodeInfo], console: Console) -> None:
    """Render node list as a Rich table.

    Args:
        nodes: List of NodeInfo to render.
        console: Rich Console to output to.

    """
    if not nodes:
        console.print("[dim]No nodes defined[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Node", style="bold")
    table.add_column("Depends on")
    table.add_column("Used by")
    table.add_column("Description", style="dim")

    for node in nodes:
        name = escape(str(node.key))
        if node.is_async:
            name += " [magenta](async)[/magenta]"
        summary = (node.description or "").splitlines()[0] if node.description else ""
        table.add_row(name, _format_keys(node.dependencies), _format_keys(node.dependents), escape(summary))

    console.print(table)
    console.print(f"\n[dim]Total: {len(nodes)} nodes[/dim]")


def render_tree(tree_node: TreeNode, console: Console) -> None:
    """Render a dependency tree using Rich Tree.

    Args:
        tree_node: TreeNode root to render.
        console: Rich Console to output to.

    """
    rich_tree = Tree(f"[bold]{escape(str(tree_node.key))}[/bold]")
    _add_tree_children(rich_tree, tree_node.children)
    console.print(rich_tree)


def _add_tree_children(parent: Tree, children: list[TreeNode]) -> None:
    for child in children:
        child_tree = parent.add(escape(str(child.key)))
        _add_tree_children(child_tree, child.children)


def render_plan(plan: list[Hashable], console: Console) -> None:
    """Render an evaluation plan as a numbered list."""
    for index, key in enumerate(plan, start=1):
        console.print(f"[dim]{index:>3}.[/dim] {escape(str(key))}")


def render_values_table(values: Mapping[Hashable, Any], console: Console) -> None:
    """Render computed values as a Rich table."""
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Node", style="bold")
    table.add_column("Value")

    for key, value in values.items():
        table.add_row(escape(str(key)), escape(repr(value)))

    console.print(table)


def values_to_json(values: Mapping[Hashable, Any]) -> str:
    """Serialize computed values to JSON, falling back to ``str`` for other types."""
    return json.dumps({str(k): v for k, v in values.items()}, indent=2, default=str)
