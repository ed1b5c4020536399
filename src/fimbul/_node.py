"""Definition record of a single computation node."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable


@dataclass(frozen=True, slots=True)
class Node:
    """A named compute function together with the keys it depends on.

    Nodes are created by ``Registry.define`` and never change afterwards.

    Attributes:
        key: Unique identifier of the node within its registry.
        compute_fn: Called as ``compute_fn(params, dependency_results)`` where
            ``dependency_results`` maps each declared dependency to its value.
        dependencies: Keys of the nodes this node needs, in declared order.
        description: Optional human-readable summary, shown by the CLI.

    Example:
        >>> Node(
        ...     key="area",
        ...     compute_fn=lambda params, deps: params["width"] * params["height"],
        ... )

    """

    key: Hashable
    compute_fn: Callable[[Any, dict[Hashable, Any]], Any]
    dependencies: tuple[Hashable, ...] = ()
    description: str | None = None

    @property
    def is_async(self) -> bool:
        """Whether the compute function is a coroutine function."""
        return inspect.iscoroutinefunction(self.compute_fn)

    def __hash__(self) -> int:
        """Hash based on the node key."""
        return hash(self.key)
