"""Graph module providing dependency graph abstractions.

This module contains:
- DependencyGraph[T]: An immutable view of nodes and their ordered dependencies
- topological_sort: Ordering of nodes by dependencies
- resolution_order: The order in which an evaluator visits nodes
"""

from ._algorithms import resolution_order, topological_sort
from ._dependency_graph import DependencyGraph

__all__ = ["DependencyGraph", "resolution_order", "topological_sort"]
