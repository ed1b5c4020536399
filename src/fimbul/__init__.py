"""Computation manager for dependency graphs."""

__all__ = [
    "AsyncEvaluator",
    "DependencyGraph",
    "DependencyResolutionError",
    "DuplicateKeyError",
    "Evaluator",
    "Fimbul",
    "FimbulAsync",
    "FimbulError",
    "KeyValueStorage",
    "MemoryStorage",
    "Node",
    "Registry",
    "ResultCache",
    "UndefinedNodeError",
    "UnknownDependencyError",
    "amemoize_get",
    "amemoize_get_many",
    "make_cache_key",
    "memoize_get",
    "memoize_get_many",
    "resolution_order",
    "topological_sort",
]

from ._cache import ResultCache
from ._errors import (
    DependencyResolutionError,
    DuplicateKeyError,
    FimbulError,
    UndefinedNodeError,
    UnknownDependencyError,
)
from ._eval_engine import AsyncEvaluator, Evaluator
from ._fimbul import Fimbul, FimbulAsync
from ._graph import DependencyGraph, resolution_order, topological_sort
from ._memo import (
    KeyValueStorage,
    MemoryStorage,
    amemoize_get,
    amemoize_get_many,
    make_cache_key,
    memoize_get,
    memoize_get_many,
)
from ._node import Node
from ._registry import Registry
