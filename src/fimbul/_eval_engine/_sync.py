"""Synchronous evaluation of computation nodes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fimbul._params import coerce_params

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, MutableMapping

    from pydantic import BaseModel

    from fimbul._registry import Registry

logger = logging.getLogger(__name__)


class Evaluator:
    """Computes node values, resolving dependencies depth-first.

    Every node function runs at most once per cache: before a node is
    evaluated the cache is consulted, and each computed value is written back
    into it. Dependencies shared by several nodes are thus computed once.

    Args:
        registry: Registry holding the node definitions.
        params_model: Optional pydantic model that parameters are validated
            against once per top-level call.

    """

    def __init__(self, registry: Registry, *, params_model: type[BaseModel] | None = None) -> None:
        self.registry = registry
        self.params_model = params_model

    def get(
        self,
        key: Hashable,
        params: Any,
        cache: MutableMapping[Hashable, Any] | None = None,
    ) -> Any:
        """Compute the value of a node.

        Args:
            key: Key of the node to compute.
            params: Parameters passed to every compute function.
            cache: Values computed so far. A fresh cache is used when None.
                Newly computed values, including intermediate dependencies,
                are written into it.

        Returns:
            The value of the node.

        Raises:
            UndefinedNodeError: If ``key`` is not registered.

        """
        if cache is None:
            cache = {}
        return self._resolve(key, coerce_params(params, self.params_model), cache)

    def get_many(
        self,
        keys: Iterable[Hashable],
        params: Any,
        cache: MutableMapping[Hashable, Any] | None = None,
    ) -> dict[Hashable, Any]:
        """Compute several nodes against one shared cache.

        Returns:
            Mapping holding exactly the requested keys and their values.

        """
        if cache is None:
            cache = {}
        params = coerce_params(params, self.params_model)
        return {key: self._resolve(key, params, cache) for key in keys}

    def _resolve(self, key: Hashable, params: Any, cache: MutableMapping[Hashable, Any]) -> Any:
        if key in cache:
            logger.debug("Skipping %r (already has value)", key)
            return cache[key]

        node = self.registry.node(key)
        dependency_results = {dep: self._resolve(dep, params, cache) for dep in node.dependencies}

        logger.debug("Evaluating %r", key)
        value = node.compute_fn(params, dependency_results)
        cache[key] = value
        return value
