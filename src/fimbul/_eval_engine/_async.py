"""Asynchronous evaluation of computation nodes."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

from fimbul._cache import ResultCache
from fimbul._errors import DependencyResolutionError
from fimbul._params import coerce_params

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable, MutableMapping

    from pydantic import BaseModel

    from fimbul._node import Node
    from fimbul._registry import Registry

logger = logging.getLogger(__name__)


class AsyncEvaluator:
    """Computes node values whose compute functions may be asynchronous.

    The algorithm matches ``Evaluator``. Compute functions may return plain
    values or awaitables. Sibling dependencies are resolved one after the
    other in declared order, never concurrently, so side effects of compute
    functions happen in a reproducible order.

    A failure while resolving a dependency is re-raised as a
    ``DependencyResolutionError`` naming the dependency and the node that
    needed it.

    Args:
        registry: Registry holding the node definitions.
        params_model: Optional pydantic model that parameters are validated
            against once per top-level call.

    """

    def __init__(self, registry: Registry, *, params_model: type[BaseModel] | None = None) -> None:
        self.registry = registry
        self.params_model = params_model

    async def get(
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
                Pass the same ResultCache to concurrent calls so that a node
                requested by several of them is evaluated only once.

        Returns:
            The value of the node.

        Raises:
            UndefinedNodeError: If ``key`` is not registered.
            DependencyResolutionError: If resolving one of the dependencies failed.

        """
        results = ResultCache.wrap(cache)
        return await self._resolve(key, coerce_params(params, self.params_model), results)

    async def get_many(
        self,
        keys: Iterable[Hashable],
        params: Any,
        cache: MutableMapping[Hashable, Any] | None = None,
    ) -> dict[Hashable, Any]:
        """Compute several nodes, in order, against one shared cache.

        Returns:
            Mapping holding exactly the requested keys and their values.

        """
        results = ResultCache.wrap(cache)
        params = coerce_params(params, self.params_model)
        values: dict[Hashable, Any] = {}
        for key in keys:
            values[key] = await self._resolve(key, params, results)
        return values

    async def _resolve(self, key: Hashable, params: Any, results: ResultCache) -> Any:
        while True:
            if key in results:
                logger.debug("Skipping %r (already has value)", key)
                return results[key]

            pending = results.pending(key)
            if pending is None:
                break

            logger.debug("Waiting for in-flight evaluation of %r", key)
            try:
                return await asyncio.shield(pending)
            except asyncio.CancelledError:
                task = asyncio.current_task()
                if not pending.cancelled() or (task is not None and task.cancelling()):
                    raise
                # Only the owner of the evaluation was cancelled
                logger.debug("In-flight evaluation of %r was cancelled, evaluating again", key)

        node = self.registry.node(key)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        results.track(key, future)
        try:
            value = await self._evaluate(node, params, results)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark as retrieved so asyncio does not log it when nobody waits
            future.exception()
            raise
        else:
            results[key] = value
            future.set_result(value)
        finally:
            results.untrack(key)

        return value

    async def _evaluate(self, node: Node, params: Any, results: ResultCache) -> Any:
        dependency_results: dict[Hashable, Any] = {}
        for dependency in node.dependencies:
            try:
                dependency_results[dependency] = await self._resolve(dependency, params, results)
            except Exception as e:
                raise DependencyResolutionError(dependency, node.key, e) from e

        logger.debug("Evaluating %r", node.key)
        value = node.compute_fn(params, dependency_results)
        if inspect.isawaitable(value):
            value = await value
        return value
