"""User-facing computation managers."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Self

from ._eval_engine import AsyncEvaluator, Evaluator
from ._registry import Registry

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable, Iterable, MutableMapping

    from pydantic import BaseModel

    from ._graph import DependencyGraph

type ComputeFn = Callable[[Any, dict[Hashable, Any]], Any]


class _Manager:
    """Registration and introspection shared by both managers."""

    def __init__(self, *, params_model: type[BaseModel] | None = None) -> None:
        self.registry = Registry()
        self.params_model = params_model

    def define(
        self,
        key: Hashable,
        fn: ComputeFn,
        dependencies: Iterable[Hashable] = (),
        *,
        description: str | None = None,
    ) -> Self:
        """Define a computation node.

        Args:
            key: Unique identifier of the node.
            fn: Compute function, called as ``fn(params, dependency_results)``.
            dependencies: Keys of previously defined nodes that ``fn`` needs.
            description: Human-readable summary, defaults to the docstring of ``fn``.

        Returns:
            The manager itself, so that definitions can be chained.

        Raises:
            DuplicateKeyError: If ``key`` is already defined.
            UnknownDependencyError: If a dependency has not been defined yet.

        """
        self.registry.define(key, fn, dependencies, description=description)
        return self

    def node(
        self,
        key: Hashable | None = None,
        *,
        depends: Iterable[Hashable] = (),
        description: str | None = None,
    ) -> Callable[[ComputeFn], ComputeFn]:
        """Decorator to define a computation node.

        Args:
            key: Key of the node. Defaults to the function name.
            depends: Keys of previously defined nodes the function needs.
            description: Human-readable summary, defaults to the function docstring.

        Example:
            @fimbul.node()
            def area(params, deps):
                return params["width"] * params["height"]

            @fimbul.node(depends=["area"])
            def volume(params, deps):
                return deps["area"] * params["depth"]

        """

        def decorator(fn: ComputeFn) -> ComputeFn:
            self.define(fn.__name__ if key is None else key, fn, depends, description=description)
            return fn

        return decorator

    def has(self, key: Hashable) -> bool:
        """Check if a node is defined under ``key``."""
        return self.registry.has(key)

    def graph(self) -> DependencyGraph[Hashable]:
        """Build a read-only dependency graph of the defined nodes."""
        return self.registry.graph()

    def __contains__(self, key: object) -> bool:
        return key in self.registry

    def __len__(self) -> int:
        return len(self.registry)


class Fimbul(_Manager):
    """Computation manager for dependency graphs of synchronous functions.

    Example:
        >>> fimbul = Fimbul()
        >>> _ = fimbul.define("multiply", lambda p, _: p["a"] * p["b"]).define(
        ...     "other_value", lambda _, deps: deps["multiply"] * 42, ["multiply"]
        ... )
        >>> fimbul.get_many(["multiply", "other_value"], {"a": 4, "b": 20})
        {'multiply': 80, 'other_value': 3360}

    """

    def __init__(self, *, params_model: type[BaseModel] | None = None) -> None:
        super().__init__(params_model=params_model)
        self._evaluator = Evaluator(self.registry, params_model=params_model)

    def define(
        self,
        key: Hashable,
        fn: ComputeFn,
        dependencies: Iterable[Hashable] = (),
        *,
        description: str | None = None,
    ) -> Self:
        if inspect.iscoroutinefunction(fn):
            msg = f"Node {key!r} has a coroutine function; define it on a FimbulAsync instead"
            raise TypeError(msg)
        return super().define(key, fn, dependencies, description=description)

    def get(self, key: Hashable, params: Any, cache: MutableMapping[Hashable, Any] | None = None) -> Any:
        """Compute the value of a node. See ``Evaluator.get``."""
        return self._evaluator.get(key, params, cache)

    def get_many(
        self,
        keys: Iterable[Hashable],
        params: Any,
        cache: MutableMapping[Hashable, Any] | None = None,
    ) -> dict[Hashable, Any]:
        """Compute several nodes against one shared cache. See ``Evaluator.get_many``."""
        return self._evaluator.get_many(keys, params, cache)


class FimbulAsync(_Manager):
    """Computation manager whose compute functions may be coroutines."""

    def __init__(self, *, params_model: type[BaseModel] | None = None) -> None:
        super().__init__(params_model=params_model)
        self._evaluator = AsyncEvaluator(self.registry, params_model=params_model)

    async def get(self, key: Hashable, params: Any, cache: MutableMapping[Hashable, Any] | None = None) -> Any:
        """Compute the value of a node. See ``AsyncEvaluator.get``."""
        return await self._evaluator.get(key, params, cache)

    async def get_many(
        self,
        keys: Iterable[Hashable],
        params: Any,
        cache: MutableMapping[Hashable, Any] | None = None,
    ) -> dict[Hashable, Any]:
        """Compute several nodes against one shared cache. See ``AsyncEvaluator.get_many``."""
        return await self._evaluator.get_many(keys, params, cache)
