"""Memoization of computed values across calls.

The evaluators cache values for a single call graph only. The wrappers in
this module add a second level of caching keyed by a subset of the
parameters, backed by a pluggable key-value storage::

    get_height = memoize_get(fimbul.get, "height", ["x", "y"])
    get_height({"x": 1, "y": 2, "seed": 7})  # computed
    get_height({"x": 1, "y": 2, "seed": 7})  # read from storage
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Collection, Hashable, Iterable, Mapping
from typing import Any, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_MISSING = object()

type CacheKeyFn = Callable[[Mapping[str, Any], Collection[str]], str]


class KeyValueStorage(Protocol):
    """Storage used by the memoizing wrappers.

    Implementations for the async wrappers may return awaitables from both
    methods; the sync wrappers require plain return values.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default`` if there is none."""
        ...

    def set(self, key: str, value: Any) -> bool | Awaitable[bool]:
        """Store ``value`` under ``key`` and report whether anything changed."""
        ...


class MemoryStorage:
    """In-memory KeyValueStorage backed by a dict."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = {} if data is None else data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """Store a value.

        Returns:
            False if an equal value was already stored under ``key``, True otherwise.

        """
        if key in self._data and self._data[key] == value:
            return False
        self._data[key] = value
        return True

    def has(self, key: str) -> bool:
        return key in self._data

    def delete(self, key: str) -> bool:
        """Remove a value, returning whether one was stored."""
        return self._data.pop(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


def _as_mapping(params: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    if isinstance(params, BaseModel):
        return params.model_dump()
    return params


def make_cache_key(params: Mapping[str, Any] | BaseModel, cache_keys: Collection[str]) -> str:
    """Build a storage key from the parameters named in ``cache_keys``.

    Args:
        params: Parameters of the call.
        cache_keys: Names of the parameters that identify a cached value.

    Returns:
        ``name_value`` pairs sorted by name and joined by ``-``.

    Example:
        >>> make_cache_key({"y": 2, "x": 1, "seed": 7}, ["x", "y"])
        'x_1-y_2'

    """
    values = _as_mapping(params)
    return "-".join(f"{name}_{values[name]}" for name in sorted(values) if name in cache_keys)


def _check_cache_keys(cache_keys: Collection[str]) -> None:
    if not cache_keys:
        msg = "Cache keys must be provided"
        raise ValueError(msg)


def _merge(default_params: Mapping[str, Any] | None, params: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    return {**(default_params or {}), **_as_mapping(params)}


async def _resolve[T](value: T | Awaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


def memoize_get(
    get: Callable[[Hashable, Any], Any],
    key: Hashable,
    cache_keys: Collection[str],
    *,
    default_params: Mapping[str, Any] | None = None,
    storage: KeyValueStorage | None = None,
    cache_key_fn: CacheKeyFn = make_cache_key,
) -> Callable[[Mapping[str, Any]], Any]:
    """Wrap a ``get`` function so that computed values are kept in ``storage``.

    Args:
        get: The ``get`` of a Fimbul (or any function with the same signature).
        key: Key of the node to compute.
        cache_keys: Names of the parameters that identify a cached value.
        default_params: Parameters merged under the ones given to each call.
        storage: Where values are kept. Defaults to a new MemoryStorage.
        cache_key_fn: Builds the storage key from the call's parameters.

    Returns:
        A function of the parameters returning the (possibly cached) value.

    Raises:
        ValueError: If ``cache_keys`` is empty.

    """
    _check_cache_keys(cache_keys)
    store: KeyValueStorage = MemoryStorage() if storage is None else storage

    def memoized(params: Mapping[str, Any]) -> Any:
        storage_key = cache_key_fn(params, cache_keys)
        cached = store.get(storage_key, _MISSING)
        if cached is not _MISSING:
            logger.debug("Storage hit for %r at %r", key, storage_key)
            return cached

        value = get(key, _merge(default_params, params))
        store.set(storage_key, value)
        return value

    return memoized


def memoize_get_many(
    get_many: Callable[[Iterable[Hashable], Any], dict[Hashable, Any]],
    keys: Iterable[Hashable],
    cache_keys: Collection[str],
    *,
    default_params: Mapping[str, Any] | None = None,
    storage: KeyValueStorage | None = None,
    cache_key_fn: CacheKeyFn = make_cache_key,
) -> Callable[[Mapping[str, Any]], dict[Hashable, Any]]:
    """Wrap a ``get_many`` function so that computed values are kept in ``storage``.

    The whole result mapping of one call is stored under a single key.
    See ``memoize_get`` for the arguments.
    """
    _check_cache_keys(cache_keys)
    store: KeyValueStorage = MemoryStorage() if storage is None else storage
    requested = tuple(keys)

    def memoized(params: Mapping[str, Any]) -> dict[Hashable, Any]:
        storage_key = cache_key_fn(params, cache_keys)
        cached = store.get(storage_key, _MISSING)
        if cached is not _MISSING:
            logger.debug("Storage hit for %r at %r", requested, storage_key)
            return cached

        values = get_many(requested, _merge(default_params, params))
        store.set(storage_key, values)
        return values

    return memoized


def amemoize_get(
    get: Callable[[Hashable, Any], Any],
    key: Hashable,
    cache_keys: Collection[str],
    *,
    default_params: Mapping[str, Any] | None = None,
    storage: KeyValueStorage | None = None,
    cache_key_fn: CacheKeyFn = make_cache_key,
) -> Callable[[Mapping[str, Any]], Awaitable[Any]]:
    """Coroutine variant of ``memoize_get``.

    ``get`` and the storage methods may return either values or awaitables,
    so this works with both ``Fimbul.get`` and ``FimbulAsync.get``.
    """
    _check_cache_keys(cache_keys)
    store: KeyValueStorage = MemoryStorage() if storage is None else storage

    async def memoized(params: Mapping[str, Any]) -> Any:
        storage_key = cache_key_fn(params, cache_keys)
        cached = await _resolve(store.get(storage_key, _MISSING))
        if cached is not _MISSING:
            logger.debug("Storage hit for %r at %r", key, storage_key)
            return cached

        value = await _resolve(get(key, _merge(default_params, params)))
        await _resolve(store.set(storage_key, value))
        return value

    return memoized


def amemoize_get_many(
    get_many: Callable[[Iterable[Hashable], Any], Any],
    keys: Iterable[Hashable],
    cache_keys: Collection[str],
    *,
    default_params: Mapping[str, Any] | None = None,
    storage: KeyValueStorage | None = None,
    cache_key_fn: CacheKeyFn = make_cache_key,
) -> Callable[[Mapping[str, Any]], Awaitable[dict[Hashable, Any]]]:
    """Coroutine variant of ``memoize_get_many``."""
    _check_cache_keys(cache_keys)
    store: KeyValueStorage = MemoryStorage() if storage is None else storage
    requested = tuple(keys)

    async def memoized(params: Mapping[str, Any]) -> dict[Hashable, Any]:
        storage_key = cache_key_fn(params, cache_keys)
        cached = await _resolve(store.get(storage_key, _MISSING))
        if cached is not _MISSING:
            logger.debug("Storage hit for %r at %r", requested, storage_key)
            return cached

        values = await _resolve(get_many(requested, _merge(default_params, params)))
        await _resolve(store.set(storage_key, values))
        return values

    return memoized
