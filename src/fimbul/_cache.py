"""Call-scoped cache of computed node values."""

from __future__ import annotations

from collections.abc import Hashable, Iterator, MutableMapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import asyncio


class ResultCache(MutableMapping[Hashable, Any]):
    """Computed node values for one resolution call graph.

    The cache behaves like a plain mapping of node key to value. A key that is
    present counts as computed whatever its value, so ``0``, ``""``, ``False``
    and ``None`` are cache hits like any other value.

    It additionally records evaluations that the async evaluator has started
    but not finished. Concurrent top-level calls that share one ResultCache
    therefore wait for an in-flight evaluation instead of starting another.

    Args:
        values: Mapping to store computed values in. It is used directly, not
            copied, so the caller sees every value computed through the cache.

    Example:
        >>> values = {}
        >>> cache = ResultCache(values)
        >>> cache["answer"] = 0
        >>> "answer" in cache, values
        (True, {'answer': 0})

    """

    __slots__ = ("_pending", "_values")

    def __init__(self, values: MutableMapping[Hashable, Any] | None = None) -> None:
        self._values: MutableMapping[Hashable, Any] = {} if values is None else values
        self._pending: dict[Hashable, asyncio.Future[Any]] = {}

    @classmethod
    def wrap(cls, cache: MutableMapping[Hashable, Any] | None) -> ResultCache:
        """Return ``cache`` itself if it is a ResultCache, otherwise wrap it."""
        if isinstance(cache, ResultCache):
            return cache
        return cls(cache)

    def pending(self, key: Hashable) -> asyncio.Future[Any] | None:
        """Get the future of an in-flight evaluation of ``key``, if any."""
        return self._pending.get(key)

    def track(self, key: Hashable, future: asyncio.Future[Any]) -> None:
        """Record that an evaluation of ``key`` is in flight."""
        self._pending[key] = future

    def untrack(self, key: Hashable) -> None:
        """Forget the in-flight evaluation of ``key``."""
        self._pending.pop(key, None)

    def __getitem__(self, key: Hashable) -> Any:
        return self._values[key]

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._values[key] = value

    def __delitem__(self, key: Hashable) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self._values)!r}, pending={list(self._pending)!r})"
