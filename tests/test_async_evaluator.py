"""Tests for the asynchronous evaluator."""

import asyncio
from collections import Counter
from typing import Any

import pytest

from fimbul import AsyncEvaluator, DependencyResolutionError, Registry, ResultCache, UndefinedNodeError

PARAMS = {"param1": 4, "param2": 2, "param3": -30}


@pytest.fixture
def tree_registry() -> Registry:
    async def parent_value(p, d):
        await asyncio.sleep(0)
        return p["param1"] * p["param2"]

    async def child2(p, d):
        return d["parentValue"] / 2 + p["param2"]

    registry = Registry()
    registry.define("parentValue", parent_value)
    registry.define("child1", lambda p, d: d["parentValue"] * 2 - p["param1"], ["parentValue"])
    registry.define("child2", child2, ["parentValue"])
    registry.define("root", lambda p, d: d["child1"] * d["child2"] + p["param3"], ["child1", "child2"])
    return registry


class TestGet:
    """Tests for AsyncEvaluator.get."""

    @pytest.mark.asyncio
    async def test_composition(self, tree_registry: Registry) -> None:
        assert await AsyncEvaluator(tree_registry).get("root", PARAMS) == 42

    @pytest.mark.asyncio
    async def test_mixed_sync_and_async_functions(self) -> None:
        async def fetch(p, d):
            return 20

        registry = Registry()
        registry.define("fetched", fetch)
        registry.define("plain", lambda p, d: d["fetched"] + 1, ["fetched"])
        assert await AsyncEvaluator(registry).get("plain", {}) == 21

    @pytest.mark.asyncio
    async def test_awaitable_result_is_awaited(self) -> None:
        async def later():
            return "done"

        registry = Registry()
        registry.define("deferred", lambda p, d: later())
        assert await AsyncEvaluator(registry).get("deferred", {}) == "done"

    @pytest.mark.asyncio
    async def test_cache_written_back(self, tree_registry: Registry) -> None:
        cache: dict[str, Any] = {}
        await AsyncEvaluator(tree_registry).get("root", PARAMS, cache)
        assert cache == {"parentValue": 8, "child1": 12, "child2": 6.0, "root": 42.0}

    @pytest.mark.asyncio
    async def test_cache_hit_skips_evaluation(self, tree_registry: Registry) -> None:
        assert await AsyncEvaluator(tree_registry).get("child1", PARAMS, {"parentValue": 0}) == -4

    @pytest.mark.asyncio
    async def test_undefined_key_fails(self) -> None:
        with pytest.raises(UndefinedNodeError):
            await AsyncEvaluator(Registry()).get("neverDefined", {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("falsy", [0, "", False, None])
    async def test_falsy_values_are_cached(self, falsy: Any) -> None:
        calls = Counter()

        async def compute(p, d):
            calls["falsy"] += 1
            return falsy

        registry = Registry()
        registry.define("falsy", compute)
        registry.define("left", lambda p, d: d["falsy"], ["falsy"])
        registry.define("right", lambda p, d: d["falsy"], ["falsy"])
        values = await AsyncEvaluator(registry).get_many(["left", "right"], {})
        assert values == {"left": falsy, "right": falsy}
        assert calls["falsy"] == 1


class TestGetMany:
    """Tests for AsyncEvaluator.get_many."""

    @pytest.mark.asyncio
    async def test_returns_requested_keys(self) -> None:
        registry = Registry()
        registry.define("double", lambda p, d: p["value"] * 2)
        registry.define("square", lambda p, d: p["value"] * p["value"])
        values = await AsyncEvaluator(registry).get_many(["double", "square"], {"value": 3})
        assert values == {"double": 6, "square": 9}

    @pytest.mark.asyncio
    async def test_single_evaluation_across_keys(self) -> None:
        calls = Counter()

        async def dependency(p, d):
            calls["dependency"] += 1
            await asyncio.sleep(0)
            return 10

        registry = Registry()
        registry.define("dependency", dependency)
        registry.define("child1", lambda p, d: d["dependency"] + 1, ["dependency"])
        registry.define("child2", lambda p, d: d["dependency"] + 2, ["dependency"])
        values = await AsyncEvaluator(registry).get_many(["child1", "child2"], {})
        assert values == {"child1": 11, "child2": 12}
        assert calls["dependency"] == 1


class TestOrdering:
    """Tests for the sequential resolution of sibling dependencies."""

    @staticmethod
    def _registry(events: list[str]) -> Registry:
        async def first(p, d):
            events.append("first:start")
            await asyncio.sleep(0.01)
            events.append("first:end")
            return 1

        async def second(p, d):
            events.append("second:start")
            await asyncio.sleep(0)
            events.append("second:end")
            return 2

        registry = Registry()
        registry.define("first", first)
        registry.define("second", second)
        registry.define("combined", lambda p, d: d["first"] + d["second"], ["first", "second"])
        return registry

    @pytest.mark.asyncio
    async def test_siblings_run_one_after_the_other(self) -> None:
        events: list[str] = []
        assert await AsyncEvaluator(self._registry(events)).get("combined", {}) == 3
        assert events == ["first:start", "first:end", "second:start", "second:end"]

    @pytest.mark.asyncio
    async def test_order_is_reproducible(self) -> None:
        runs = []
        for _ in range(5):
            events: list[str] = []
            await AsyncEvaluator(self._registry(events)).get("combined", {})
            runs.append(events)
        assert all(run == runs[0] for run in runs)

    @pytest.mark.asyncio
    async def test_nested_chain_completes_before_next_sibling(self) -> None:
        events: list[str] = []

        def record(name: str, value: int):
            async def compute(p, d):
                events.append(name)
                await asyncio.sleep(0)
                return value

            return compute

        registry = Registry()
        registry.define("a", record("a", 1))
        registry.define("b", record("b", 2), ["a"])
        registry.define("c", record("c", 3))
        registry.define("top", record("top", 4), ["b", "c"])
        await AsyncEvaluator(registry).get("top", {})
        assert events == ["a", "b", "c", "top"]


class TestConcurrency:
    """Tests for concurrent top-level calls sharing a ResultCache."""

    @pytest.mark.asyncio
    async def test_in_flight_evaluation_shared(self) -> None:
        calls = Counter()

        async def dependency(p, d):
            calls["dependency"] += 1
            await asyncio.sleep(0.01)
            return 10

        registry = Registry()
        registry.define("dependency", dependency)
        registry.define("child1", lambda p, d: d["dependency"] + 1, ["dependency"])
        registry.define("child2", lambda p, d: d["dependency"] + 2, ["dependency"])
        evaluator = AsyncEvaluator(registry)
        cache = ResultCache()

        results = await asyncio.gather(
            evaluator.get("child1", {}, cache),
            evaluator.get("child2", {}, cache),
        )

        assert results == [11, 12]
        assert calls["dependency"] == 1
        assert dict(cache) == {"dependency": 10, "child1": 11, "child2": 12}
        assert cache.pending("dependency") is None

    @pytest.mark.asyncio
    async def test_in_flight_failure_shared(self) -> None:
        calls = Counter()

        async def broken(p, d):
            calls["broken"] += 1
            await asyncio.sleep(0.01)
            msg = "boom"
            raise RuntimeError(msg)

        registry = Registry()
        registry.define("broken", broken)
        registry.define("child1", lambda p, d: d["broken"], ["broken"])
        registry.define("child2", lambda p, d: d["broken"], ["broken"])
        evaluator = AsyncEvaluator(registry)
        cache = ResultCache()

        results = await asyncio.gather(
            evaluator.get("child1", {}, cache),
            evaluator.get("child2", {}, cache),
            return_exceptions=True,
        )

        assert calls["broken"] == 1
        assert all(isinstance(r, DependencyResolutionError) for r in results)
        assert [r.dependent for r in results] == ["child1", "child2"]
        assert "broken" not in cache

    @pytest.mark.asyncio
    async def test_cancelled_evaluation_is_forgotten(self) -> None:
        started = asyncio.Event()

        async def slow(p, d):
            started.set()
            await asyncio.sleep(10)
            return 1

        registry = Registry()
        registry.define("slow", slow)
        evaluator = AsyncEvaluator(registry)
        cache = ResultCache()

        task = asyncio.create_task(evaluator.get("slow", {}, cache))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert cache.pending("slow") is None
        assert "slow" not in cache

    @pytest.mark.asyncio
    async def test_cancelled_owner_does_not_cancel_waiters(self) -> None:
        calls = Counter()
        release = asyncio.Event()

        async def slow(p, d):
            calls["slow"] += 1
            await release.wait()
            return 1

        registry = Registry()
        registry.define("slow", slow)
        registry.define("child", lambda p, d: d["slow"] + 1, ["slow"])
        evaluator = AsyncEvaluator(registry)
        cache = ResultCache()

        owner = asyncio.create_task(evaluator.get("slow", {}, cache))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(evaluator.get("child", {}, cache))
        await asyncio.sleep(0)
        assert cache.pending("slow") is not None

        owner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await owner
        release.set()

        assert await waiter == 2
        assert calls["slow"] == 2
        assert dict(cache) == {"slow": 1, "child": 2}

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_owner(self) -> None:
        release = asyncio.Event()

        async def slow(p, d):
            await release.wait()
            return 1

        registry = Registry()
        registry.define("slow", slow)
        registry.define("child", lambda p, d: d["slow"] + 1, ["slow"])
        evaluator = AsyncEvaluator(registry)
        cache = ResultCache()

        owner = asyncio.create_task(evaluator.get("slow", {}, cache))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(evaluator.get("child", {}, cache))
        await asyncio.sleep(0)

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        release.set()

        assert await owner == 1
        assert "child" not in cache


class TestFailures:
    """Tests for error propagation and wrapping."""

    @staticmethod
    def _broken(p, d):
        msg = "boom"
        raise RuntimeError(msg)

    @pytest.mark.asyncio
    async def test_own_failure_not_wrapped(self) -> None:
        registry = Registry()
        registry.define("broken", self._broken)
        with pytest.raises(RuntimeError, match="^boom$"):
            await AsyncEvaluator(registry).get("broken", {})

    @pytest.mark.asyncio
    async def test_dependency_failure_names_both_keys(self) -> None:
        registry = Registry()
        registry.define("broken", self._broken)
        registry.define("dependent", lambda p, d: d["broken"], ["broken"])

        with pytest.raises(DependencyResolutionError) as exc_info:
            await AsyncEvaluator(registry).get("dependent", {})

        error = exc_info.value
        assert error.key == "broken"
        assert error.dependent == "dependent"
        assert "'broken'" in str(error)
        assert "'dependent'" in str(error)
        assert "boom" in str(error)
        assert isinstance(error.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_nested_failure_chain(self) -> None:
        registry = Registry()
        registry.define("broken", self._broken)
        registry.define("middle", lambda p, d: d["broken"], ["broken"])
        registry.define("top", lambda p, d: d["middle"], ["middle"])

        with pytest.raises(DependencyResolutionError) as exc_info:
            await AsyncEvaluator(registry).get("top", {})

        error = exc_info.value
        assert (error.key, error.dependent) == ("middle", "top")
        assert isinstance(error.error, DependencyResolutionError)
        assert (error.error.key, error.error.dependent) == ("broken", "middle")
        assert isinstance(error.root_cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_no_partial_value(self) -> None:
        registry = Registry()
        registry.define("ok", lambda p, d: 1)
        registry.define("broken", self._broken)
        registry.define("top", lambda p, d: d["ok"] + d["broken"], ["ok", "broken"])
        cache: dict[str, Any] = {}

        with pytest.raises(DependencyResolutionError):
            await AsyncEvaluator(registry).get("top", {}, cache)
        assert cache == {"ok": 1}

    @pytest.mark.asyncio
    async def test_retry_reuses_completed_dependencies(self) -> None:
        calls = Counter()
        attempts = Counter()

        async def stable(p, d):
            calls["stable"] += 1
            return 1

        def flaky(p, d):
            attempts["flaky"] += 1
            if attempts["flaky"] == 1:
                msg = "first attempt fails"
                raise ValueError(msg)
            return d["stable"] + 1

        registry = Registry()
        registry.define("stable", stable)
        registry.define("flaky", flaky, ["stable"])
        evaluator = AsyncEvaluator(registry)
        cache = ResultCache()

        with pytest.raises(ValueError, match="first attempt"):
            await evaluator.get("flaky", {}, cache)
        assert await evaluator.get("flaky", {}, cache) == 2
        assert calls["stable"] == 1
