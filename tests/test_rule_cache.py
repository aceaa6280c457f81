"""Tests for the consumer-side rule cache."""

from __future__ import annotations

import asyncio

import pytest

from recognition.classification.cache import RuleCache, build_snapshot
from recognition.core.config import CacheConfig
from recognition.core.types import RecognitionNode, RecognitionRule, TreeRule
from recognition.rules.store import InMemoryRuleStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class CountingFetcher:
    """Async fetcher that yields control so concurrent callers interleave."""

    def __init__(self, rules: list | None = None) -> None:
        self.rules = rules if rules is not None else [
            RecognitionRule(id="r1", role_id="door", role_name="Door", root_node="D", formula="Door"),
        ]
        self.calls = 0
        self.fail = False

    async def __call__(self) -> list:
        self.calls += 1
        await asyncio.sleep(0.01)
        if self.fail:
            raise ConnectionError("rule store unreachable")
        return list(self.rules)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fetcher() -> CountingFetcher:
    return CountingFetcher()


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


class TestBuildSnapshot:
    def test_invalid_rules_are_skipped(self) -> None:
        rules = [
            RecognitionRule(id="bad", role_id="x", role_name="X", root_node="x", formula="Door AND"),
            RecognitionRule(id="ok", role_id="y", role_name="Y", root_node="y", formula="Door"),
        ]
        snapshot = build_snapshot(rules, captured_at=0.0)
        assert [r.rule_id for r in snapshot.rules] == ["ok"]

    def test_mixed_forms_keep_order(self) -> None:
        rules = [
            TreeRule(role_name="Tree", root_node=RecognitionNode.condition("A")),
            RecognitionRule(id="f", role_id="f", role_name="Formula", root_node="f", formula="B"),
        ]
        snapshot = build_snapshot(rules, captured_at=0.0)
        assert [r.role_name for r in snapshot.rules] == ["Tree", "Formula"]
        assert snapshot.get("Formula").rule_id == "f"
        assert len(snapshot) == 2

    def test_formula_rule_without_role_name_uses_role_id(self) -> None:
        rules = [RecognitionRule(role_id="role-1", root_node="x", formula="A")]
        assert build_snapshot(rules, 0.0).rules[0].role_name == "role-1"


# ---------------------------------------------------------------------------
# Cache lifecycle
# ---------------------------------------------------------------------------


class TestRuleCache:
    async def test_initialize_fetches_once(self, fetcher: CountingFetcher, clock: FakeClock) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        await cache.initialize()
        assert fetcher.calls == 1
        assert len(cache.snapshot) == 1

    async def test_ttl_expiry_triggers_refetch(self, fetcher: CountingFetcher, clock: FakeClock) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        clock.now += 59
        await cache.initialize()
        assert fetcher.calls == 1
        clock.now += 1
        assert cache.is_stale
        await cache.initialize()
        assert fetcher.calls == 2

    async def test_concurrent_initialize_after_invalidate_fetches_once(
        self, fetcher: CountingFetcher, clock: FakeClock
    ) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        cache.invalidate()
        assert cache.snapshot is None
        await asyncio.gather(*(cache.initialize() for _ in range(10)))
        assert fetcher.calls == 2

    async def test_concurrent_failures_fetch_once(self, fetcher: CountingFetcher, clock: FakeClock) -> None:
        fetcher.fail = True
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await asyncio.gather(*(cache.initialize() for _ in range(10)))
        assert fetcher.calls == 1
        assert cache.snapshot is None

    async def test_failed_refresh_keeps_last_known_good(
        self, fetcher: CountingFetcher, clock: FakeClock
    ) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        before = cache.snapshot
        fetcher.fail = True
        assert await cache.refresh() is False
        assert cache.snapshot is before
        assert cache.summary()["fetch_failures"] == 1

    async def test_refresh_swaps_in_new_rules(self, fetcher: CountingFetcher, clock: FakeClock) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        fetcher.rules = []
        assert await cache.refresh() is True
        assert len(cache.snapshot) == 0

    async def test_sync_fetcher_is_supported(self, clock: FakeClock) -> None:
        cache = RuleCache(lambda: [], ttl_seconds=60, clock=clock)
        await cache.initialize()
        assert cache.snapshot is not None
        assert cache.fetch_attempts == 1

    def test_summary_before_first_fetch(self, fetcher: CountingFetcher) -> None:
        summary = RuleCache(fetcher).summary()
        assert summary["rules"] == 0
        assert summary["stale"] is True
        assert summary["ttl_seconds"] == 1800


class TestFromSource:
    def test_prefers_tree_form(self) -> None:
        store = InMemoryRuleStore()
        cache = RuleCache.from_source(store, CacheConfig(ttl_seconds=5))
        assert cache.ttl_seconds == 5
        assert cache._fetch == store.list_active_rules_tree

    def test_rejects_objects_without_rules(self) -> None:
        with pytest.raises(TypeError):
            RuleCache.from_source(object())


class GatedFetcher:
    """Fetcher that reads its rules on entry, then waits to be released."""

    def __init__(self, role_name: str) -> None:
        self.role_name = role_name
        self.calls = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self) -> list:
        self.calls += 1
        rules = [
            RecognitionRule(id="r1", role_id="r", role_name=self.role_name, root_node="D", formula="Door"),
        ]
        self.started.set()
        await self.release.wait()
        return rules


# ---------------------------------------------------------------------------
# Invalidation racing an in-flight fetch
# ---------------------------------------------------------------------------


class TestInvalidateDuringFetch:
    async def test_waiting_caller_refetches_after_invalidate(self, clock: FakeClock) -> None:
        fetcher = GatedFetcher("Old")
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)

        first = asyncio.create_task(cache.initialize())
        await fetcher.started.wait()
        fetcher.role_name = "New"
        cache.invalidate()
        second = asyncio.create_task(cache.initialize())
        await asyncio.sleep(0)
        fetcher.release.set()
        await asyncio.gather(first, second)

        assert fetcher.calls == 2
        assert cache.snapshot.rules[0].role_name == "New"
        assert not cache.is_stale

    async def test_late_result_is_kept_but_stale(self, clock: FakeClock) -> None:
        fetcher = GatedFetcher("Old")
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)

        task = asyncio.create_task(cache.initialize())
        await fetcher.started.wait()
        fetcher.role_name = "New"
        cache.invalidate()
        fetcher.release.set()
        await task

        assert cache.snapshot.rules[0].role_name == "Old"
        assert cache.is_stale
        await cache.initialize()
        assert fetcher.calls == 2
        assert cache.snapshot.rules[0].role_name == "New"

    async def test_invalidate_bumps_generation(self, fetcher: CountingFetcher, clock: FakeClock) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        assert cache.snapshot.generation == 0
        cache.invalidate()
        await cache.initialize()
        assert cache.snapshot.generation == 1
        assert cache.summary()["generation"] == 1


# ---------------------------------------------------------------------------
# Malformed feeds
# ---------------------------------------------------------------------------

_DEEP = "(" * 240 + "Door" + ")" * 240


class TestMalformedFeeds:
    async def test_fetch_returning_none_counts_as_failure(self, clock: FakeClock) -> None:
        cache = RuleCache(lambda: None, ttl_seconds=60, clock=clock)
        await cache.initialize()
        assert cache.snapshot is None
        assert cache.summary()["fetch_failures"] == 1

    async def test_bad_feed_keeps_last_known_good(self, fetcher: CountingFetcher, clock: FakeClock) -> None:
        cache = RuleCache(fetcher, ttl_seconds=60, clock=clock)
        await cache.initialize()
        before = cache.snapshot
        fetcher.rules = None
        assert await cache.refresh() is False
        assert cache.snapshot is before

    async def test_deeply_nested_rule_is_skipped(self, clock: FakeClock) -> None:
        rules = [
            RecognitionRule(id="deep", role_id="x", role_name="Deep", root_node="x", formula=_DEEP),
            RecognitionRule(id="ok", role_id="y", role_name="Door", root_node="y", formula="Door"),
        ]
        cache = RuleCache(lambda: rules, ttl_seconds=60, clock=clock)
        await cache.initialize()
        assert [r.rule_id for r in cache.snapshot.rules] == ["ok"]
