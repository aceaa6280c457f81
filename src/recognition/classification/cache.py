"""Read-through cache of compiled recognition rules.

The cache holds an immutable snapshot of every active rule, compiled once
into a recognition tree. Readers take the current snapshot reference and
never wait; refreshes are serialised through an ``asyncio.Lock`` and swap
in a complete new snapshot, so no reader sees half-old, half-new rules.
A failed fetch keeps the previous snapshot (last known good).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union

from recognition.core.config import CacheConfig
from recognition.core.errors import FormulaSyntaxError
from recognition.core.types import RecognitionNode, RecognitionRule, TreeRule
from recognition.formula.parser import compile_formula
from recognition.repositories import resolve

logger = logging.getLogger(__name__)

FetchedRules = list[Union[RecognitionRule, TreeRule]]
RuleFetcher = Callable[[], Union[FetchedRules, Awaitable[FetchedRules]]]


@dataclass(frozen=True)
class CompiledRule:
    """A rule ready for evaluation: role plus its recognition tree."""

    role_name: str
    root: RecognitionNode
    rule_id: str | None = None
    role_id: str | None = None


@dataclass(frozen=True)
class RuleSnapshot:
    """Immutable set of compiled rules captured at one point in time."""

    rules: tuple[CompiledRule, ...]
    captured_at: float
    by_role: Mapping[str, CompiledRule] = field(default_factory=lambda: MappingProxyType({}))
    generation: int = 0

    def get(self, role_name: str) -> CompiledRule | None:
        return self.by_role.get(role_name)

    def __len__(self) -> int:
        return len(self.rules)


def compile_rule(rule: RecognitionRule | TreeRule) -> CompiledRule:
    """Compile one fetched rule. Raises FormulaSyntaxError for bad formulas."""
    if isinstance(rule, TreeRule):
        return CompiledRule(
            role_name=rule.role_name,
            root=rule.root_node,
            rule_id=rule.id,
            role_id=rule.role_id,
        )
    return CompiledRule(
        role_name=rule.role_name or rule.role_id,
        root=compile_formula(rule.formula),
        rule_id=rule.id,
        role_id=rule.role_id,
    )


def build_snapshot(
    rules: FetchedRules, captured_at: float, generation: int = 0
) -> RuleSnapshot:
    """Compile fetched rules in order, skipping any that do not validate."""
    compiled: list[CompiledRule] = []
    by_role: dict[str, CompiledRule] = {}
    for rule in rules:
        try:
            entry = compile_rule(rule)
        except FormulaSyntaxError as exc:
            logger.warning("Skipping rule %s with invalid formula: %s", rule.id, exc)
            continue
        compiled.append(entry)
        by_role.setdefault(entry.role_name, entry)
    return RuleSnapshot(
        rules=tuple(compiled),
        captured_at=captured_at,
        by_role=MappingProxyType(by_role),
        generation=generation,
    )


class RuleCache:
    """Process-wide rule snapshot with TTL-based refresh.

    Construct once and hand the same instance to every classifier.
    ``fetch`` may be a plain function or a coroutine function returning
    formula rules, tree rules, or a mix of both.

    ``invalidate()`` bumps a generation counter. A snapshot built from a
    fetch that started before the bump is still installed as last known
    good, but counts as stale, so the next ``initialize()`` fetches again.
    """

    def __init__(
        self,
        fetch: RuleFetcher,
        ttl_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._ttl = ttl_seconds
        self._clock = clock
        self._snapshot: RuleSnapshot | None = None
        self._gate = asyncio.Lock()
        self._generation = 0
        self._attempts = 0
        self._attempt_generation = -1
        self._failures = 0

    @classmethod
    def from_source(cls, source: Any, config: CacheConfig | None = None) -> RuleCache:
        """Build a cache over a TreeRuleSource or RuleStore, preferring tree form."""
        config = config or CacheConfig()
        if hasattr(source, "list_active_rules_tree"):
            fetch = source.list_active_rules_tree
        elif hasattr(source, "list_active_rules"):
            fetch = source.list_active_rules
        else:
            raise TypeError(f"{type(source).__name__} does not provide active rules")
        return cls(fetch, ttl_seconds=config.ttl_seconds)

    @property
    def snapshot(self) -> RuleSnapshot | None:
        return self._snapshot

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def is_stale(self) -> bool:
        snapshot = self._snapshot
        if snapshot is None or snapshot.generation != self._generation:
            return True
        return self._clock() - snapshot.captured_at >= self._ttl

    @property
    def fetch_attempts(self) -> int:
        return self._attempts

    async def initialize(self) -> None:
        """Make sure a usable snapshot is present, fetching only if stale."""
        if not self.is_stale:
            return
        seen = self._attempts
        generation = self._generation
        async with self._gate:
            if not self.is_stale:
                return
            # Another caller finished a fetch for this generation while we
            # waited; if it failed, do not pile on with a second one.
            if self._attempts != seen and self._attempt_generation >= generation:
                return
            await self._load()

    async def refresh(self) -> bool:
        """Fetch unconditionally. Returns False if the fetch failed."""
        async with self._gate:
            return await self._load()

    def invalidate(self) -> None:
        """Drop the snapshot now; the next initialize() fetches."""
        self._generation += 1
        self._snapshot = None
        logger.debug("Rule cache invalidated (generation %d)", self._generation)

    def summary(self) -> dict[str, Any]:
        snapshot = self._snapshot
        return {
            "rules": len(snapshot) if snapshot else 0,
            "age_seconds": round(self._clock() - snapshot.captured_at, 3) if snapshot else None,
            "stale": self.is_stale,
            "ttl_seconds": self._ttl,
            "generation": self._generation,
            "fetch_attempts": self._attempts,
            "fetch_failures": self._failures,
        }

    async def _load(self) -> bool:
        generation = self._generation
        try:
            fetched = await resolve(self._fetch())
            snapshot = build_snapshot(list(fetched), self._clock(), generation)
        except Exception as exc:
            self._failures += 1
            logger.warning("Rule fetch failed, keeping previous snapshot: %s", exc)
            return False
        finally:
            self._attempts += 1
            self._attempt_generation = generation

        if self._snapshot is None or generation >= self._snapshot.generation:
            self._snapshot = snapshot
        if generation != self._generation:
            logger.info("Rules changed during fetch; snapshot kept but marked stale")
        logger.debug("Rule cache refreshed with %d rules", len(snapshot))
        return True
