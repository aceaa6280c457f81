"""First-match role classification of family names."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from recognition.classification.cache import CompiledRule, RuleCache
from recognition.formula.evaluator import evaluate

logger = logging.getLogger(__name__)


class RoleClassifier:
    """Assigns a family name to the role of the first matching rule.

    Rules are tried in the order the rule source returned them. Returns
    None when no rule matches, when the name is empty, or when no rules
    could be fetched at all.
    """

    def __init__(self, cache: RuleCache) -> None:
        self._cache = cache

    @property
    def cache(self) -> RuleCache:
        return self._cache

    async def match(self, family_name: str) -> str | None:
        """Initialise the cache if needed, then match against it."""
        if not family_name:
            return None
        await self._cache.initialize()
        return self.match_snapshot(family_name)

    def match_snapshot(self, family_name: str) -> str | None:
        """Match against whatever snapshot is loaded, without fetching."""
        rule = self.find_rule(family_name)
        return rule.role_name if rule else None

    def find_rule(self, family_name: str) -> CompiledRule | None:
        snapshot = self._cache.snapshot
        if snapshot is None or not family_name:
            return None
        for rule in snapshot.rules:
            if evaluate(rule.root, family_name):
                return rule
        return None

    async def classify_many(self, family_names: Iterable[str]) -> dict[str, str | None]:
        """Classify a batch of names against a single cache snapshot."""
        await self._cache.initialize()
        results = {name: self.match_snapshot(name) for name in family_names}
        matched = sum(1 for role in results.values() if role is not None)
        logger.debug("Classified %d family names, %d matched a role", len(results), matched)
        return results
