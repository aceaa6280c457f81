"""Rule authoring: stores, YAML loading, conflict detection and the rule service."""

from recognition.rules.conflicts import detect_conflicts, extract_patterns, has_potential_conflict
from recognition.rules.service import RecognitionRuleService
from recognition.rules.store import InMemoryRoleStore, InMemoryRuleStore

__all__ = [
    "InMemoryRoleStore",
    "InMemoryRuleStore",
    "RecognitionRuleService",
    "detect_conflicts",
    "extract_patterns",
    "has_potential_conflict",
]
