"""Conservative overlap detection between recognition rules.

Two rules are flagged when any literal pattern of one is a case-insensitive
substring of any pattern of the other. This over-reports on purpose: it
surfaces pairs that could collide on some family name for human review,
it does not prove that they do.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from recognition.core.types import Conflict, RecognitionNode, RecognitionRule, TreeRule
from recognition.formula.evaluator import fold_case
from recognition.formula.tokenizer import TokenType, tokenize

CONFLICT_DESCRIPTION = "Rules for roles may match the same family name."


def _dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    patterns: list[str] = []
    for value in values:
        key = fold_case(value)
        if value and key not in seen:
            seen.add(key)
            patterns.append(value)
    return patterns


def extract_patterns(formula: str) -> list[str]:
    """Literal operands of a formula, operators and parentheses dropped."""
    return _dedupe(t.value for t in tokenize(formula) if t.type is TokenType.PATTERN)


def extract_tree_values(node: RecognitionNode) -> list[str]:
    """Condition values of a tree, in depth-first order."""

    def walk(current: RecognitionNode) -> Iterable[str]:
        if current.is_group:
            for child in current.children:
                yield from walk(child)
        elif current.value:
            yield current.value

    return _dedupe(walk(node))


def rule_patterns(rule: RecognitionRule | TreeRule) -> list[str]:
    if isinstance(rule, TreeRule):
        return extract_tree_values(rule.root_node)
    return extract_patterns(rule.formula)


def patterns_overlap(first: Sequence[str], second: Sequence[str]) -> bool:
    for p1 in first:
        f1 = fold_case(p1)
        for p2 in second:
            f2 = fold_case(p2)
            if f1 in f2 or f2 in f1:
                return True
    return False


def has_potential_conflict(formula1: str, formula2: str) -> bool:
    return patterns_overlap(extract_patterns(formula1), extract_patterns(formula2))


def detect_conflicts(
    rules: Sequence[RecognitionRule | TreeRule],
    exclude_id: str | None = None,
) -> list[Conflict]:
    """Return every unordered pair of rules whose patterns overlap.

    Pairs involving ``exclude_id`` are skipped, which lets an editor test a
    rule in place without it conflicting with its own stored version.
    """
    candidates = [r for r in rules if exclude_id is None or r.id != exclude_id]
    patterns = [rule_patterns(r) for r in candidates]
    conflicts: list[Conflict] = []

    for i in range(len(candidates)):
        for j in range(i + 1, len(candidates)):
            if not patterns_overlap(patterns[i], patterns[j]):
                continue
            first, second = candidates[i], candidates[j]
            conflicts.append(
                Conflict(
                    rule_id_1=first.id or "",
                    rule_id_2=second.id or "",
                    role_name_1=first.role_name or "Unknown",
                    role_name_2=second.role_name or "Unknown",
                    description=CONFLICT_DESCRIPTION,
                )
            )

    return conflicts
