"""Evaluation of recognition trees against family names.

This is the only place match semantics live. Formula rules are parsed
into trees first, and tree rules fetched by offline clients are evaluated
here directly, so the two representations cannot drift apart.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from recognition.core.errors import FormulaSyntaxError
from recognition.core.types import ConditionOperator, LogicalOperator, RecognitionNode
from recognition.formula.parser import parse_formula

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4096)
def _upper_char(ch: str) -> str:
    upper = ch.upper()
    return upper if len(upper) == 1 else ch


def fold_case(text: str) -> str:
    """Uppercase one character at a time, keeping characters whose uppercase
    form is longer (``ß`` stays ``ß``). Ordinal, never changes the length.
    """
    return "".join(_upper_char(ch) for ch in text)


def contains(candidate: str, pattern: str) -> bool:
    """Case-insensitive ordinal substring test (no locale collation)."""
    return fold_case(pattern) in fold_case(candidate)


def evaluate(node: RecognitionNode, candidate: str) -> bool:
    """Return True if ``candidate`` satisfies the tree rooted at ``node``.

    An empty group never matches, and neither does a condition with an
    empty value, whatever its operator.
    """
    if node.is_group:
        if not node.children:
            return False
        results = [evaluate(child, candidate) for child in node.children]
        if node.operator is LogicalOperator.AND:
            return all(results)
        return any(results)

    if not node.value:
        return False
    found = contains(candidate, node.value)
    return found if node.operator is ConditionOperator.CONTAINS else not found


def evaluate_formula(formula: str, candidate: str) -> bool:
    """Parse ``formula`` and evaluate it against ``candidate``.

    Callers are expected to validate untrusted formulas first. A formula
    that does not parse is logged and treated as a non-match.
    """
    try:
        tree = parse_formula(formula)
    except FormulaSyntaxError as exc:
        logger.warning("Evaluated an invalid formula %r: %s", formula, exc)
        return False
    return evaluate(tree, candidate)
