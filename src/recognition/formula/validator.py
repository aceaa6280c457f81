"""Syntax validation for recognition formulas."""

from __future__ import annotations

import logging

from recognition.core.types import ValidationResult
from recognition.formula.tokenizer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)

_OK = ValidationResult(valid=True)

# Parsing and evaluation recurse once per level.
MAX_NESTING_DEPTH = 32


def _reject(reason: str) -> ValidationResult:
    return ValidationResult(valid=False, reason=reason)


def validate_tokens(tokens: list[Token]) -> ValidationResult:
    """Check operand/operator alternation and parenthesis balance.

    Walks the tokens once with an "expecting operand" flag and an open
    parenthesis counter, which may not exceed ``MAX_NESTING_DEPTH``.
    Never raises.
    """
    depth = 0
    expect_operand = True

    for token in tokens:
        kind = token.type

        if kind is TokenType.PATTERN:
            if not expect_operand:
                return _reject(f"Missing operator before {token.value!r}.")
            expect_operand = False

        elif kind is TokenType.NOT:
            if not expect_operand:
                return _reject(f"{token.value!r} must precede an operand, not follow one.")

        elif kind is TokenType.LPAREN:
            if not expect_operand:
                return _reject("Missing operator before '('.")
            depth += 1
            if depth > MAX_NESTING_DEPTH:
                return _reject(f"Parentheses are nested deeper than {MAX_NESTING_DEPTH} levels.")

        elif kind in (TokenType.AND, TokenType.OR):
            if expect_operand:
                return _reject(f"{token.value!r} is missing its left operand.")
            expect_operand = True

        elif kind is TokenType.RPAREN:
            if expect_operand:
                return _reject("Empty or incomplete expression before ')'.")
            depth -= 1
            if depth < 0:
                return _reject("Closing parenthesis without a matching '('.")

        elif kind is TokenType.EOF:
            break

    if depth != 0:
        return _reject("Unbalanced parentheses.")
    if expect_operand:
        return _reject("Formula ends without an operand.")
    return _OK


def validate_formula(formula: str | None) -> ValidationResult:
    """Validate a formula string. Empty or whitespace-only input is invalid."""
    if formula is None or not formula.strip():
        return _reject("Formula is empty.")
    try:
        return validate_tokens(tokenize(formula))
    except Exception:
        logger.exception("Unexpected error while validating formula %r", formula)
        return _reject("Formula could not be validated.")


def is_valid_formula(formula: str | None) -> bool:
    return validate_formula(formula).valid
