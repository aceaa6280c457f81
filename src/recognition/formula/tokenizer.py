"""Lexer for recognition formulas.

Turns an arbitrary string into a token list that always ends with a
single ``EOF`` token. Tokenizing never fails: malformed input simply
produces a token sequence the validator will reject.
"""

from __future__ import annotations

from enum import StrEnum
from typing import NamedTuple


class TokenType(StrEnum):
    PATTERN = "pattern"
    AND = "and"
    OR = "or"
    NOT = "not"
    LPAREN = "lparen"
    RPAREN = "rparen"
    EOF = "eof"


class Token(NamedTuple):
    type: TokenType
    value: str


KEYWORDS: dict[str, TokenType] = {
    "AND": TokenType.AND,
    "OR": TokenType.OR,
    "NOT": TokenType.NOT,
}

_PARENS = {"(": TokenType.LPAREN, ")": TokenType.RPAREN}


def _keyword_at(formula: str, pos: int) -> tuple[TokenType, int] | None:
    """Match AND/OR/NOT starting at ``pos`` when not followed by a letter or digit."""
    for word, kind in KEYWORDS.items():
        end = pos + len(word)
        if formula[pos:end].upper() != word:
            continue
        if end < len(formula) and formula[end].isalnum():
            continue
        return kind, end
    return None


def tokenize(formula: str) -> list[Token]:
    """Split a formula into pattern, operator and parenthesis tokens.

    ``AND``/``OR``/``NOT`` (any case) are recognised at the start of a word
    when the next character is not a letter or digit, so ``NOT-Glass``
    reads as ``NOT`` followed by ``-Glass`` while ``Android`` and ``Notch``
    stay single patterns. Pattern text is kept verbatim.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(formula)

    while pos < length:
        ch = formula[pos]

        if ch.isspace():
            pos += 1
            continue

        if ch in _PARENS:
            tokens.append(Token(_PARENS[ch], ch))
            pos += 1
            continue

        keyword = _keyword_at(formula, pos)
        if keyword is not None:
            kind, end = keyword
            tokens.append(Token(kind, formula[pos:end]))
            pos = end
            continue

        start = pos
        while pos < length and not formula[pos].isspace() and formula[pos] not in _PARENS:
            pos += 1
        tokens.append(Token(TokenType.PATTERN, formula[start:pos]))

    tokens.append(Token(TokenType.EOF, ""))
    return tokens
