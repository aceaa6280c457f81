"""Render recognition trees back into formula strings."""

from __future__ import annotations

from recognition.core.errors import FormulaSyntaxError
from recognition.core.types import ConditionOperator, RecognitionNode
from recognition.formula.tokenizer import Token, TokenType, tokenize


def _render_value(value: str | None) -> str:
    if not value:
        raise FormulaSyntaxError("Conditions with an empty value cannot be written as a formula.")
    if any(ch.isspace() or ch in "()" for ch in value):
        raise FormulaSyntaxError(f"Value {value!r} contains whitespace or parentheses.")
    if tokenize(value)[0] != Token(TokenType.PATTERN, value):
        raise FormulaSyntaxError(f"Value {value!r} starts with a reserved word.")
    return value


def _render(node: RecognitionNode, nested: bool) -> str:
    if not node.is_group:
        text = _render_value(node.value)
        if node.operator is ConditionOperator.NOT_CONTAINS:
            return f"NOT {text}"
        return text

    if not node.children:
        raise FormulaSyntaxError("Empty groups cannot be written as a formula.")
    if len(node.children) == 1:
        return _render(node.children[0], nested)

    joiner = f" {node.operator.value} "
    body = joiner.join(_render(child, True) for child in node.children)
    return f"({body})" if nested else body


def to_formula(node: RecognitionNode) -> str:
    """Write ``node`` in formula syntax.

    Raises:
        FormulaSyntaxError: If the tree holds something the grammar cannot
            express (empty groups, empty values, values with whitespace,
            parentheses or a reserved word).
    """
    return _render(node, nested=False)
