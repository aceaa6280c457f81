"""Recursive descent parser from formula strings to recognition trees.

Grammar, lowest precedence first::

    expr    := or
    or      := and (OR and)*
    and     := not (AND not)*
    not     := NOT not | primary
    primary := PATTERN | '(' expr ')'

``NOT`` is folded into the tree while parsing: negating a condition flips
Contains/NotContains, negating a group flips AND/OR and negates each child.
The resulting tree therefore only ever holds groups and conditions, the
same shape the visual rule builder produces.
"""

from __future__ import annotations

from recognition.core.errors import FormulaSyntaxError
from recognition.core.types import ConditionOperator, LogicalOperator, RecognitionNode
from recognition.formula.tokenizer import Token, TokenType, tokenize
from recognition.formula.validator import MAX_NESTING_DEPTH, validate_formula

_FLIPPED_CONDITION = {
    ConditionOperator.CONTAINS: ConditionOperator.NOT_CONTAINS,
    ConditionOperator.NOT_CONTAINS: ConditionOperator.CONTAINS,
}

_FLIPPED_GROUP = {
    LogicalOperator.AND: LogicalOperator.OR,
    LogicalOperator.OR: LogicalOperator.AND,
}


def negate(node: RecognitionNode) -> RecognitionNode:
    """Return a new tree matching exactly the names ``node`` does not."""
    if node.is_group:
        return RecognitionNode.group(
            _FLIPPED_GROUP[node.operator],
            [negate(child) for child in node.children],
        )
    return RecognitionNode.condition(node.value or "", _FLIPPED_CONDITION[node.operator])


def _combine(operator: LogicalOperator, operands: list[RecognitionNode]) -> RecognitionNode:
    if len(operands) == 1:
        return operands[0]
    children: list[RecognitionNode] = []
    for operand in operands:
        if operand.is_group and operand.operator is operator and operand.children:
            children.extend(operand.children)
        else:
            children.append(operand)
    return RecognitionNode.group(operator, children)


class _Parser:
    """Recursive descent over a token list with a shared read cursor."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0
        self._depth = 0

    def parse(self) -> RecognitionNode:
        node = self._or()
        token = self._current()
        if token.type is not TokenType.EOF:
            raise FormulaSyntaxError(f"Unexpected {token.value!r} after a complete expression.")
        return node

    def _or(self) -> RecognitionNode:
        operands = [self._and()]
        while self._check(TokenType.OR):
            self._advance()
            operands.append(self._and())
        return _combine(LogicalOperator.OR, operands)

    def _and(self) -> RecognitionNode:
        operands = [self._not()]
        while self._check(TokenType.AND):
            self._advance()
            operands.append(self._not())
        return _combine(LogicalOperator.AND, operands)

    def _not(self) -> RecognitionNode:
        negations = 0
        while self._check(TokenType.NOT):
            self._advance()
            negations += 1
        node = self._primary()
        return negate(node) if negations % 2 else node

    def _primary(self) -> RecognitionNode:
        token = self._current()
        if token.type is TokenType.LPAREN:
            if self._depth >= MAX_NESTING_DEPTH:
                raise FormulaSyntaxError(
                    f"Parentheses are nested deeper than {MAX_NESTING_DEPTH} levels."
                )
            self._advance()
            self._depth += 1
            node = self._or()
            self._depth -= 1
            if not self._check(TokenType.RPAREN):
                raise FormulaSyntaxError("Expected ')' to close '('.")
            self._advance()
            return node
        if token.type is TokenType.PATTERN:
            self._advance()
            return RecognitionNode.condition(token.value)
        if token.type is TokenType.EOF:
            raise FormulaSyntaxError("Expected an operand but the formula ended.")
        raise FormulaSyntaxError(f"Expected an operand, got {token.value!r}.")

    # -- cursor helpers --

    def _current(self) -> Token:
        if self._pos >= len(self._tokens):
            return Token(TokenType.EOF, "")
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._current()
        if self._pos < len(self._tokens):
            self._pos += 1
        return token

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type is token_type


def parse_formula(formula: str) -> RecognitionNode:
    """Parse a formula into a recognition tree whose root is always a group.

    Raises:
        FormulaSyntaxError: If the formula is empty or malformed.
    """
    if not formula or not formula.strip():
        raise FormulaSyntaxError("Formula is empty.")
    node = _Parser(tokenize(formula)).parse()
    if not node.is_group:
        node = RecognitionNode.group(LogicalOperator.AND, [node])
    return node


def compile_formula(formula: str) -> RecognitionNode:
    """Validate and parse a formula, reporting the validator's reason on failure."""
    result = validate_formula(formula)
    if not result.valid:
        raise FormulaSyntaxError(result.reason or "Invalid formula syntax.")
    return parse_formula(formula)
