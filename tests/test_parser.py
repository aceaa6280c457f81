"""Tests for parsing formulas into recognition trees."""

from __future__ import annotations

import pytest

from recognition.core.errors import FormulaSyntaxError
from recognition.core.types import ConditionOperator, LogicalOperator, NodeType, RecognitionNode
from recognition.formula.parser import compile_formula, negate, parse_formula

C = RecognitionNode.condition
G = RecognitionNode.group
AND = LogicalOperator.AND
OR = LogicalOperator.OR
NOT_CONTAINS = ConditionOperator.NOT_CONTAINS


class TestParseFormula:
    def test_root_is_always_a_group(self) -> None:
        tree = parse_formula("Door")
        assert tree.type is NodeType.GROUP
        assert tree == G(AND, [C("Door")])

    def test_and_binds_tighter_than_or(self) -> None:
        assert parse_formula("A OR B AND C") == G(OR, [C("A"), G(AND, [C("B"), C("C")])])

    def test_parentheses_override_precedence(self) -> None:
        assert parse_formula("(A OR B) AND C") == G(AND, [G(OR, [C("A"), C("B")]), C("C")])

    def test_same_operator_chains_are_flattened(self) -> None:
        assert parse_formula("A AND B AND (C AND D)") == G(
            AND, [C("A"), C("B"), C("C"), C("D")]
        )

    def test_not_on_condition_flips_operator(self) -> None:
        assert parse_formula("NOT Window") == G(AND, [C("Window", NOT_CONTAINS)])

    def test_not_binds_tighter_than_and(self) -> None:
        assert parse_formula("NOT A AND B") == G(AND, [C("A", NOT_CONTAINS), C("B")])

    def test_not_on_group_applies_de_morgan(self) -> None:
        assert parse_formula("NOT (A OR B)") == G(
            AND, [C("A", NOT_CONTAINS), C("B", NOT_CONTAINS)]
        )

    def test_double_not_cancels(self) -> None:
        assert parse_formula("NOT NOT Door") == parse_formula("Door")

    def test_keyword_case_is_ignored(self) -> None:
        assert parse_formula("a and not b or c") == parse_formula("a AND NOT b OR c")

    @pytest.mark.parametrize("formula", ["", "  ", "Door AND", "(Door", "Door Window", ")"])
    def test_malformed_raises(self, formula: str) -> None:
        with pytest.raises(FormulaSyntaxError):
            parse_formula(formula)


class TestNegate:
    def test_negate_is_an_involution(self) -> None:
        tree = parse_formula("(A OR NOT B) AND C")
        assert negate(negate(tree)) == tree


class TestCompileFormula:
    def test_valid_formula_compiles(self) -> None:
        assert compile_formula("Door") == G(AND, [C("Door")])

    def test_reports_validator_reason(self) -> None:
        with pytest.raises(FormulaSyntaxError, match="Unbalanced parentheses"):
            compile_formula("(Door AND Window")
