"""Recognition formula language: tokenizer, validator, parser, evaluator."""

from recognition.formula.evaluator import evaluate, evaluate_formula
from recognition.formula.parser import compile_formula, parse_formula
from recognition.formula.render import to_formula
from recognition.formula.tokenizer import Token, TokenType, tokenize
from recognition.formula.validator import is_valid_formula, validate_formula, validate_tokens

__all__ = [
    "Token",
    "TokenType",
    "compile_formula",
    "evaluate",
    "evaluate_formula",
    "is_valid_formula",
    "parse_formula",
    "to_formula",
    "tokenize",
    "validate_formula",
    "validate_tokens",
]
