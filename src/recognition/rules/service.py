"""Authoring-side service for recognition rules.

Validates formulas before anything is persisted, keeps one rule per role,
lets administrators test rules against sample family names and reports
potential overlaps between rules.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from recognition.core.config import FormulaConfig
from recognition.core.errors import FormulaSyntaxError, NotFoundError, RuleValidationError
from recognition.core.types import (
    Conflict,
    PagedResult,
    RecognitionNode,
    RecognitionRule,
    TreeRule,
    ValidationResult,
)
from recognition.formula.evaluator import evaluate, evaluate_formula
from recognition.formula.parser import compile_formula
from recognition.formula.render import to_formula
from recognition.formula.validator import validate_formula
from recognition.repositories import resolve
from recognition.repositories.protocols import RoleRepository, RuleRepository
from recognition.rules.conflicts import detect_conflicts
from recognition.rules.models import RuleCreate, RuleUpdate
from recognition.rules.store import to_tree_rules

logger = logging.getLogger(__name__)

INVALID_FORMULA = "Invalid formula syntax."
DUPLICATE_ROLE = "A recognition rule already exists for this role."


class RecognitionRuleService:
    """CRUD, validation, testing and conflict checks for recognition rules.

    Works with both sync (in-memory) and async (SQL) repositories.
    """

    def __init__(
        self,
        repository: RuleRepository,
        role_repository: RoleRepository,
        config: FormulaConfig | None = None,
    ) -> None:
        self._repository = repository
        self._roles = role_repository
        self._config = config or FormulaConfig()

    # -- queries --

    async def get_all(self, page_number: int = 1, page_size: int = 10) -> PagedResult[RecognitionRule]:
        page_number = max(page_number, 1)
        page_size = max(page_size, 1)
        rules: list[RecognitionRule] = await resolve(self._repository.get_all())
        start = (page_number - 1) * page_size
        return PagedResult[RecognitionRule](
            items=rules[start:start + page_size],
            total_count=len(rules),
            page_number=page_number,
            page_size=page_size,
        )

    async def get_by_id(self, rule_id: str) -> RecognitionRule | None:
        return await resolve(self._repository.get_by_id(rule_id))

    async def list_active_tree(self) -> list[TreeRule]:
        rules: list[RecognitionRule] = await resolve(self._repository.get_all())
        return to_tree_rules(rules)

    # -- commands --

    async def create(self, payload: RuleCreate) -> RecognitionRule:
        if not await resolve(self._roles.exists(payload.role_id)):
            raise NotFoundError("FamilyRole", payload.role_id)

        self._check_root_node(payload.root_node)
        formula = self._resolve_formula(payload.formula, payload.tree)

        existing = await resolve(self._repository.get_by_role_id(payload.role_id))
        if existing is not None:
            raise RuleValidationError("role_id", DUPLICATE_ROLE)

        rule = RecognitionRule(
            role_id=payload.role_id,
            root_node=payload.root_node,
            formula=formula,
        )
        saved = await resolve(self._repository.add(rule))
        logger.info("Created recognition rule %s for role %s", saved.id, saved.role_id)
        return saved

    async def update(self, rule_id: str, payload: RuleUpdate) -> RecognitionRule:
        rule = await resolve(self._repository.get_by_id(rule_id))
        if rule is None:
            raise NotFoundError("RecognitionRule", rule_id)

        role_id = rule.role_id
        if payload.role_id and payload.role_id != rule.role_id:
            if not await resolve(self._roles.exists(payload.role_id)):
                raise NotFoundError("FamilyRole", payload.role_id)
            existing = await resolve(self._repository.get_by_role_id(payload.role_id))
            if existing is not None and existing.id != rule_id:
                raise RuleValidationError("role_id", DUPLICATE_ROLE)
            role_id = payload.role_id

        root_node = rule.root_node
        if payload.root_node is not None:
            self._check_root_node(payload.root_node)
            root_node = payload.root_node

        formula = rule.formula
        if payload.formula is not None or payload.tree is not None:
            formula = self._resolve_formula(payload.formula, payload.tree)

        updated = rule.model_copy(
            update={
                "role_id": role_id,
                "root_node": root_node,
                "formula": formula,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        saved = await resolve(self._repository.update(updated))
        logger.info("Updated recognition rule %s", rule_id)
        return saved

    async def delete(self, rule_id: str) -> None:
        if not await resolve(self._repository.exists(rule_id)):
            raise NotFoundError("RecognitionRule", rule_id)
        await resolve(self._repository.delete(rule_id))
        logger.info("Deleted recognition rule %s", rule_id)

    # -- formula tools --

    def validate_formula(self, formula: str | None) -> ValidationResult:
        """Grammar check plus the configured length limit."""
        if formula is not None and len(formula) > self._config.max_formula_length:
            return ValidationResult(
                valid=False,
                reason=f"Formula must not exceed {self._config.max_formula_length} characters.",
            )
        return validate_formula(formula)

    async def test_rule(self, rule_id: str, family_name: str) -> bool:
        rule = await resolve(self._repository.get_by_id(rule_id))
        if rule is None:
            raise NotFoundError("RecognitionRule", rule_id)
        return evaluate_formula(rule.formula, family_name)

    def test_formula(self, formula: str, family_name: str) -> bool:
        """Evaluate an unsaved formula, rejecting it first if it is invalid."""
        result = self.validate_formula(formula)
        if not result.valid:
            raise RuleValidationError("formula", result.reason or INVALID_FORMULA)
        return evaluate(compile_formula(formula), family_name)

    async def check_conflicts(self, exclude_id: str | None = None) -> list[Conflict]:
        rules: list[RecognitionRule] = await resolve(self._repository.get_all())
        conflicts = detect_conflicts(rules, exclude_id=exclude_id)
        if conflicts:
            logger.info("Found %d potential rule conflicts", len(conflicts))
        return conflicts

    # -- internal --

    def _check_root_node(self, root_node: str) -> None:
        if len(root_node) > self._config.max_root_node_length:
            raise RuleValidationError(
                "root_node",
                f"Root node must not exceed {self._config.max_root_node_length} characters.",
            )

    def _resolve_formula(self, formula: str | None, tree: RecognitionNode | None) -> str:
        """Pick the formula to store, deriving it from the tree when needed."""
        if formula is None and tree is not None:
            try:
                formula = to_formula(tree)
            except FormulaSyntaxError as exc:
                raise RuleValidationError("tree", str(exc)) from exc

        result = self.validate_formula(formula)
        if not result.valid:
            logger.info("Rejected formula %r: %s", formula, result.reason)
            raise RuleValidationError("formula", INVALID_FORMULA)
        return formula  # type: ignore[return-value]
