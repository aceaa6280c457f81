"""In-memory rule and role stores."""

from __future__ import annotations

import logging

from recognition.core.errors import FormulaSyntaxError
from recognition.core.types import FamilyRole, RecognitionRule, TreeRule
from recognition.formula.parser import compile_formula

logger = logging.getLogger(__name__)


def to_tree_rules(rules: list[RecognitionRule]) -> list[TreeRule]:
    """Convert formula rules to the tree form served to offline clients.

    Rules whose formula does not validate are left out and logged.
    """
    trees: list[TreeRule] = []
    for rule in rules:
        try:
            root = compile_formula(rule.formula)
        except FormulaSyntaxError as exc:
            logger.warning("Skipping rule %s with invalid formula %r: %s", rule.id, rule.formula, exc)
            continue
        trees.append(
            TreeRule(
                id=rule.id,
                role_id=rule.role_id,
                role_name=rule.role_name or "Unknown",
                root_node=root,
            )
        )
    return trees


class InMemoryRoleStore:
    """In-memory store for family roles."""

    def __init__(self, roles: list[FamilyRole] | None = None) -> None:
        self._roles: dict[str, FamilyRole] = {}
        for role in roles or []:
            self.add(role)

    def add(self, role: FamilyRole) -> FamilyRole:
        self._roles[role.id] = role
        return role

    def get(self, role_id: str) -> FamilyRole | None:
        return self._roles.get(role_id)

    def exists(self, role_id: str) -> bool:
        return role_id in self._roles

    def list_all(self) -> list[FamilyRole]:
        return list(self._roles.values())


class InMemoryRuleStore:
    """In-memory store for recognition rules.

    Keeps insertion order, which is also the classification order served
    by ``list_active_rules``. Role names are resolved from the role store
    when one is given.
    """

    def __init__(self, roles: InMemoryRoleStore | None = None) -> None:
        self._rules: dict[str, RecognitionRule] = {}
        self._roles = roles

    def _with_role_name(self, rule: RecognitionRule) -> RecognitionRule:
        if self._roles is None:
            return rule
        role = self._roles.get(rule.role_id)
        if role is None:
            return rule
        return rule.model_copy(update={"role_name": role.name})

    def get_all(self) -> list[RecognitionRule]:
        return [self._with_role_name(r) for r in self._rules.values()]

    def get_by_id(self, rule_id: str) -> RecognitionRule | None:
        rule = self._rules.get(rule_id)
        return self._with_role_name(rule) if rule else None

    def get_by_role_id(self, role_id: str) -> RecognitionRule | None:
        for rule in self._rules.values():
            if rule.role_id == role_id:
                return self._with_role_name(rule)
        return None

    def add(self, rule: RecognitionRule) -> RecognitionRule:
        self._rules[rule.id] = rule
        return self._with_role_name(rule)

    def update(self, rule: RecognitionRule) -> RecognitionRule:
        if rule.id not in self._rules:
            raise KeyError(rule.id)
        self._rules[rule.id] = rule
        return self._with_role_name(rule)

    def delete(self, rule_id: str) -> bool:
        return self._rules.pop(rule_id, None) is not None

    def exists(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def list_active_rules(self) -> list[RecognitionRule]:
        return self.get_all()

    def list_active_rules_tree(self) -> list[TreeRule]:
        return to_tree_rules(self.get_all())

    @property
    def count(self) -> int:
        return len(self._rules)
