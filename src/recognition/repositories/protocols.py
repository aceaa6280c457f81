"""Protocol definitions for the collaborators the rule engine consumes.

In-memory stores implement these synchronously, SQL repositories
asynchronously; callers go through ``resolve()`` so either works.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from recognition.core.types import FamilyRole, RecognitionRule, TreeRule


@runtime_checkable
class RuleStore(Protocol):
    """Source of active rules in formula form, in classification order."""

    def list_active_rules(self) -> list[RecognitionRule]: ...


@runtime_checkable
class TreeRuleSource(Protocol):
    """Source of active rules in tree form, in classification order."""

    def list_active_rules_tree(self) -> list[TreeRule]: ...


@runtime_checkable
class RuleRepository(Protocol):
    """CRUD storage for recognition rules."""

    def get_all(self) -> list[RecognitionRule]: ...

    def get_by_id(self, rule_id: str) -> RecognitionRule | None: ...

    def get_by_role_id(self, role_id: str) -> RecognitionRule | None: ...

    def add(self, rule: RecognitionRule) -> RecognitionRule: ...

    def update(self, rule: RecognitionRule) -> RecognitionRule: ...

    def delete(self, rule_id: str) -> bool: ...

    def exists(self, rule_id: str) -> bool: ...


@runtime_checkable
class RoleRepository(Protocol):
    """Lookup of family roles. Role management itself lives elsewhere."""

    def add(self, role: FamilyRole) -> FamilyRole: ...

    def get(self, role_id: str) -> FamilyRole | None: ...

    def exists(self, role_id: str) -> bool: ...

    def list_all(self) -> list[FamilyRole]: ...
