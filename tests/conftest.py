"""Shared test fixtures and helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from recognition.core.types import FamilyRole
from recognition.rules.service import RecognitionRuleService
from recognition.rules.store import InMemoryRoleStore, InMemoryRuleStore

DOOR = FamilyRole(id="role-door", name="Door")
WINDOW = FamilyRole(id="role-window", name="Window")
DATA = FamilyRole(id="role-data", name="Data")


@pytest.fixture()
def roles() -> InMemoryRoleStore:
    return InMemoryRoleStore([DOOR, WINDOW, DATA])


@pytest.fixture()
def rule_store(roles: InMemoryRoleStore) -> InMemoryRuleStore:
    return InMemoryRuleStore(roles=roles)


@pytest.fixture()
def service(rule_store: InMemoryRuleStore, roles: InMemoryRoleStore) -> RecognitionRuleService:
    return RecognitionRuleService(repository=rule_store, role_repository=roles)


@pytest.fixture()
def rules_path(tmp_path: Path) -> Path:
    """Write a small rule file mixing formula and tree rules."""
    config = {
        "rules": [
            {"role": "Door", "formula": "Door AND NOT Window"},
            {"role": "Window", "formula": "Window"},
            {
                "role": "Data",
                "tree": {
                    "type": "group",
                    "operator": "And",
                    "children": [
                        {
                            "type": "group",
                            "operator": "Or",
                            "children": [
                                {"type": "condition", "operator": "Contains", "value": "FB"},
                                {"type": "condition", "operator": "Contains", "value": "Desk"},
                            ],
                        },
                        {"type": "condition", "operator": "Contains", "value": "Wired"},
                    ],
                },
            },
        ]
    }
    path = tmp_path / "rules.yml"
    path.write_text(yaml.dump(config))
    return path
