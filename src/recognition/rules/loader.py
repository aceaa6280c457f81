"""Load recognition rules from a YAML file.

Example::

    rules:
      - role: Door
        formula: "Door AND NOT Window"
      - role: Furniture
        tree:
          type: group
          operator: OR
          children:
            - {type: condition, operator: Contains, value: Desk}
            - {type: condition, operator: Contains, value: Chair}

Entries are kept in file order, which is the classification order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from recognition.core.types import RecognitionNode, RecognitionRule, TreeRule
from recognition.rules.store import to_tree_rules


def _parse_entry(index: int, entry: dict[str, Any]) -> RecognitionRule | TreeRule:
    role = entry.get("role")
    if not role:
        raise ValueError(f"Rule #{index + 1} has no role")
    role_id = str(entry.get("role_id", role))
    rule_id = str(entry.get("id", f"rule-{index + 1}"))

    if "tree" in entry:
        return TreeRule(
            id=rule_id,
            role_id=role_id,
            role_name=role,
            root_node=RecognitionNode.model_validate(entry["tree"]),
        )
    if "formula" in entry:
        return RecognitionRule(
            id=rule_id,
            role_id=role_id,
            role_name=role,
            root_node=str(entry.get("root_node", role)),
            formula=str(entry["formula"]),
        )
    raise ValueError(f"Rule #{index + 1} ({role}) needs either 'formula' or 'tree'")


def load_rules(path: str | Path) -> list[RecognitionRule | TreeRule]:
    """Read every rule entry from ``path`` in file order."""
    with open(path) as fh:
        data = yaml.safe_load(fh) or {}
    return [_parse_entry(i, entry) for i, entry in enumerate(data.get("rules", []))]


class YamlRuleStore:
    """Rule source backed by a YAML file, re-read on every fetch."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def list_all(self) -> list[RecognitionRule | TreeRule]:
        return load_rules(self._path)

    def list_active_rules(self) -> list[RecognitionRule]:
        return [r for r in self.list_all() if isinstance(r, RecognitionRule)]

    def list_active_rules_tree(self) -> list[TreeRule]:
        trees: list[TreeRule] = []
        for rule in self.list_all():
            if isinstance(rule, TreeRule):
                trees.append(rule)
            else:
                trees.extend(to_tree_rules([rule]))
        return trees
