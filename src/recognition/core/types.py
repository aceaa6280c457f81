"""Core type definitions shared across all recognition modules."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NodeType(StrEnum):
    """Kind of node in a recognition tree."""

    GROUP = "group"
    CONDITION = "condition"


class LogicalOperator(StrEnum):
    """Operators that combine the children of a group."""

    AND = "AND"
    OR = "OR"


class ConditionOperator(StrEnum):
    """Operators that compare a condition value against a family name."""

    CONTAINS = "Contains"
    NOT_CONTAINS = "NotContains"


_GROUP_OPERATORS: dict[str, LogicalOperator] = {
    "and": LogicalOperator.AND,
    "or": LogicalOperator.OR,
}

_CONDITION_OPERATORS: dict[str, ConditionOperator] = {
    "contains": ConditionOperator.CONTAINS,
    "notcontains": ConditionOperator.NOT_CONTAINS,
    "not_contains": ConditionOperator.NOT_CONTAINS,
}


class RecognitionNode(BaseModel):
    """Node in a recognition tree: either a group or a condition.

    Groups combine an ordered list of children with ``AND`` / ``OR``.
    Conditions test whether a family name contains (or does not contain)
    a literal value. Operator spellings are accepted case-insensitively,
    so trees authored by the web builder (``And``/``Or``) and by the
    desktop client (``AND``/``OR``) load into the same shape.
    """

    type: NodeType = NodeType.CONDITION
    operator: LogicalOperator | ConditionOperator | None = None
    value: str | None = None
    children: list[RecognitionNode] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _normalise_operator(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        node_type = NodeType(str(data.get("type") or NodeType.CONDITION).lower())
        data["type"] = node_type
        raw = data.get("operator")
        if node_type is NodeType.GROUP:
            if raw is None:
                data["operator"] = LogicalOperator.AND
            else:
                key = str(raw).lower()
                if key not in _GROUP_OPERATORS:
                    raise ValueError(f"Unknown group operator {raw!r}")
                data["operator"] = _GROUP_OPERATORS[key]
            if data.get("children") is None:
                data["children"] = []
        else:
            if raw is None:
                data["operator"] = ConditionOperator.CONTAINS
            else:
                key = str(raw).lower()
                if key not in _CONDITION_OPERATORS:
                    raise ValueError(f"Unknown condition operator {raw!r}")
                data["operator"] = _CONDITION_OPERATORS[key]
            data["children"] = []
        return data

    @classmethod
    def condition(
        cls,
        value: str,
        operator: ConditionOperator = ConditionOperator.CONTAINS,
    ) -> RecognitionNode:
        return cls(type=NodeType.CONDITION, operator=operator, value=value)

    @classmethod
    def group(
        cls,
        operator: LogicalOperator,
        children: list[RecognitionNode] | None = None,
    ) -> RecognitionNode:
        return cls(type=NodeType.GROUP, operator=operator, children=list(children or []))

    @property
    def is_group(self) -> bool:
        return self.type is NodeType.GROUP


class FamilyRole(BaseModel):
    """A functional category that families are classified into."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str


class RecognitionRule(BaseModel):
    """A recognition rule as held centrally: one formula per role."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role_id: str
    role_name: str | None = None
    root_node: str
    formula: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime | None = None


class TreeRule(BaseModel):
    """A recognition rule in tree form, as consumed by offline clients."""

    id: str | None = None
    role_id: str | None = None
    role_name: str
    root_node: RecognitionNode


class Conflict(BaseModel):
    """A pair of rules whose patterns could match the same family name."""

    rule_id_1: str
    rule_id_2: str
    role_name_1: str
    role_name_2: str
    description: str


class ValidationResult(BaseModel):
    """Outcome of formula validation."""

    valid: bool
    reason: str | None = None


class PagedResult(BaseModel, Generic[T]):
    """One page of a larger result set."""

    items: list[T]
    total_count: int
    page_number: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)
