"""Request payloads for authoring recognition rules."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from recognition.core.types import RecognitionNode


class RuleCreate(BaseModel):
    """Payload for creating a rule from a formula or a builder tree."""

    role_id: str = Field(..., min_length=1)
    root_node: str = Field(..., min_length=1)
    formula: str | None = None
    tree: RecognitionNode | None = None

    @model_validator(mode="after")
    def _needs_formula_or_tree(self) -> RuleCreate:
        if self.formula is None and self.tree is None:
            raise ValueError("Either formula or tree is required")
        return self


class RuleUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    role_id: str | None = None
    root_node: str | None = Field(None, min_length=1)
    formula: str | None = None
    tree: RecognitionNode | None = None


class FormulaRequest(BaseModel):
    formula: str


class RuleTestRequest(BaseModel):
    id: str
    family_name: str


class FormulaTestRequest(BaseModel):
    formula: str
    family_name: str


class CheckConflictsRequest(BaseModel):
    exclude_id: str | None = None


class ClassifyRequest(BaseModel):
    family_names: list[str] = Field(..., min_length=1)
