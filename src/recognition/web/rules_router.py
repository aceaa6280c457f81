"""FastAPI router for recognition rule endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response

from recognition.core.errors import NotFoundError, RuleValidationError
from recognition.rules.models import (
    CheckConflictsRequest,
    ClassifyRequest,
    FormulaRequest,
    FormulaTestRequest,
    RuleCreate,
    RuleTestRequest,
    RuleUpdate,
)
from recognition.rules.service import RecognitionRuleService

router = APIRouter(prefix="/api/recognition-rules")


def _service(request: Request) -> RecognitionRuleService:
    service = getattr(request.app.state, "rule_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Rule service not available")
    return service


def _invalidate(request: Request) -> None:
    cache = getattr(request.app.state, "rule_cache", None)
    if cache is not None:
        cache.invalidate()


def _bad_request(exc: RuleValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail={"field": exc.field, "message": exc.message})


@router.get("")
async def list_rules(
    request: Request,
    page_number: int = 1,
    page_size: int = 10,
) -> dict[str, Any]:
    """List rules one page at a time."""
    page = await _service(request).get_all(page_number=page_number, page_size=page_size)
    return {
        "items": [r.model_dump(mode="json") for r in page.items],
        "total_count": page.total_count,
        "page_number": page.page_number,
        "page_size": page.page_size,
        "total_pages": page.total_pages,
    }


@router.get("/active")
async def list_active_rules(request: Request) -> list[dict[str, Any]]:
    """Active rules in tree form, in classification order."""
    rules = await _service(request).list_active_tree()
    return [r.model_dump(mode="json") for r in rules]


@router.get("/{rule_id}")
async def get_rule(rule_id: str, request: Request) -> dict[str, Any]:
    rule = await _service(request).get_by_id(rule_id)
    if rule is None:
        raise HTTPException(status_code=404, detail=f"Recognition rule {rule_id!r} not found")
    return rule.model_dump(mode="json")


@router.post("", status_code=201)
async def create_rule(body: RuleCreate, request: Request) -> dict[str, Any]:
    try:
        rule = await _service(request).create(body)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RuleValidationError as exc:
        raise _bad_request(exc) from exc
    _invalidate(request)
    return rule.model_dump(mode="json")


@router.put("/{rule_id}")
async def update_rule(rule_id: str, body: RuleUpdate, request: Request) -> dict[str, Any]:
    try:
        rule = await _service(request).update(rule_id, body)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RuleValidationError as exc:
        raise _bad_request(exc) from exc
    _invalidate(request)
    return rule.model_dump(mode="json")


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(rule_id: str, request: Request) -> Response:
    try:
        await _service(request).delete(rule_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    _invalidate(request)
    return Response(status_code=204)


@router.post("/validate")
async def validate_formula(body: FormulaRequest, request: Request) -> dict[str, Any]:
    """Check formula syntax without saving anything."""
    result = _service(request).validate_formula(body.formula)
    return result.model_dump()


@router.post("/test")
async def test_rule(body: RuleTestRequest, request: Request) -> dict[str, Any]:
    """Evaluate a saved rule against a sample family name."""
    try:
        matches = await _service(request).test_rule(body.id, body.family_name)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"id": body.id, "family_name": body.family_name, "matches": matches}


@router.post("/test-formula")
async def test_formula(body: FormulaTestRequest, request: Request) -> dict[str, Any]:
    """Evaluate an unsaved formula against a sample family name."""
    try:
        matches = _service(request).test_formula(body.formula, body.family_name)
    except RuleValidationError as exc:
        raise _bad_request(exc) from exc
    return {"formula": body.formula, "family_name": body.family_name, "matches": matches}


@router.post("/check-conflicts")
async def check_conflicts(
    request: Request,
    body: CheckConflictsRequest | None = None,
) -> list[dict[str, Any]]:
    exclude_id = body.exclude_id if body else None
    conflicts = await _service(request).check_conflicts(exclude_id=exclude_id)
    return [c.model_dump() for c in conflicts]


@router.post("/classify")
async def classify(body: ClassifyRequest, request: Request) -> dict[str, Any]:
    """Classify family names against the cached active rules."""
    classifier = getattr(request.app.state, "classifier", None)
    if classifier is None:
        raise HTTPException(status_code=503, detail="Classifier not available")
    results = await classifier.classify_many(body.family_names)
    return {"results": results}
