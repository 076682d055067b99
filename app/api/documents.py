"""Per-document preference, learning and goals endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.api.errors import to_http_error
from app.chains.analyze_edit_patterns import EditPatternReport
from app.chains.extract_constraints import ExtractedConstraints
from app.core.errors import StyleEngineError
from app.core.logging import get_logger
from app.core.schemas_document import (
    DocumentGoals,
    DocumentPreferences,
    EditDecision,
    EditDecisionType,
    EditStats,
    FeedbackCategory,
)
from app.core.schemas_style import AudienceOverlay, StyleProfile
from app.services.edit_service import EditService, get_edit_service

logger = get_logger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


class DecisionRequest(BaseModel):
    original_text: str
    suggested_edit: str
    final_text: str
    decision: EditDecisionType
    paragraph_index: int | None = None
    instruction: str | None = None
    feedback_tags: list[FeedbackCategory] = Field(default_factory=list)
    style: StyleProfile = Field(default_factory=StyleProfile)
    audience: AudienceOverlay | None = None


class FeedbackRequest(BaseModel):
    feedback: list[FeedbackCategory]
    suggested_edit: str
    user_version: str
    instruction: str | None = None


class SliderUpdate(BaseModel):
    verbosity_adjust: float | None = None
    formality_adjust: float | None = None
    hedging_adjust: float | None = None


class GoalsUpdate(BaseModel):
    title: str | None = None
    content: str | None = None
    document_type: str | None = None
    last_document_update: str | None = None
    user_edits: dict | None = None


class OverlayRequest(BaseModel):
    name: str


class ConstraintsRequest(BaseModel):
    text: str
    merge: bool = True
    model: str | None = None


class ConstraintsResponse(BaseModel):
    extracted: ExtractedConstraints
    merged: bool
    preferences: DocumentPreferences | None = None


class GuidanceConsolidationRequest(BaseModel):
    model: str | None = None


@router.post("/{document_id}/decisions", response_model=DocumentPreferences)
async def record_decision(
    document_id: str,
    body: DecisionRequest,
    service: EditService = Depends(get_edit_service),
):
    """Record an accept/partial/reject decision and learn from it."""
    decision = EditDecision(
        paragraph_index=body.paragraph_index,
        original_text=body.original_text,
        suggested_edit=body.suggested_edit,
        final_text=body.final_text,
        decision=body.decision,
        instruction=body.instruction,
        feedback_tags=body.feedback_tags,
    )
    try:
        return await service.record_decision(document_id, decision, body.style, body.audience)
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.post("/{document_id}/feedback", response_model=DocumentPreferences)
async def record_feedback(
    document_id: str,
    body: FeedbackRequest,
    service: EditService = Depends(get_edit_service),
):
    try:
        return await service.record_feedback(
            document_id, body.feedback, body.suggested_edit, body.user_version, body.instruction
        )
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.get("/{document_id}/preferences", response_model=DocumentPreferences)
async def get_preferences(
    document_id: str,
    service: EditService = Depends(get_edit_service),
):
    try:
        return await service.get_preferences(document_id)
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.post("/{document_id}/preferences/reset", response_model=DocumentPreferences)
async def reset_preferences(
    document_id: str,
    service: EditService = Depends(get_edit_service),
):
    """Restore default adjustments; history and goals are kept."""
    try:
        return await service.reset_adjustments(document_id)
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.patch("/{document_id}/preferences/sliders", response_model=DocumentPreferences)
async def update_sliders(
    document_id: str,
    body: SliderUpdate,
    service: EditService = Depends(get_edit_service),
):
    try:
        return await service.set_sliders(
            document_id,
            verbosity_adjust=body.verbosity_adjust,
            formality_adjust=body.formality_adjust,
            hedging_adjust=body.hedging_adjust,
        )
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.post("/{document_id}/goals", response_model=DocumentGoals)
async def update_goals(
    document_id: str,
    body: GoalsUpdate,
    service: EditService = Depends(get_edit_service),
):
    try:
        return await service.update_goals(document_id, **body.model_dump())
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.get("/{document_id}/patterns", response_model=EditPatternReport)
async def get_patterns(
    document_id: str,
    service: EditService = Depends(get_edit_service),
):
    """Advisory report over rejected and partial decisions, against the default style."""
    try:
        return await service.analyze_patterns(document_id, StyleProfile())
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.get("/{document_id}/stats", response_model=EditStats)
async def get_stats(
    document_id: str,
    service: EditService = Depends(get_edit_service),
):
    try:
        return await service.get_stats(document_id)
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.post("/{document_id}/overlay", response_model=AudienceOverlay)
async def create_overlay(
    document_id: str,
    body: OverlayRequest,
    service: EditService = Depends(get_edit_service),
):
    """Promote a document's learned adjustments into a reusable audience overlay."""
    try:
        return await service.create_overlay(document_id, body.name)
    except StyleEngineError as e:
        raise to_http_error(e) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"error": "invalid_request", "message": str(e)}) from e


@router.post("/{document_id}/constraints", response_model=ConstraintsResponse)
async def extract_constraints(
    document_id: str,
    body: ConstraintsRequest,
    service: EditService = Depends(get_edit_service),
):
    """Extract writing constraints from guideline text and, by default, merge them in."""
    try:
        extracted, preferences = await service.apply_constraints(
            document_id, body.text, merge=body.merge, model=body.model
        )
    except StyleEngineError as e:
        raise to_http_error(e) from e
    return ConstraintsResponse(extracted=extracted, merged=preferences is not None, preferences=preferences)


@router.post("/{document_id}/guidance/consolidate", response_model=DocumentPreferences)
async def consolidate_guidance(
    document_id: str,
    body: GuidanceConsolidationRequest | None = None,
    service: EditService = Depends(get_edit_service),
):
    try:
        return await service.consolidate_guidance(document_id, model=body.model if body else None)
    except StyleEngineError as e:
        raise to_http_error(e) from e
