"""Edit and critique endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.errors import to_http_error
from app.core.errors import StyleEngineError
from app.core.logging import get_logger
from app.core.schemas_critique import CritiqueAnalysis
from app.core.schemas_orchestration import OrchestrationRequest, OrchestrationResult
from app.core.schemas_style import AudienceOverlay, StyleProfile
from app.services.edit_service import EditService, get_edit_service

logger = get_logger(__name__)

router = APIRouter(prefix="/edits", tags=["edits"])


class CritiqueRequest(BaseModel):
    original_text: str
    suggested_edit: str
    style: StyleProfile = Field(default_factory=StyleProfile)
    audience: AudienceOverlay | None = None
    document_id: str | None = None
    section_type: str | None = None


@router.post("", response_model=OrchestrationResult)
async def create_edit(
    body: OrchestrationRequest,
    service: EditService = Depends(get_edit_service),
):
    """Run the generate/critique loop for one paragraph."""
    try:
        return await service.orchestrate_edit(body)
    except StyleEngineError as e:
        raise to_http_error(e) from e


@router.post("/critique", response_model=CritiqueAnalysis)
async def critique(
    body: CritiqueRequest,
    service: EditService = Depends(get_edit_service),
):
    """Score a candidate edit without running the loop."""
    try:
        return await service.critique_edit(
            original_text=body.original_text,
            suggested_edit=body.suggested_edit,
            style=body.style,
            audience=body.audience,
            document_id=body.document_id,
            section_type=body.section_type,
        )
    except StyleEngineError as e:
        raise to_http_error(e) from e
