"""Map Style Engine exceptions onto HTTP errors."""

from fastapi import HTTPException

from app.core.errors import (
    CompletionServiceError,
    DocumentNotFoundError,
    EditCancelledError,
    InvalidInputError,
    StyleEngineError,
)
from app.core.logging import get_logger

logger = get_logger(__name__)


def to_http_error(error: StyleEngineError) -> HTTPException:
    if isinstance(error, CompletionServiceError):
        logger.error(f"Completion service failure: {error}")
        return HTTPException(status_code=502, detail={"error": "edit_failed", "message": str(error)})
    if isinstance(error, EditCancelledError):
        return HTTPException(status_code=409, detail={"error": "edit_cancelled", "message": str(error)})
    if isinstance(error, InvalidInputError):
        return HTTPException(status_code=400, detail={"error": "invalid_request", "message": str(error)})
    if isinstance(error, DocumentNotFoundError):
        return HTTPException(status_code=404, detail={"error": "not_found", "message": str(error)})
    logger.exception(f"Unhandled style engine error: {error}")
    return HTTPException(status_code=500, detail={"error": "internal_error", "message": str(error)})
