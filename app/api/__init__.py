"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import documents, edits

router = APIRouter()

# Edit loop and standalone critique
router.include_router(edits.router)

# Per-document learning, preferences and goals
router.include_router(documents.router)
