"""FastAPI application for the style engine."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.config import get_settings

app = FastAPI(
    title="Style Engine",
    description="Adaptive, style-aware paragraph editing with per-document learning",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Liveness plus the configured backends; never calls the model or the store."""
    settings = get_settings()
    return JSONResponse(
        content={
            "status": "ok",
            "completion_provider": settings.COMPLETION_PROVIDER,
            "preference_store": settings.PREFERENCE_STORE,
        },
        status_code=200,
    )


app.include_router(api_router, prefix="/v1", tags=["v1"])
