"""Health check endpoint reporting the configured delivery mode."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.config import Settings
from app.dependencies import get_settings
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("/healthz", response_model=HealthResponse)
async def healthz(config: Annotated[Settings, Depends(get_settings)]) -> HealthResponse:
    """Return 200 with the Discord delivery mode (``webhook``, ``bot`` or ``disabled``)."""
    return HealthResponse(status="ok", delivery=config.delivery_mode)
