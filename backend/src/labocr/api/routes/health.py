"""
Health check endpoint.

Provides system health status for monitoring and load balancers.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from labocr import __version__
from labocr.api.dependencies import get_app_settings
from labocr.api.schemas import HealthResponse
from labocr.config import Settings

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> HealthResponse:
    """Check system health."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        ocr_backend=settings.ocr_backend,
    )
