"""
Shared request dependencies.

The pipeline (and its OCR adapter) is created once in the application
lifespan and stored on `app.state`; routes receive it through `get_pipeline`.
"""

import logging

from fastapi import HTTPException, Request, UploadFile, status

from labocr.config import Settings
from labocr.services.pipeline import ExtractionPipeline

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg"}


def get_pipeline(request: Request) -> ExtractionPipeline:
    """Return the application's extraction pipeline."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Extraction pipeline not ready",
        )
    return pipeline


def get_app_settings(request: Request) -> Settings:
    """Return the settings the application was created with."""
    return request.app.state.settings


async def read_image_upload(file: UploadFile, settings: Settings) -> bytes:
    """
    Validate and read an uploaded image.

    Raises:
        HTTPException: 400 for wrong type or empty file, 413 if too large
    """
    if file.content_type and file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {file.content_type}. Allowed: PNG, JPG",
        )

    content = await file.read()
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is empty",
        )
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_upload_bytes} bytes",
        )

    logger.info(f"Upload received: {file.filename} ({len(content)} bytes)")
    return content
