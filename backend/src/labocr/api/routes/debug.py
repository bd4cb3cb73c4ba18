"""
Debug endpoints for development and testing.

These endpoints are only registered when DEBUG=true.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from labocr.api.dependencies import get_app_settings, get_pipeline, read_image_upload
from labocr.api.schemas import DebugOCRResponse
from labocr.config import Settings
from labocr.errors import ImageDecodeError, RecognitionError
from labocr.services.pipeline import ExtractionPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


@router.post("/ocr", response_model=DebugOCRResponse)
async def debug_ocr(
    file: Annotated[UploadFile, File(description="Lab report photo (PNG/JPG)")],
    pipeline: Annotated[ExtractionPipeline, Depends(get_pipeline)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> DebugOCRResponse:
    """
    Run the pipeline and return everything it saw.

    Includes the raw OCR text, which pattern matched each field, and timings.
    """
    content = await read_image_upload(file, settings)

    try:
        run = await run_in_threadpool(pipeline.process, content)
    except ImageDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except RecognitionError as e:
        logger.exception("OCR failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"OCR error: {e}",
        ) from e

    return DebugOCRResponse.from_run(file.filename or "upload", len(content), run)


@router.get("/ocr/config")
async def get_ocr_config(
    pipeline: Annotated[ExtractionPipeline, Depends(get_pipeline)],
    settings: Annotated[Settings, Depends(get_app_settings)],
):
    """Get current OCR configuration and pattern lists."""
    return {
        "backend": settings.ocr_backend,
        "language": settings.ocr_language,
        "page_segmentation_mode": settings.ocr_page_segmentation_mode,
        "preserve_interword_spaces": settings.ocr_preserve_interword_spaces,
        "extra_parameters": settings.ocr_extra_parameters,
        "timeout_seconds": settings.ocr_timeout_seconds,
        "target_width": settings.target_width,
        "date_patterns": [p.expression.pattern for p in pipeline.extractor.date_patterns],
        "creatinine_patterns": [p.expression.pattern for p in pipeline.extractor.creatinine_patterns],
    }
