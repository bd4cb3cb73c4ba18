"""
Lab report upload endpoint.

Accepts a photographed report, runs the extraction pipeline and returns
the report date, month and serum creatinine.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from labocr.api.dependencies import get_app_settings, get_pipeline, read_image_upload
from labocr.api.schemas import ErrorResponse, ExtractionResponse
from labocr.config import Settings
from labocr.errors import ImageDecodeError, RecognitionError, RecognitionTimeoutError
from labocr.services.pipeline import ExtractionPipeline

logger = logging.getLogger(__name__)

router = APIRouter(tags=["extraction"])


@router.post(
    "/upload",
    response_model=ExtractionResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or undecodable image"},
        500: {"model": ErrorResponse, "description": "OCR processing failed"},
        504: {"model": ErrorResponse, "description": "OCR timed out"},
    },
)
async def upload_report(
    avatar: Annotated[UploadFile, File(description="Lab report photo (PNG/JPG)")],
    pipeline: Annotated[ExtractionPipeline, Depends(get_pipeline)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ExtractionResponse:
    """
    Extract report date and serum creatinine from a lab report image.

    Fields that cannot be found are returned as "Not found".
    """
    content = await read_image_upload(avatar, settings)

    try:
        result = await run_in_threadpool(pipeline.run, content)
    except ImageDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except RecognitionTimeoutError as e:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=str(e),
        ) from e
    except RecognitionError as e:
        logger.error(f"OCR Error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="OCR processing failed.",
        ) from e

    return ExtractionResponse.from_result(result)
