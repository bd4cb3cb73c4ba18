"""
Pydantic schemas for API request/response validation.

These schemas define the contract between the mobile client and backend.
Field names are camelCase on the wire to match the client. A value that
could not be extracted is sent as the literal string "Not found".
"""

from pydantic import BaseModel, ConfigDict, Field

from labocr.domain.models import ExtractionResult
from labocr.services.pipeline import PipelineRun


class ExtractionResponse(BaseModel):
    """Fields extracted from an uploaded lab report."""

    model_config = ConfigDict(populate_by_name=True)

    reported_date: str = Field(alias="reportedDate", examples=["19/03/2025"])
    month: str = Field(examples=["march"])
    serum_creatinine: str = Field(alias="serumCreatinine", examples=["1.42"])

    @classmethod
    def from_result(cls, result: ExtractionResult) -> "ExtractionResponse":
        return cls.model_validate(result.to_dict())


class MatchedPatternsResponse(BaseModel):
    """Priority of the pattern that matched each field (null if missed)."""

    model_config = ConfigDict(populate_by_name=True)

    reported_date: int | None = Field(alias="reportedDate")
    serum_creatinine: int | None = Field(alias="serumCreatinine")


class DebugOCRResponse(BaseModel):
    """Full pipeline output for debugging OCR and pattern behavior."""
    filename: str
    file_size: int
    extracted: ExtractionResponse
    matched_patterns: MatchedPatternsResponse
    raw_text: str
    confidence: float | None = None
    original_size: tuple[int, int]
    normalized_size: tuple[int, int]
    timings_ms: dict[str, float]

    @classmethod
    def from_run(cls, filename: str, file_size: int, run: PipelineRun) -> "DebugOCRResponse":
        return cls(
            filename=filename,
            file_size=file_size,
            extracted=ExtractionResponse.from_result(run.result),
            matched_patterns=MatchedPatternsResponse.model_validate(run.result.matched_priorities()),
            raw_text=run.raw_text,
            confidence=run.confidence,
            original_size=run.original_size,
            normalized_size=run.normalized_size,
            timings_ms={k: round(v, 1) for k, v in run.timings_ms.items()},
        )


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    ocr_backend: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: str | None = None
