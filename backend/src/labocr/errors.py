"""
Exception hierarchy for the extraction pipeline.

Per-image faults (decode, recognition, timeout) are raised to the immediate
caller. The batch harness catches them and records a failed case instead.
An extraction miss is never an exception; see `labocr.domain.fields.NOT_FOUND`.
"""


class LabOCRError(Exception):
    """Base class for all labocr errors."""


class ImageDecodeError(LabOCRError):
    """Input bytes or file could not be decoded as a raster image."""


class RecognitionError(LabOCRError):
    """The OCR engine failed to produce text for an image."""


class RecognitionTimeoutError(RecognitionError):
    """OCR recognition exceeded the configured timeout."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"OCR recognition exceeded {timeout_seconds:g}s timeout")
        self.timeout_seconds = timeout_seconds


class GroundTruthError(LabOCRError, ValueError):
    """Ground truth is empty or malformed (caller bug, not a data miss)."""
