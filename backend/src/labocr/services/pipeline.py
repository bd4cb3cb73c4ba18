"""
Extraction pipeline orchestrator.

Coordinates the per-image flow:
1. Image normalization (fixed width)
2. OCR via the injected adapter
3. First-match-wins field extraction
4. Month resolution (inside ExtractionResult)

This is the seam the upload endpoint and the batch harness call. It is
synchronous; callers wanting parallelism run one pipeline per worker.
"""

import logging
import time
from dataclasses import dataclass, field

from labocr.domain.models import ExtractionResult

from .ocr import ImageNormalizer, OCRAdapter, ReportFieldExtractor
from .ocr.image import ImageSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineRun:
    """
    Full output of one pipeline invocation.

    Holds sizes and text only, never the image itself.
    """
    result: ExtractionResult
    raw_text: str
    confidence: float | None
    original_size: tuple[int, int]
    normalized_size: tuple[int, int]
    timings_ms: dict[str, float] = field(default_factory=dict)

    @property
    def total_time_ms(self) -> float:
        return sum(self.timings_ms.values())

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/debugging."""
        return {
            "result": self.result.to_dict(),
            "matched_patterns": self.result.matched_priorities(),
            "raw_text": self.raw_text,
            "confidence": round(self.confidence, 3) if self.confidence is not None else None,
            "original_size": list(self.original_size),
            "normalized_size": list(self.normalized_size),
            "timings_ms": {k: round(v, 1) for k, v in self.timings_ms.items()},
        }


class ExtractionPipeline:
    """
    Turns one lab report image into an ExtractionResult.

    The OCR adapter is injected and owned by the caller, which is
    responsible for closing it.

    Example:
        with TesseractAdapter() as ocr:
            pipeline = ExtractionPipeline(ocr=ocr, timeout=30)
            result = pipeline.run(Path("report.jpg"))
            if result.serum_creatinine:
                print(result.serum_creatinine.value)
    """

    def __init__(
        self,
        ocr: OCRAdapter,
        normalizer: ImageNormalizer | None = None,
        extractor: ReportFieldExtractor | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize pipeline.

        Args:
            ocr: OCR adapter instance
            normalizer: Image normalizer (created with defaults if None)
            extractor: Field extractor (created with default patterns if None)
            timeout: Per-image OCR timeout in seconds (None waits forever)
        """
        self.ocr = ocr
        self.normalizer = normalizer or ImageNormalizer()
        self.extractor = extractor or ReportFieldExtractor()
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings, ocr: OCRAdapter) -> "ExtractionPipeline":
        """Build a pipeline configured from application Settings."""
        return cls(
            ocr=ocr,
            normalizer=ImageNormalizer(target_width=settings.target_width),
            timeout=settings.ocr_timeout_seconds,
        )

    def process(self, source: ImageSource) -> PipelineRun:
        """
        Run the full pipeline and keep intermediate details.

        Raises:
            ImageDecodeError: If the image cannot be decoded
            RecognitionError: If OCR fails
            RecognitionTimeoutError: If OCR exceeds the timeout
        """
        start = time.perf_counter()
        normalized = self.normalizer.normalize(source)
        normalize_ms = (time.perf_counter() - start) * 1000

        recognized = self.ocr.recognize(normalized, timeout=self.timeout)

        start = time.perf_counter()
        result = self.extractor.extract(recognized.text)
        extract_ms = (time.perf_counter() - start) * 1000

        return PipelineRun(
            result=result,
            raw_text=recognized.text,
            confidence=recognized.confidence,
            original_size=normalized.original_size,
            normalized_size=normalized.size,
            timings_ms={
                "normalize": normalize_ms,
                "recognize": recognized.processing_time_ms,
                "extract": extract_ms,
            },
        )

    def run(self, source: ImageSource) -> ExtractionResult:
        """Run the pipeline and return only the extracted fields."""
        return self.process(source).result
