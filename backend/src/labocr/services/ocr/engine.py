"""
OCR engine adapters.

The extraction core treats recognition as a black box: give it a
normalized image, get text back (plus an optional confidence). This module
wraps the two supported engines behind one interface.

Design Decisions:
- One adapter object per engine instance, built once and injected; no
  module-level engine state
- Each adapter owns a single-worker executor, so calls on one adapter are
  serialized (neither engine is safe for concurrent use of one instance)
- The timeout covers the engine run only, not time queued behind earlier
  calls; a timed-out call raises RecognitionTimeoutError to the caller
- Tesseract gets the timeout too, so a hung process is killed and the
  worker is freed for the next image
- Engine options are passed through as configured, never interpreted here
- Lazy model loading for docTR to avoid startup overhead
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any

from labocr.errors import RecognitionError, RecognitionTimeoutError

from .image import NormalizedImage

logger = logging.getLogger(__name__)

_START_POLL_SECONDS = 0.05


@dataclass(frozen=True)
class RecognizedText:
    """
    OCR output for one image.

    Attributes:
        text: Recognized text, line breaks preserved
        confidence: Mean word confidence (0-1) if the engine reports it
        processing_time_ms: Wall-clock time spent in the engine
    """
    text: str
    confidence: float | None = None
    processing_time_ms: float = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/debugging."""
        return {
            "text": self.text,
            "confidence": round(self.confidence, 3) if self.confidence is not None else None,
            "processing_time_ms": round(self.processing_time_ms, 1),
        }


class OCRAdapter(ABC):
    """
    Base class for OCR engines.

    Subclasses implement `_recognize`. Callers use `recognize`, which
    serializes calls and applies the timeout.

    Example:
        with TesseractAdapter(page_segmentation_mode=6) as ocr:
            recognized = ocr.recognize(normalized, timeout=30)
            print(recognized.text)
    """

    name = "ocr"

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-ocr")
        self._closed = False

    @abstractmethod
    def _recognize(self, image: NormalizedImage, timeout: float | None = None) -> RecognizedText:
        """
        Run the engine on one image. Runs on the adapter's worker thread.

        Engines that can abort their own work should stop after `timeout`
        seconds so the worker is free for the next call.
        """

    def recognize(
        self,
        image: NormalizedImage,
        timeout: float | None = None,
    ) -> RecognizedText:
        """
        Recognize text in a normalized image.

        Args:
            image: Output of ImageNormalizer.normalize
            timeout: Seconds the engine may run before giving up, counted
                from when this call reaches the worker (None waits forever)

        Returns:
            RecognizedText with the raw OCR output

        Raises:
            RecognitionTimeoutError: If the engine does not finish in time
            RecognitionError: If the engine fails or the adapter is closed
        """
        if self._closed:
            raise RecognitionError(f"{self.name} adapter is closed")

        started = threading.Event()

        def run() -> RecognizedText:
            started.set()
            return self._recognize(image, timeout)

        future = self._executor.submit(run)

        # Time spent queued behind earlier calls does not count against the timeout
        while not started.wait(_START_POLL_SECONDS):
            if future.done():
                break

        start_time = time.perf_counter()
        try:
            recognized = future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            logger.error(f"{self.name}: recognition timed out after {timeout}s")
            raise RecognitionTimeoutError(timeout) from e
        except RecognitionError:
            raise
        except Exception as e:
            logger.exception(f"{self.name}: recognition failed")
            raise RecognitionError(f"{self.name} recognition failed: {e}") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"OCR complete ({self.name}): {len(recognized.text)} chars, "
            f"time: {elapsed_ms:.0f}ms"
        )
        return RecognizedText(
            text=recognized.text,
            confidence=recognized.confidence,
            processing_time_ms=elapsed_ms,
        )

    def close(self) -> None:
        """Release the worker thread. Pending calls are cancelled."""
        if not self._closed:
            self._closed = True
            self._executor.shutdown(wait=False, cancel_futures=True)
            logger.debug(f"{self.name} adapter closed")

    def __enter__(self) -> "OCRAdapter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class TesseractAdapter(OCRAdapter):
    """
    Tesseract OCR via pytesseract.

    Page segmentation mode 6 treats the image as a single uniform block of
    text, which keeps label/value pairs on one line for lab report tables.
    """

    name = "tesseract"

    def __init__(
        self,
        language: str = "eng",
        page_segmentation_mode: int | None = 6,
        preserve_interword_spaces: bool = True,
        extra_parameters: Mapping[str, str | int] | None = None,
        with_confidence: bool = False,
        tesseract_cmd: str | None = None,
    ) -> None:
        """
        Initialize Tesseract adapter.

        Args:
            language: Tesseract language code(s), e.g. "eng"
            page_segmentation_mode: Value for --psm (None leaves engine default)
            preserve_interword_spaces: Keep runs of spaces between words
            extra_parameters: Further "-c name=value" engine parameters
            with_confidence: Also run word-level data to compute mean confidence
            tesseract_cmd: Path to the tesseract binary if not on PATH
        """
        super().__init__()
        self.language = language
        self.page_segmentation_mode = page_segmentation_mode
        self.preserve_interword_spaces = preserve_interword_spaces
        self.extra_parameters = dict(extra_parameters or {})
        self.with_confidence = with_confidence
        self.tesseract_cmd = tesseract_cmd

    @property
    def config(self) -> str:
        """Tesseract command-line config string."""
        parts: list[str] = []
        if self.page_segmentation_mode is not None:
            parts.append(f"--psm {self.page_segmentation_mode}")
        if self.preserve_interword_spaces:
            parts.append("-c preserve_interword_spaces=1")
        for name, value in self.extra_parameters.items():
            parts.append(f"-c {name}={value}")
        return " ".join(parts)

    def _recognize(self, image: NormalizedImage, timeout: float | None = None) -> RecognizedText:
        try:
            import pytesseract
        except ImportError as e:
            raise RecognitionError(
                "pytesseract is required for the tesseract backend. Install with: pip install pytesseract"
            ) from e

        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd

        # pytesseract kills the tesseract process after `timeout` seconds (0 = no limit)
        process_timeout = timeout or 0

        try:
            text = pytesseract.image_to_string(
                image.image,
                lang=self.language,
                config=self.config,
                timeout=process_timeout,
            )
            confidence = None
            if self.with_confidence:
                data = pytesseract.image_to_data(
                    image.image,
                    lang=self.language,
                    config=self.config,
                    output_type=pytesseract.Output.DICT,
                    timeout=process_timeout,
                )
                confidence = _mean_tesseract_confidence(data.get("conf", []))
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise RecognitionError(f"Tesseract failed: {e}") from e
        except RuntimeError as e:
            # Raised as RuntimeError("Tesseract process timeout") by pytesseract
            if timeout and "timeout" in str(e).lower():
                raise RecognitionTimeoutError(timeout) from e
            raise RecognitionError(f"Tesseract failed: {e}") from e

        return RecognizedText(text=text, confidence=confidence)


def _mean_tesseract_confidence(values: list[Any]) -> float | None:
    # Tesseract reports -1 for non-word boxes and 0-100 for words
    scores = [float(v) for v in values if float(v) >= 0]
    if not scores:
        return None
    return sum(scores) / len(scores) / 100


class DocTRAdapter(OCRAdapter):
    """
    docTR OCR engine.

    Words are joined with spaces and lines with newlines so the regex
    extractor sees the same line structure as Tesseract output.
    """

    name = "doctr"

    def __init__(
        self,
        det_arch: str = "db_resnet50",
        reco_arch: str = "crnn_vgg16_bn",
        predictor_options: Mapping[str, Any] | None = None,
    ) -> None:
        """
        Initialize docTR adapter.

        Args:
            det_arch: Text detection architecture
            reco_arch: Text recognition architecture
            predictor_options: Extra keyword arguments for ocr_predictor
        """
        super().__init__()
        self.det_arch = det_arch
        self.reco_arch = reco_arch
        self.predictor_options = dict(predictor_options or {})
        self._model = None

    def _get_model(self):
        """
        Lazy load the docTR model.

        Models are loaded on first use to avoid startup overhead.
        The pretrained models are cached by docTR after first download.
        """
        if self._model is None:
            try:
                from doctr.models import ocr_predictor
            except ImportError as e:
                logger.error(f"docTR not installed: {e}")
                raise RecognitionError(
                    "docTR is required for the doctr backend. Install with: pip install python-doctr[torch]"
                ) from e

            logger.info("Loading docTR OCR model...")
            self._model = ocr_predictor(
                det_arch=self.det_arch,
                reco_arch=self.reco_arch,
                pretrained=True,
                **self.predictor_options,
            )
            logger.info("docTR model loaded successfully")

        return self._model

    def _recognize(self, image: NormalizedImage, timeout: float | None = None) -> RecognizedText:
        # docTR inference cannot be interrupted; the caller's wait enforces the timeout
        from doctr.io import DocumentFile

        model = self._get_model()
        doc = DocumentFile.from_images(image.to_png_bytes())
        result = model(doc)

        lines: list[str] = []
        confidences: list[float] = []
        for page in result.pages:
            for block in page.blocks:
                for line in block.lines:
                    lines.append(" ".join(word.value for word in line.words))
                    confidences.extend(word.confidence for word in line.words)

        confidence = sum(confidences) / len(confidences) if confidences else None
        return RecognizedText(text="\n".join(lines), confidence=confidence)


def create_adapter(settings) -> OCRAdapter:
    """
    Build the OCR adapter selected by configuration.

    Args:
        settings: Application Settings
    """
    if settings.ocr_backend == "doctr":
        return DocTRAdapter(predictor_options=settings.ocr_extra_parameters)

    return TesseractAdapter(
        language=settings.ocr_language,
        page_segmentation_mode=settings.ocr_page_segmentation_mode,
        preserve_interword_spaces=settings.ocr_preserve_interword_spaces,
        extra_parameters=settings.ocr_extra_parameters,
        with_confidence=settings.ocr_with_confidence,
        tesseract_cmd=settings.tesseract_cmd,
    )
