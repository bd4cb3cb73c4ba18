"""
Shared fixtures: fake OCR adapters and generated images.

The fake adapters stand in for Tesseract/docTR so the pipeline, batch
harness and API can be tested without an OCR engine installed.
"""

import io
import threading
import time
from collections.abc import Callable

import pytest
from PIL import Image

from labocr.errors import RecognitionError
from labocr.services.ocr import OCRAdapter, RecognizedText
from labocr.services.ocr.image import NormalizedImage

SAMPLE_REPORT_TEXT = """\
CITY DIAGNOSTIC LABORATORY
Patient Name : Mr. R Sharma        Age/Sex : 54 Y / M
Registered : 18/03/2025            Reported Date: 19/03/2025
-----------------------------------------------------------
Test                 Result    Bio. Ref. Interval   Units
CREATININE           1.42      0.7-1.3              mg/dL
UREA                 31        15-45                mg/dL
"""


class FakeAdapter(OCRAdapter):
    """Returns canned text; optionally computed per image."""

    name = "fake"

    def __init__(
        self,
        text: str = SAMPLE_REPORT_TEXT,
        responder: Callable[[NormalizedImage], str] | None = None,
        delay: float = 0,
    ) -> None:
        super().__init__()
        self.text = text
        self.responder = responder
        self.delay = delay
        self.calls: list[tuple[int, int]] = []
        self.closed = False
        self.max_active = 0
        self._active = 0
        self._lock = threading.Lock()

    def _recognize(self, image: NormalizedImage, timeout: float | None = None) -> RecognizedText:
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            self.calls.append(image.size)
            if self.delay:
                time.sleep(self.delay)
            text = self.responder(image) if self.responder else self.text
            return RecognizedText(text=text, confidence=0.9)
        finally:
            with self._lock:
                self._active -= 1

    def close(self) -> None:
        self.closed = True
        super().close()


class FailingAdapter(OCRAdapter):
    """Always fails recognition."""

    name = "failing"

    def _recognize(self, image: NormalizedImage, timeout: float | None = None) -> RecognizedText:
        raise RecognitionError("engine unavailable")


def make_image_bytes(
    size: tuple[int, int] = (500, 250),
    color: tuple[int, int, int] = (255, 255, 255),
    mode: str = "RGB",
    fmt: str = "PNG",
) -> bytes:
    """Encode a solid-color image."""
    if mode == "RGBA":
        image = Image.new(mode, size, color + (255,))
    else:
        image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def fake_adapter():
    adapter = FakeAdapter()
    yield adapter
    adapter.close()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()
