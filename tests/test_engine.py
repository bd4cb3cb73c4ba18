"""Tests for OCR adapters: serialization, timeouts, error wrapping, config."""

import threading
import time

import pytest
import pytesseract
from PIL import Image

from labocr.config import Settings
from labocr.errors import RecognitionError, RecognitionTimeoutError
from labocr.services.ocr.engine import (
    DocTRAdapter,
    TesseractAdapter,
    _mean_tesseract_confidence,
    create_adapter,
)
from labocr.services.ocr.image import NormalizedImage

from conftest import FailingAdapter, FakeAdapter


@pytest.fixture
def normalized() -> NormalizedImage:
    return NormalizedImage(image=Image.new("RGB", (1000, 500), "white"), original_size=(500, 250))


class TestOCRAdapter:
    def test_returns_text_and_timing(self, fake_adapter, normalized):
        recognized = fake_adapter.recognize(normalized)
        assert recognized.text == fake_adapter.text
        assert recognized.confidence == 0.9
        assert recognized.processing_time_ms >= 0
        assert fake_adapter.calls == [(1000, 500)]

    def test_timeout(self, normalized):
        with FakeAdapter(delay=0.5) as adapter:
            with pytest.raises(RecognitionTimeoutError) as exc_info:
                adapter.recognize(normalized, timeout=0.05)
        assert exc_info.value.timeout_seconds == 0.05

    def test_timed_out_call_does_not_fail_the_next(self, normalized):
        calls = []

        def respond(image):
            calls.append(image.size)
            if len(calls) == 1:
                time.sleep(0.6)
            return "Reported Date: 19/03/2025"

        with FakeAdapter(responder=respond) as adapter:
            with pytest.raises(RecognitionTimeoutError):
                adapter.recognize(normalized, timeout=0.2)
            # Waits for the hung call to finish, then gets its full timeout
            recognized = adapter.recognize(normalized, timeout=0.2)

        assert recognized.text == "Reported Date: 19/03/2025"
        assert len(calls) == 2

    def test_queue_wait_not_counted_against_timeout(self, normalized):
        small = NormalizedImage(image=Image.new("RGB", (10, 10), "white"), original_size=(10, 10))

        def respond(image):
            if image.size == (1000, 500):
                time.sleep(0.5)
            return "ok"

        with FakeAdapter(responder=respond) as adapter:
            slow = threading.Thread(target=adapter.recognize, args=(normalized,))
            slow.start()
            time.sleep(0.1)
            recognized = adapter.recognize(small, timeout=0.2)
            slow.join()

        assert recognized.text == "ok"
        assert recognized.processing_time_ms < 200

    def test_timeout_is_a_recognition_error(self):
        assert issubclass(RecognitionTimeoutError, RecognitionError)

    def test_engine_error_propagates(self, normalized):
        with FailingAdapter() as adapter:
            with pytest.raises(RecognitionError, match="engine unavailable"):
                adapter.recognize(normalized)

    def test_unexpected_error_is_wrapped(self, normalized):
        def explode(image):
            raise ValueError("bad tensor")

        with FakeAdapter(responder=explode) as adapter:
            with pytest.raises(RecognitionError, match="bad tensor"):
                adapter.recognize(normalized)

    def test_closed_adapter_rejects_calls(self, normalized):
        adapter = FakeAdapter()
        adapter.close()
        with pytest.raises(RecognitionError, match="closed"):
            adapter.recognize(normalized)

    def test_calls_are_serialized(self, normalized):
        adapter = FakeAdapter(delay=0.02)
        threads = [
            threading.Thread(target=adapter.recognize, args=(normalized,))
            for _ in range(6)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        adapter.close()

        assert len(adapter.calls) == 6
        assert adapter.max_active == 1


class TestTesseractAdapter:
    def test_default_config(self):
        adapter = TesseractAdapter()
        assert adapter.config == "--psm 6 -c preserve_interword_spaces=1"
        adapter.close()

    def test_pass_through_parameters(self):
        adapter = TesseractAdapter(
            page_segmentation_mode=None,
            preserve_interword_spaces=False,
            extra_parameters={"tessedit_char_whitelist": "0123456789./", "user_defined_dpi": 300},
        )
        assert adapter.config == "-c tessedit_char_whitelist=0123456789./ -c user_defined_dpi=300"
        adapter.close()

    def test_recognize_calls_pytesseract(self, monkeypatch, normalized):
        seen = {}

        def fake_image_to_string(image, lang=None, config=None, timeout=0):
            seen.update(size=image.size, lang=lang, config=config, timeout=timeout)
            return "CREATININE 0.83 mg/dL\n"

        monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)

        with TesseractAdapter(language="eng") as adapter:
            recognized = adapter.recognize(normalized, timeout=5)

        assert recognized.text == "CREATININE 0.83 mg/dL\n"
        assert recognized.confidence is None
        assert seen == {
            "size": (1000, 500),
            "lang": "eng",
            "config": "--psm 6 -c preserve_interword_spaces=1",
            "timeout": 5,
        }

    def test_no_timeout_means_no_process_limit(self, monkeypatch, normalized):
        seen = {}

        def fake_image_to_string(image, lang=None, config=None, timeout=0):
            seen["timeout"] = timeout
            return ""

        monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)

        with TesseractAdapter() as adapter:
            adapter.recognize(normalized)

        assert seen["timeout"] == 0

    def test_process_timeout_mapped(self, monkeypatch, normalized):
        def hang(image, lang=None, config=None, timeout=0):
            raise RuntimeError("Tesseract process timeout")

        monkeypatch.setattr(pytesseract, "image_to_string", hang)

        with TesseractAdapter() as adapter:
            with pytest.raises(RecognitionTimeoutError) as exc_info:
                adapter.recognize(normalized, timeout=2)
        assert exc_info.value.timeout_seconds == 2

    def test_tesseract_error_wrapped(self, monkeypatch, normalized):
        def fail(image, lang=None, config=None, timeout=0):
            raise pytesseract.TesseractError(1, "Error opening data file")

        monkeypatch.setattr(pytesseract, "image_to_string", fail)

        with TesseractAdapter() as adapter:
            with pytest.raises(RecognitionError, match="Tesseract failed"):
                adapter.recognize(normalized)

    def test_confidence_from_word_data(self, monkeypatch, normalized):
        monkeypatch.setattr(pytesseract, "image_to_string", lambda image, lang=None, config=None, timeout=0: "text")
        monkeypatch.setattr(
            pytesseract,
            "image_to_data",
            lambda image, lang=None, config=None, output_type=None, timeout=0: {"conf": ["-1", "90", "80"]},
        )

        with TesseractAdapter(with_confidence=True) as adapter:
            recognized = adapter.recognize(normalized)

        assert recognized.confidence == pytest.approx(0.85)

    def test_mean_confidence_without_words(self):
        assert _mean_tesseract_confidence(["-1", -1]) is None


class TestCreateAdapter:
    def test_tesseract_from_settings(self):
        settings = Settings(
            ocr_page_segmentation_mode=4,
            ocr_preserve_interword_spaces=False,
            ocr_extra_parameters={"user_defined_dpi": "300"},
        )
        adapter = create_adapter(settings)
        assert isinstance(adapter, TesseractAdapter)
        assert adapter.config == "--psm 4 -c user_defined_dpi=300"
        adapter.close()

    def test_doctr_from_settings(self):
        adapter = create_adapter(Settings(ocr_backend="doctr"))
        assert isinstance(adapter, DocTRAdapter)
        # Model is loaded lazily on first recognition
        assert adapter._model is None
        adapter.close()
