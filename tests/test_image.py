"""Tests for image normalization."""

import io

import pytest
from PIL import Image

from labocr.errors import ImageDecodeError
from labocr.services.ocr.image import ImageNormalizer, load_image

from conftest import make_image_bytes


@pytest.fixture
def normalizer() -> ImageNormalizer:
    return ImageNormalizer(target_width=1000)


class TestImageNormalizer:
    def test_upscales_to_target_width(self, normalizer):
        normalized = normalizer.normalize(make_image_bytes((500, 250)))
        assert normalized.size == (1000, 500)
        assert normalized.original_size == (500, 250)

    def test_downscales_preserving_aspect_ratio(self, normalizer):
        normalized = normalizer.normalize(make_image_bytes((2000, 3000), fmt="JPEG"))
        assert normalized.size == (1000, 1500)

    def test_already_at_target_width(self, normalizer):
        normalized = normalizer.normalize(make_image_bytes((1000, 400)))
        assert normalized.size == (1000, 400)

    def test_custom_width(self):
        normalized = ImageNormalizer(target_width=800).normalize(make_image_bytes((400, 300)))
        assert normalized.size == (800, 600)

    def test_path_source(self, normalizer, tmp_path):
        path = tmp_path / "report.png"
        path.write_bytes(make_image_bytes((250, 100)))
        assert normalizer.normalize(path).size == (1000, 400)
        assert normalizer.normalize(str(path)).size == (1000, 400)

    def test_pillow_source(self, normalizer):
        image = Image.new("L", (100, 100), 128)
        normalized = normalizer.normalize(image)
        assert normalized.size == (1000, 1000)
        assert normalized.image.mode == "L"

    def test_rgba_converted_to_rgb(self, normalizer):
        normalized = normalizer.normalize(make_image_bytes((100, 50), mode="RGBA"))
        assert normalized.image.mode == "RGB"

    def test_exif_orientation_applied(self, normalizer):
        image = Image.new("RGB", (200, 100), (255, 255, 255))
        exif = image.getexif()
        exif[0x0112] = 6  # rotated 90 degrees clockwise
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", exif=exif.tobytes())

        normalized = normalizer.normalize(buffer.getvalue())
        assert normalized.size == (1000, 2000)

    def test_png_bytes_round_trip(self, normalizer):
        normalized = normalizer.normalize(make_image_bytes((100, 50)))
        decoded = Image.open(io.BytesIO(normalized.to_png_bytes()))
        assert decoded.format == "PNG"
        assert decoded.size == (1000, 500)

    def test_invalid_width(self):
        with pytest.raises(ValueError):
            ImageNormalizer(target_width=0)


class TestDecodeErrors:
    def test_garbage_bytes(self, normalizer):
        with pytest.raises(ImageDecodeError):
            normalizer.normalize(b"definitely not an image")

    def test_truncated_image(self, normalizer):
        data = make_image_bytes((300, 300), fmt="JPEG")
        with pytest.raises(ImageDecodeError):
            normalizer.normalize(data[: len(data) // 3])

    def test_decompression_bomb(self, normalizer, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(ImageDecodeError):
            normalizer.normalize(make_image_bytes((500, 250)))

    def test_missing_file(self, normalizer, tmp_path):
        with pytest.raises(ImageDecodeError):
            normalizer.normalize(tmp_path / "missing.jpg")

    def test_load_image_detaches_file(self, tmp_path):
        path = tmp_path / "report.png"
        path.write_bytes(make_image_bytes((10, 10)))
        image = load_image(path)
        path.unlink()
        assert image.size == (10, 10)
