"""
Image normalization ahead of OCR.

Photographed lab reports arrive at arbitrary resolutions. Scaling every
image to the same width before recognition keeps glyph sizes in the range
the OCR engine handles well and makes results consistent across phones.

Design Decisions:
- Width is fixed, height follows the aspect ratio (images are upscaled too)
- EXIF orientation is applied first so phone photos are upright
- Output stays an in-memory Pillow image; PNG bytes on demand (lossless)
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from labocr.errors import ImageDecodeError

logger = logging.getLogger(__name__)

DEFAULT_TARGET_WIDTH = 1000

# Modes the OCR backends accept directly; everything else is converted to RGB
_PASSTHROUGH_MODES = {"L", "RGB"}

ImageSource = bytes | str | Path | Image.Image


@dataclass(frozen=True)
class NormalizedImage:
    """An image resized to the canonical OCR width."""
    image: Image.Image
    original_size: tuple[int, int]

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def to_png_bytes(self) -> bytes:
        """Encode as PNG for engines that take encoded bytes."""
        buffer = io.BytesIO()
        self.image.save(buffer, format="PNG")
        return buffer.getvalue()


def load_image(source: ImageSource) -> Image.Image:
    """
    Decode an image from bytes, a file path, or an existing Pillow image.

    The returned image is fully loaded and detached from any open file.

    Raises:
        ImageDecodeError: If the source cannot be read or decoded
    """
    if isinstance(source, Image.Image):
        return source

    fp = io.BytesIO(source) if isinstance(source, bytes) else Path(source)
    label = f"{len(source)} bytes" if isinstance(source, bytes) else str(source)

    try:
        with Image.open(fp) as opened:
            opened.load()
            return opened.copy()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image ({label}): {e}") from e


class ImageNormalizer:
    """
    Resizes images to a fixed width, preserving aspect ratio.

    Example:
        normalizer = ImageNormalizer(target_width=1000)
        normalized = normalizer.normalize(Path("report.jpg"))
        normalized.size  # (1000, <proportional height>)
    """

    def __init__(
        self,
        target_width: int = DEFAULT_TARGET_WIDTH,
        auto_orient: bool = True,
    ) -> None:
        """
        Initialize normalizer.

        Args:
            target_width: Output width in pixels
            auto_orient: Apply EXIF orientation before resizing
        """
        if target_width <= 0:
            raise ValueError(f"target_width must be positive, got {target_width}")
        self.target_width = target_width
        self.auto_orient = auto_orient

    def normalize(self, source: ImageSource) -> NormalizedImage:
        """
        Decode and resize an image to the target width.

        Raises:
            ImageDecodeError: If the source is not a decodable raster image
        """
        image = load_image(source)
        original_size = image.size

        if self.auto_orient:
            image = ImageOps.exif_transpose(image)

        if image.mode not in _PASSTHROUGH_MODES:
            image = image.convert("RGB")

        width, height = image.size
        if width == 0 or height == 0:
            raise ImageDecodeError(f"Image has no pixels: {width}x{height}")

        new_height = max(1, round(height * self.target_width / width))
        if (width, height) != (self.target_width, new_height):
            image = image.resize((self.target_width, new_height), Image.Resampling.LANCZOS)

        logger.debug(
            f"Image normalized: {original_size[0]}x{original_size[1]} -> "
            f"{image.size[0]}x{image.size[1]}"
        )

        return NormalizedImage(image=image, original_size=original_size)
