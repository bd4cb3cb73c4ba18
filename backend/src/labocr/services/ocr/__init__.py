"""
OCR subpackage - Image normalization, text recognition and field extraction.
"""

from .engine import DocTRAdapter, OCRAdapter, RecognizedText, TesseractAdapter, create_adapter
from .extractor import CREATININE_PATTERNS, DATE_PATTERNS, ExtractionPattern, ReportFieldExtractor
from .image import ImageNormalizer, NormalizedImage

__all__ = [
    "OCRAdapter",
    "TesseractAdapter",
    "DocTRAdapter",
    "RecognizedText",
    "create_adapter",
    "ImageNormalizer",
    "NormalizedImage",
    "ReportFieldExtractor",
    "ExtractionPattern",
    "DATE_PATTERNS",
    "CREATININE_PATTERNS",
]
