"""
Services package - OCR integration, pipeline orchestration and evaluation.
"""

from .evaluation import BatchEvaluator, load_ground_truth, resolve_cases
from .ocr import ImageNormalizer, OCRAdapter, ReportFieldExtractor, TesseractAdapter
from .pipeline import ExtractionPipeline, PipelineRun

__all__ = [
    "ExtractionPipeline",
    "PipelineRun",
    "BatchEvaluator",
    "load_ground_truth",
    "resolve_cases",
    "ImageNormalizer",
    "OCRAdapter",
    "ReportFieldExtractor",
    "TesseractAdapter",
]
