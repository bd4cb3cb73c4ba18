"""
Pipeline performance benchmark.

Times normalization and recognition per image over a directory of test
images and reports averages. Failed images are listed but do not stop the run.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .pipeline import ExtractionPipeline

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png"}


@dataclass(frozen=True)
class BenchmarkSample:
    """Timing for one image."""
    image: Path
    size_bytes: int
    time_ms: float = 0
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class BenchmarkReport:
    """Per-image samples plus averages over successful images."""
    samples: list[BenchmarkSample] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BenchmarkSample]:
        return [s for s in self.samples if not s.failed]

    @property
    def avg_time_ms(self) -> float | None:
        ok = self.succeeded
        return sum(s.time_ms for s in ok) / len(ok) if ok else None

    @property
    def avg_size_bytes(self) -> float | None:
        ok = self.succeeded
        return sum(s.size_bytes for s in ok) / len(ok) if ok else None

    def to_dict(self) -> dict:
        return {
            "images": len(self.samples),
            "failed": len(self.samples) - len(self.succeeded),
            "avg_time_ms": round(self.avg_time_ms, 2) if self.avg_time_ms is not None else None,
            "avg_size_kb": round(self.avg_size_bytes / 1024, 2) if self.avg_size_bytes is not None else None,
            "samples": [
                {
                    "image": str(s.image),
                    "size_kb": round(s.size_bytes / 1024, 2),
                    "time_ms": round(s.time_ms, 1),
                    "error": s.error,
                }
                for s in self.samples
            ],
        }


def find_images(directory: Path) -> list[Path]:
    """List JPEG/PNG files in a directory, sorted by name."""
    return sorted(
        p for p in Path(directory).iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
    )


def run_benchmark(pipeline: ExtractionPipeline, image_paths: list[Path]) -> BenchmarkReport:
    """
    Time the pipeline on each image.

    Args:
        pipeline: Configured extraction pipeline
        image_paths: Images to process

    Returns:
        BenchmarkReport with one sample per image
    """
    report = BenchmarkReport()

    for image_path in image_paths:
        size_bytes = image_path.stat().st_size if image_path.exists() else 0
        try:
            run = pipeline.process(image_path)
        except Exception as e:
            logger.error(f"Failed on: {image_path}: {e}")
            report.samples.append(BenchmarkSample(image=image_path, size_bytes=size_bytes, error=str(e)))
            continue

        time_ms = run.timings_ms["normalize"] + run.timings_ms["recognize"]
        logger.info(f"Processed: {image_path} ({time_ms:.0f}ms, {size_bytes / 1024:.2f}KB)")
        report.samples.append(BenchmarkSample(image=image_path, size_bytes=size_bytes, time_ms=time_ms))

    return report
