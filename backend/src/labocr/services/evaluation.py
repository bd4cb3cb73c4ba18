"""
Batch accuracy evaluation against ground truth.

Runs the extraction pipeline over (image, ground truth) pairs, scores each
extraction and aggregates means. One image failing (bad file, OCR error,
timeout) is recorded as an excluded case and never stops the batch.

Design Decisions:
- Each worker borrows its own pipeline (and so its own OCR adapter) from a
  fixed pool; adapters are never shared between concurrent calls
- Totals are merged with sum/count, so means do not depend on completion order
- Ground truth is validated with pydantic at load time
"""

import csv
import json
import logging
import queue
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from labocr.domain.metrics import evaluate_extraction
from labocr.domain.models import BatchReport, CaseResult, GroundTruthRecord
from labocr.errors import GroundTruthError

from .ocr.image import ImageSource
from .pipeline import ExtractionPipeline

logger = logging.getLogger(__name__)


# =============================================================================
# Ground Truth Loading
# =============================================================================

class GroundTruthEntry(BaseModel):
    """One row of a ground truth file."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    image: str = Field(min_length=1, validation_alias=AliasChoices("image", "imageId"))
    reported_date: str = Field(alias="reportedDate", pattern=r"^\d{2}/\d{2}/\d{4}$")
    serum_creatinine: str = Field(alias="serumCreatinine", pattern=r"^\d+(?:\.\d+)?$")

    def to_record(self) -> GroundTruthRecord:
        return GroundTruthRecord(
            image_id=self.image,
            reported_date=self.reported_date,
            serum_creatinine=self.serum_creatinine,
        )


_entries_adapter = TypeAdapter(list[GroundTruthEntry])


def load_ground_truth(path: Path) -> list[GroundTruthRecord]:
    """
    Load a ground truth file.

    JSON files hold a list of {"image", "reportedDate", "serumCreatinine"}
    objects; CSV files use the same column names.

    Raises:
        GroundTruthError: If the file is missing, empty or has invalid rows
    """
    path = Path(path)
    logger.info(f"Loading ground truth: {path}")

    try:
        if path.suffix.lower() == ".csv":
            with open(path, newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))
        else:
            with open(path, encoding="utf-8") as f:
                rows = json.load(f)
    except (OSError, json.JSONDecodeError, csv.Error) as e:
        raise GroundTruthError(f"Cannot read ground truth {path}: {e}") from e

    try:
        entries = _entries_adapter.validate_python(rows)
    except ValidationError as e:
        raise GroundTruthError(f"Invalid ground truth in {path}: {e}") from e

    if not entries:
        raise GroundTruthError(f"Ground truth file is empty: {path}")

    records = [entry.to_record() for entry in entries]
    logger.info(f"Loaded {len(records)} ground truth records")
    return records


def resolve_cases(
    records: Sequence[GroundTruthRecord],
    images_dir: Path | None = None,
) -> list[tuple[Path, GroundTruthRecord]]:
    """
    Pair each record with the image path it refers to.

    Relative image references are resolved against `images_dir` when given.
    """
    cases = []
    for record in records:
        image_path = Path(record.image_id)
        if images_dir is not None and not image_path.is_absolute():
            image_path = Path(images_dir) / image_path
        cases.append((image_path, record))
    return cases


# =============================================================================
# Batch Evaluation
# =============================================================================

class BatchEvaluator:
    """
    Evaluates extraction accuracy over a batch of test images.

    Example:
        evaluator = BatchEvaluator(lambda: ExtractionPipeline(TesseractAdapter()), workers=2)
        report = evaluator.evaluate(resolve_cases(load_ground_truth(path)))
        print(report.mean, report.excluded_count)
        evaluator.close()
    """

    def __init__(
        self,
        pipeline_factory: Callable[[], ExtractionPipeline],
        workers: int = 1,
    ) -> None:
        """
        Initialize evaluator.

        Args:
            pipeline_factory: Builds one independent pipeline per worker
            workers: Number of images processed concurrently
        """
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        self.workers = workers
        self._pipelines = [pipeline_factory() for _ in range(workers)]

    def evaluate_case(
        self,
        pipeline: ExtractionPipeline,
        index: int,
        image: ImageSource,
        ground_truth: GroundTruthRecord,
    ) -> CaseResult:
        """
        Run one image through the pipeline and score it.

        Pipeline failures are captured in the returned CaseResult.

        Raises:
            GroundTruthError: If the ground truth record itself is unusable
        """
        image_id = ground_truth.image_id
        try:
            result = pipeline.run(image)
        except Exception as e:
            logger.exception(f"Error processing image {image_id}")
            return CaseResult(
                index=index,
                image_id=image_id,
                ground_truth=ground_truth,
                error=str(e),
                error_type=type(e).__name__,
            )

        metrics = evaluate_extraction(result, ground_truth)
        logger.info(
            f"{image_id}: word={metrics.word_accuracy:.0f}% "
            f"char={metrics.char_accuracy:.0f}% lev={metrics.levenshtein_distance}"
        )
        return CaseResult(
            index=index,
            image_id=image_id,
            ground_truth=ground_truth,
            result=result,
            metrics=metrics,
        )

    def evaluate(
        self,
        cases: Iterable[tuple[ImageSource, GroundTruthRecord]],
    ) -> BatchReport:
        """
        Evaluate every (image, ground truth) pair.

        Returns:
            BatchReport with per-image detail (in input order), means over
            successful images and the excluded count
        """
        indexed = list(enumerate(cases))
        report = BatchReport()

        if self.workers == 1:
            pipeline = self._pipelines[0]
            for index, (image, truth) in indexed:
                report.record(self.evaluate_case(pipeline, index, image, truth))
        else:
            pool: queue.Queue[ExtractionPipeline] = queue.Queue()
            for pipeline in self._pipelines:
                pool.put(pipeline)

            def run(item: tuple[int, tuple[ImageSource, GroundTruthRecord]]) -> CaseResult:
                index, (image, truth) = item
                pipeline = pool.get()
                try:
                    return self.evaluate_case(pipeline, index, image, truth)
                finally:
                    pool.put(pipeline)

            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="evaluate") as executor:
                for case in executor.map(run, indexed):
                    report.record(case)

        mean = report.mean
        logger.info(
            f"Batch complete: {report.evaluated_count} evaluated, "
            f"{report.excluded_count} excluded"
            + (f", mean word={mean.word_accuracy:.1f}% char={mean.char_accuracy:.1f}%" if mean else "")
        )
        return report

    def close(self) -> None:
        """Close the OCR adapters of all pooled pipelines."""
        for pipeline in self._pipelines:
            pipeline.ocr.close()

    def __enter__(self) -> "BatchEvaluator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
