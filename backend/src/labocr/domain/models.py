"""
Domain models for lab report extraction and evaluation.

These models represent the extraction output for one image, the ground
truth it is scored against, and the metrics produced by the evaluator.

Design Decisions:
- Frozen dataclasses: an ExtractionResult is produced once and never mutated
- Month is derived from the report date at construction, never passed in,
  so the two fields cannot disagree
- Metrics are accumulated as (sum, count) totals so batch means do not
  depend on the order in which images finish
"""

import math
from dataclasses import dataclass, field
from typing import Any

from .dates import resolve_month
from .fields import FieldValue, Found


@dataclass(frozen=True)
class ExtractionResult:
    """
    Fields extracted from one lab report image.

    Each field is either `Found(value)` or NOT_FOUND. `month` is computed
    from `reported_date` and cannot be supplied by the caller.
    """
    reported_date: FieldValue
    serum_creatinine: FieldValue
    month: FieldValue = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "month", resolve_month(self.reported_date))

    @property
    def all_found(self) -> bool:
        """True if both extracted fields were located."""
        return bool(self.reported_date) and bool(self.serum_creatinine)

    def to_dict(self) -> dict[str, str]:
        """
        Convert to the JSON shape returned by the upload endpoint.

        Missing values render as "Not found".
        """
        return {
            "reportedDate": str(self.reported_date),
            "month": str(self.month),
            "serumCreatinine": str(self.serum_creatinine),
        }

    def matched_priorities(self) -> dict[str, int | None]:
        """Priority of the pattern that fired for each field (None if missed)."""
        return {
            "reportedDate": self.reported_date.priority if isinstance(self.reported_date, Found) else None,
            "serumCreatinine": self.serum_creatinine.priority if isinstance(self.serum_creatinine, Found) else None,
        }


@dataclass(frozen=True)
class GroundTruthRecord:
    """
    Expected extraction for a test image.

    Used only by the evaluator, never by the extraction pipeline.
    """
    image_id: str
    reported_date: str  # DD/MM/YYYY
    serum_creatinine: str  # decimal string, e.g. "0.83"


@dataclass(frozen=True)
class MetricsReport:
    """
    Accuracy of one extraction against its ground truth.

    - word_accuracy: report date, whole-token positional comparison (0-100)
    - char_accuracy: serum creatinine, index-aligned characters (0-100)
    - levenshtein_distance: serum creatinine edit distance
    """
    word_accuracy: float
    char_accuracy: float
    levenshtein_distance: int

    def __post_init__(self) -> None:
        """Validate metric ranges."""
        for name in ("word_accuracy", "char_accuracy"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite non-negative number, got {value}")
        if self.levenshtein_distance < 0:
            raise ValueError(f"levenshtein_distance must be >= 0, got {self.levenshtein_distance}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "wordAccuracy": round(self.word_accuracy, 2),
            "charAccuracy": round(self.char_accuracy, 2),
            "levenshteinDistance": self.levenshtein_distance,
        }


@dataclass(frozen=True)
class MeanMetrics:
    """Arithmetic means of MetricsReport fields across a batch."""
    word_accuracy: float
    char_accuracy: float
    levenshtein_distance: float

    def to_dict(self) -> dict[str, float]:
        return {
            "wordAccuracy": round(self.word_accuracy, 2),
            "charAccuracy": round(self.char_accuracy, 2),
            "levenshteinDistance": round(self.levenshtein_distance, 2),
        }


@dataclass(frozen=True)
class MetricsTotals:
    """
    Running sums of per-image metrics.

    `add` and `merge` return new totals; merging is associative and
    commutative, so partial totals from parallel workers combine in any order.
    """
    word_accuracy: float = 0.0
    char_accuracy: float = 0.0
    levenshtein_distance: int = 0
    count: int = 0

    def add(self, report: MetricsReport) -> "MetricsTotals":
        """Return totals including one more report."""
        return MetricsTotals(
            word_accuracy=self.word_accuracy + report.word_accuracy,
            char_accuracy=self.char_accuracy + report.char_accuracy,
            levenshtein_distance=self.levenshtein_distance + report.levenshtein_distance,
            count=self.count + 1,
        )

    def merge(self, other: "MetricsTotals") -> "MetricsTotals":
        """Combine two partial totals."""
        return MetricsTotals(
            word_accuracy=self.word_accuracy + other.word_accuracy,
            char_accuracy=self.char_accuracy + other.char_accuracy,
            levenshtein_distance=self.levenshtein_distance + other.levenshtein_distance,
            count=self.count + other.count,
        )

    def mean(self) -> MeanMetrics | None:
        """Means over all added reports, or None if nothing was added."""
        if self.count == 0:
            return None
        return MeanMetrics(
            word_accuracy=self.word_accuracy / self.count,
            char_accuracy=self.char_accuracy / self.count,
            levenshtein_distance=self.levenshtein_distance / self.count,
        )


@dataclass(frozen=True)
class CaseResult:
    """
    Outcome of evaluating one (image, ground truth) pair.

    A failed case carries the error and no metrics; it is excluded from
    the batch means.
    """
    index: int
    image_id: str
    ground_truth: GroundTruthRecord
    result: ExtractionResult | None = None
    metrics: MetricsReport | None = None
    error: str | None = None
    error_type: str | None = None

    @property
    def failed(self) -> bool:
        return self.metrics is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "image": self.image_id,
            "expected": {
                "reportedDate": self.ground_truth.reported_date,
                "serumCreatinine": self.ground_truth.serum_creatinine,
            },
            "extracted": self.result.to_dict() if self.result else None,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "error": self.error,
            "errorType": self.error_type,
        }


@dataclass
class BatchReport:
    """
    Aggregate evaluation over a batch of test images.

    Mutable because cases are appended as the batch progresses.
    """
    cases: list[CaseResult] = field(default_factory=list)
    totals: MetricsTotals = field(default_factory=MetricsTotals)

    def record(self, case: CaseResult) -> None:
        """Add a finished case and fold its metrics into the totals."""
        self.cases.append(case)
        if case.metrics is not None:
            self.totals = self.totals.add(case.metrics)

    @property
    def evaluated_count(self) -> int:
        return self.totals.count

    @property
    def excluded_count(self) -> int:
        return sum(1 for case in self.cases if case.failed)

    @property
    def failures(self) -> list[CaseResult]:
        return [case for case in self.cases if case.failed]

    @property
    def mean(self) -> MeanMetrics | None:
        return self.totals.mean()

    def to_dict(self) -> dict[str, Any]:
        mean = self.mean
        return {
            "total": len(self.cases),
            "evaluated": self.evaluated_count,
            "excluded": self.excluded_count,
            "mean": mean.to_dict() if mean else None,
            "cases": [case.to_dict() for case in sorted(self.cases, key=lambda c: c.index)],
        }
