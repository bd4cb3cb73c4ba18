"""
Accuracy metrics for scoring extracted fields against ground truth.

Pure functions, no I/O:
- word_accuracy: positional whole-word comparison (used for the report date)
- char_accuracy: positional character comparison (used for creatinine)
- levenshtein_distance: edit distance over code points

Note on word_accuracy for dates: a date is a single whitespace-delimited
token, so any difference inside it scores 0, e.g. "04/07/2018" against
"04/06/2018". This is kept as-is so accuracy baselines stay comparable
across runs.
"""

from labocr.errors import GroundTruthError

from .fields import FieldValue
from .models import ExtractionResult, GroundTruthRecord, MetricsReport


def word_accuracy(extracted: str, ground_truth: str) -> float:
    """
    Percentage of ground-truth words matched at the same position.

    Comparison is case-insensitive. Positions past the end of either
    sequence count as mismatches.

    Raises:
        GroundTruthError: If ground truth contains no words
    """
    truth_words = ground_truth.split()
    if not truth_words:
        raise GroundTruthError("word_accuracy requires a ground truth with at least one word")

    extracted_words = extracted.split()
    correct = sum(
        1
        for ours, theirs in zip(extracted_words, truth_words)
        if ours.lower() == theirs.lower()
    )
    return correct / len(truth_words) * 100


def char_accuracy(extracted: str, ground_truth: str) -> float:
    """
    Percentage of ground-truth characters matched at the same index.

    Case-sensitive. Only indexes present in both strings can match; an
    empty ground truth scores 0.
    """
    if not ground_truth:
        return 0.0

    correct = sum(1 for ours, theirs in zip(extracted, ground_truth) if ours == theirs)
    return correct / len(ground_truth) * 100


def levenshtein_distance(source: str, target: str) -> int:
    """
    Minimum single-character insertions, deletions and substitutions
    needed to turn `source` into `target`.
    """
    if source == target:
        return 0
    if not source:
        return len(target)
    if not target:
        return len(source)

    # Two-row DP; keep the shorter string on the inner loop
    if len(source) < len(target):
        source, target = target, source

    previous = list(range(len(target) + 1))
    for i, source_char in enumerate(source, start=1):
        current = [i]
        for j, target_char in enumerate(target, start=1):
            cost = 0 if source_char == target_char else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current

    return previous[-1]


def _as_text(value: FieldValue) -> str:
    # NOT_FOUND compares as its literal label
    return str(value)


def evaluate_extraction(
    result: ExtractionResult,
    ground_truth: GroundTruthRecord,
) -> MetricsReport:
    """
    Score one extraction against its ground truth.

    The report date is scored with word accuracy; serum creatinine with
    character accuracy and edit distance.

    Raises:
        GroundTruthError: If the ground-truth date is empty
    """
    extracted_date = _as_text(result.reported_date)
    extracted_creatinine = _as_text(result.serum_creatinine)

    return MetricsReport(
        word_accuracy=word_accuracy(extracted_date, ground_truth.reported_date),
        char_accuracy=char_accuracy(extracted_creatinine, ground_truth.serum_creatinine),
        levenshtein_distance=levenshtein_distance(
            extracted_creatinine, ground_truth.serum_creatinine
        ),
    )
