"""
Ordered fallback field extraction for lab report OCR text.

Each target field has a list of regex patterns ordered from strictest to
loosest. Patterns are tried in order against the full text and the first
one that matches wins; later patterns are never attempted. There is no
scoring or ranking, so the list order alone decides between competing
plausible matches.

The lists absorb format drift across lab templates and common OCR damage:
- "Reported Date" read as "Reported Dete" / "Reported Dat"
- ":" read as "©"
- unit suffix ("mg/dL") and reference range after the value
"""

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from labocr.domain.fields import NOT_FOUND, FieldValue, Found
from labocr.domain.models import ExtractionResult

logger = logging.getLogger(__name__)


# Creatinine value: digits with an optional single decimal part
_DECIMAL = r"(\d+(?:\.\d+)?)"
_DATE = r"(\d{2}/\d{2}/\d{4})"


@dataclass(frozen=True)
class ExtractionPattern:
    """
    One candidate matcher for a field.

    Attributes:
        field_name: Field this pattern extracts ("reported_date", ...)
        priority: Position in the field's list (0 is tried first)
        expression: Compiled regex, case-insensitive
        group: Capture group holding the value
        description: Example of the text layout it targets
    """
    field_name: str
    priority: int
    expression: re.Pattern[str]
    group: int = 1
    description: str = ""

    def search(self, text: str) -> str | None:
        """Return the captured value, or None if the pattern does not match."""
        match = self.expression.search(text)
        if match is None:
            return None
        return match.group(self.group)


def build_patterns(
    field_name: str,
    specs: Sequence[tuple[str, str] | tuple[str, str, int]],
) -> tuple[ExtractionPattern, ...]:
    """
    Compile (regex, description[, group]) entries into an ordered,
    immutable pattern list.

    Priority follows list position. The capture group defaults to 1.
    Matching is case-insensitive and `\\d` only matches ASCII digits.
    """
    patterns = []
    for priority, (regex, description, *group) in enumerate(specs):
        patterns.append(ExtractionPattern(
            field_name=field_name,
            priority=priority,
            expression=re.compile(regex, re.IGNORECASE | re.ASCII),
            group=group[0] if group else 1,
            description=description,
        ))
    return tuple(patterns)


# =============================================================================
# Pattern Lists (order is significant)
# =============================================================================

DATE_PATTERNS = build_patterns("reported_date", [
    (rf"Reported\s+D[ae]te?[:\s]*{_DATE}", "Reported Date: 11/03/2025"),
    (rf"REPORTED\s*:\s*{_DATE}", "REPORTED : 11/03/2025"),
    (rf"REPORTED\s*[©:]?\s*{_DATE}", "REPORTED © 11/03/2025"),
])

CREATININE_PATTERNS = build_patterns("serum_creatinine", [
    (rf"Creatinine-\s*Serum\s+{_DECIMAL}", "Creatinine- Serum 0.83"),
    (rf"CREATININE\s+{_DECIMAL}\s+(?:[0-9.-]+\s+mg/dL)?", "CREATININE 0.83 0.6-1.1 mg/dL"),
    (rf"CREATININE-(?:BLOOD)?\s*\(?CREATININE\)?\s*{_DECIMAL}\s*mg/dL", "CREATININE-BLOOD (CREATININE) 0.83 mg/dL"),
    (rf"CREATININE\s+{_DECIMAL}\s+(?:[0-9.-]+\s+)?mg/dL", "CREATININE 0.83 0.6-1.1 mg/dL"),
])


def extract_first_match(
    text: str,
    patterns: Sequence[ExtractionPattern],
) -> FieldValue:
    """
    Apply patterns in order and return the first capture.

    Args:
        text: Raw OCR text
        patterns: Ordered pattern list for a single field

    Returns:
        Found(value, priority) for the first matching pattern, else NOT_FOUND
    """
    for pattern in patterns:
        value = pattern.search(text)
        if value is not None:
            logger.debug(
                f"{pattern.field_name}: pattern #{pattern.priority} matched '{value}'"
            )
            return Found(value, priority=pattern.priority)
        logger.debug(f"{pattern.field_name}: pattern #{pattern.priority} no match")

    return NOT_FOUND


class ReportFieldExtractor:
    """
    Extracts report date and serum creatinine from OCR text.

    The two fields are extracted independently; a miss on one never
    blocks the other.

    Example:
        extractor = ReportFieldExtractor()
        result = extractor.extract("Reported Date: 19/03/2025 ... CREATININE 1.42 mg/dL")
        # result.reported_date == Found("19/03/2025", priority=0)
        # result.month == Found("march")
    """

    def __init__(
        self,
        date_patterns: Sequence[ExtractionPattern] = DATE_PATTERNS,
        creatinine_patterns: Sequence[ExtractionPattern] = CREATININE_PATTERNS,
    ) -> None:
        """
        Initialize extractor.

        Args:
            date_patterns: Ordered report date patterns
            creatinine_patterns: Ordered serum creatinine patterns
        """
        self.date_patterns = tuple(date_patterns)
        self.creatinine_patterns = tuple(creatinine_patterns)

    def extract(self, text: str) -> ExtractionResult:
        """Extract both fields from raw OCR text."""
        reported_date = extract_first_match(text, self.date_patterns)
        serum_creatinine = extract_first_match(text, self.creatinine_patterns)

        result = ExtractionResult(
            reported_date=reported_date,
            serum_creatinine=serum_creatinine,
        )

        if not reported_date:
            logger.warning("Report date not found in OCR text")
        if not serum_creatinine:
            logger.warning("Serum creatinine not found in OCR text")

        logger.info(
            f"Extracted: date={result.reported_date}, month={result.month}, "
            f"creatinine={result.serum_creatinine}"
        )
        return result
