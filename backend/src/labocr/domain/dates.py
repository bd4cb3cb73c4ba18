"""
Report date decomposition.

Splits a `DD/MM/YYYY` capture into its components and resolves the month
name. Day and year are passed through untouched; only the month is
interpreted. An out-of-range month is a data-quality problem in the OCR
capture, so it degrades to NOT_FOUND instead of raising.
"""

import logging
from dataclasses import dataclass

from .fields import NOT_FOUND, FieldValue, Found

logger = logging.getLogger(__name__)


MONTH_NAMES: tuple[str, ...] = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)


@dataclass(frozen=True)
class DateParts:
    """Raw components of a DD/MM/YYYY string, unvalidated."""
    day: str
    month: str
    year: str


def split_date(reported_date: str) -> DateParts | None:
    """
    Split a date string on "/".
    
    Returns:
        DateParts, or None if the string does not have exactly three parts
    """
    parts = reported_date.split("/")
    if len(parts) != 3:
        return None
    day, month, year = parts
    return DateParts(day=day, month=month, year=year)


def month_name(month_number: int) -> FieldValue:
    """Map a 1-based month number to its lower-case name."""
    if not 1 <= month_number <= len(MONTH_NAMES):
        return NOT_FOUND
    return Found(MONTH_NAMES[month_number - 1])


def resolve_month(reported_date: FieldValue) -> FieldValue:
    """
    Derive the month name from an extracted report date.
    
    Examples:
        resolve_month(Found("19/03/2025"))  -> Found("march")
        resolve_month(Found("19/13/2025"))  -> NOT_FOUND
        resolve_month(NOT_FOUND)            -> NOT_FOUND
    """
    if not isinstance(reported_date, Found):
        return NOT_FOUND
    
    parts = split_date(reported_date.value)
    if parts is None:
        logger.warning(f"Malformed report date (expected DD/MM/YYYY): '{reported_date.value}'")
        return NOT_FOUND
    
    try:
        month_number = int(parts.month)
    except ValueError:
        logger.warning(f"Non-numeric month in report date: '{reported_date.value}'")
        return NOT_FOUND
    
    month = month_name(month_number)
    if not month:
        logger.warning(f"Month out of range in report date: '{reported_date.value}'")
    return month
