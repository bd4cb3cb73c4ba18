"""
Tagged field values for extraction output.

A field is either `Found(value)` or the `NOT_FOUND` sentinel. The sentinel
is falsy and is not a string, so it cannot leak into arithmetic or date
parsing by accident. It renders as the literal "Not found" where a string
is required (HTTP responses, metric comparisons).
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

NOT_FOUND_LABEL = "Not found"

T = TypeVar("T")


@dataclass(frozen=True)
class Found(Generic[T]):
    """
    A field value that was located in the OCR text.
    
    Attributes:
        value: The captured value
        priority: Position of the pattern that produced it (0 = strictest),
            or None when the value was derived rather than matched
    """
    value: T
    priority: int | None = None
    
    @property
    def is_found(self) -> bool:
        return True
    
    def __str__(self) -> str:
        return str(self.value)


class NotFound:
    """Singleton marker for a field that could not be extracted."""
    
    _instance: "NotFound | None" = None
    
    def __new__(cls) -> "NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance
    
    @property
    def is_found(self) -> bool:
        return False
    
    def __bool__(self) -> bool:
        return False
    
    def __repr__(self) -> str:
        return "NOT_FOUND"
    
    def __str__(self) -> str:
        return NOT_FOUND_LABEL
    
    def __reduce__(self):
        return (NotFound, ())


NOT_FOUND = NotFound()

FieldValue = Found[str] | NotFound


def value_or(field: Found[Any] | NotFound, default: Any = None) -> Any:
    """Return the wrapped value, or `default` for NOT_FOUND."""
    if isinstance(field, Found):
        return field.value
    return default
