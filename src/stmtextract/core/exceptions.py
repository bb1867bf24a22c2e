"""
Custom exceptions for the extraction engine.

All extraction-specific exceptions inherit from ExtractionError for easy catching.
Every exception carries a machine-readable ``code`` so that callers can tell
"the document did not have the expected shape" apart from "a value was blank"
or "the currency arithmetic did not add up".
"""

from typing import List, Optional


class ExtractionError(Exception):
    """Base exception for all extraction errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class PatternError(ExtractionError):
    """Raised when a line pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str, code: str = "PATTERN_ERROR"):
        super().__init__(f"Invalid pattern {pattern!r}: {reason}", code)
        self.pattern = pattern
        self.reason = reason


class MissingSectionError(ExtractionError):
    """
    Raised when a required section does not match the block text.

    Attributes:
        attributes: Attributes declared by the section (or group members)
        line_index: Line index at which the section search started
        unbound: Declared attributes that were not bound after matching
    """

    def __init__(
        self,
        message: str,
        attributes: Optional[List[str]] = None,
        line_index: Optional[int] = None,
        unbound: Optional[List[str]] = None,
        code: str = "MISSING_SECTION",
    ):
        super().__init__(message, code)
        self.attributes = list(attributes or [])
        self.line_index = line_index
        self.unbound = list(unbound or [])


class MissingFieldError(ExtractionError):
    """Raised at finalization when a structurally required field is absent."""

    def __init__(self, field: str, message: str = None, code: str = "MISSING_FIELD"):
        super().__init__(message or f"Missing required field: {field}", code)
        self.field = field


class CurrencyArithmeticError(ExtractionError, ArithmeticError):
    """
    Raised when money arithmetic is inconsistent.

    This includes:
    - Conversion with a zero or negative exchange rate
    - Adding or subtracting amounts of different currencies
    - Units whose amount does not match forex amount times exchange rate
    - Units in a currency other than the transaction currency
    """

    def __init__(
        self,
        message: str,
        expected: str = None,
        actual: str = None,
        code: str = "INCONSISTENT_CURRENCY",
    ):
        super().__init__(message, code)
        self.expected = expected
        self.actual = actual


class InvalidValueError(ExtractionError, ValueError):
    """Raised when captured text cannot be converted to a typed value."""

    def __init__(self, value: str, expected: str, code: str = "INVALID_VALUE"):
        super().__init__(f"Cannot parse {value!r} as {expected}", code)
        self.value = value
        self.expected = expected


class DocumentLoadError(ExtractionError):
    """Raised when a file cannot be turned into a document."""

    def __init__(self, path: str, reason: str, code: str = "LOAD_ERROR"):
        super().__init__(f"Cannot load {path}: {reason}", code)
        self.path = path
        self.reason = reason
