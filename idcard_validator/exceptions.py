"""
Custom exception hierarchy for identity validation.

Each exception type maps to a specific category of validation failure.
They are raised where a step cannot continue and converted into a reported
outcome (result model or finding) at the component boundary.
"""

from __future__ import annotations


class IdentityValidationError(Exception):
    """Base exception for all identity validation failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class MrzFormatError(IdentityValidationError):
    """Too few canonical lines to decode a TD1 machine-readable zone."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("MRZ_FORMAT_MISMATCH", message, details)


class BirthDateFormatError(IdentityValidationError):
    """The date literal is not in DD.MM.YYYY form."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("DATE_FORMAT_INVALID", message, details)


class BirthYearTooOldError(IdentityValidationError):
    """The birth year is before the earliest accepted year."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("BIRTH_YEAR_TOO_OLD", message, details)


class CalendarDateError(IdentityValidationError):
    """Day/month/year do not form a real calendar date (e.g. 31 February)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("DATE_CALENDAR_INVALID", message, details)


class FutureDateError(IdentityValidationError):
    """A birth date cannot lie after the evaluation date."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("DATE_IN_FUTURE", message, details)


class DuplicateRecordError(IdentityValidationError):
    """A record with the same national ID is already in the roster."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("DUPLICATE_RECORD", message, details)


class ExtractionError(IdentityValidationError):
    """Data extraction (LLM or regex) failed completely."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("EXTRACTION_FAILED", message, details)
