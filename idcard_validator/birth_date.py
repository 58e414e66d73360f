"""
Birth date validation and age classification.

Input is a DD.MM.YYYY literal. Each rejection has its own code because each
warrants different operator guidance:

    DATE_FORMAT_INVALID    not DD.MM.YYYY
    BIRTH_YEAR_TOO_OLD     year before 1920
    DATE_CALENDAR_INVALID  e.g. 31.02.2000 or 29.02.2001
    DATE_IN_FUTURE         after the evaluation date
"""

from __future__ import annotations

import re
from datetime import date

from .exceptions import (
    BirthDateFormatError,
    BirthYearTooOldError,
    CalendarDateError,
    FutureDateError,
    IdentityValidationError,
)
from .models import BirthDateResult

# ─── Constants ───────────────────────────────────────────────────────

MIN_BIRTH_YEAR = 1920
ADULT_AGE = 18

_DOTTED_DATE = re.compile(r"([0-9]{2})\.([0-9]{2})\.([0-9]{4})")


def parse_birth_date(value: str, today: date) -> date:
    """Parse and check a DD.MM.YYYY literal.

    Raises:
        BirthDateFormatError, BirthYearTooOldError, CalendarDateError,
        FutureDateError: see module docstring.
    """
    match = _DOTTED_DATE.fullmatch(value) if isinstance(value, str) else None
    if not match:
        raise BirthDateFormatError(
            "Date must be in DD.MM.YYYY format.", details={"value": value}
        )

    day, month, year = (int(part) for part in match.groups())

    if year < MIN_BIRTH_YEAR:
        raise BirthYearTooOldError(
            f"Birth year cannot be earlier than {MIN_BIRTH_YEAR}.",
            details={"year": year},
        )

    try:
        birth_date = date(year, month, day)
    except ValueError:
        raise CalendarDateError(
            f"{value} is not a valid calendar date.",
            details={"day": day, "month": month, "year": year},
        ) from None

    if birth_date > today:
        raise FutureDateError(
            "Birth date cannot be in the future.",
            details={"birth_date": str(birth_date), "today": str(today)},
        )

    return birth_date


def years_before(reference: date, years: int) -> date:
    """``reference`` shifted back by whole years; 29 February rolls to 1 March."""
    try:
        return reference.replace(year=reference.year - years)
    except ValueError:
        return date(reference.year - years, 3, 1)


def is_minor(birth_date: date, today: date) -> bool:
    """True until the subject's 18th birthday (on the birthday they are adult)."""
    return birth_date > years_before(today, ADULT_AGE)


def validate_birth_date(value: str, today: date | None = None) -> BirthDateResult:
    """Validate a DD.MM.YYYY birth date and classify minor/adult.

    Args:
        value: The date literal.
        today: Evaluation date. Defaults to the current date.
    """
    if today is None:
        today = date.today()

    try:
        birth_date = parse_birth_date(value, today)
    except IdentityValidationError as exc:
        return BirthDateResult(is_valid=False, error_code=exc.code, error=str(exc))

    return BirthDateResult(
        is_valid=True,
        is_minor=is_minor(birth_date, today),
        birth_date=birth_date,
    )
