"""
TD1 field extraction — pure positional slicing of the corrected line set.

Line 1:  document code, document type, issuing state, names from offset 5
Line 2:  document number + check, nationality, date of birth + check, sex,
         date of expiry + check, optional data (offset 28 onward)
Line 3:  optional-data continuation (synthesised as fillers when missing)

In strict mode the last two columns of line 3 carry the optional-data check
and the composite check.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date

from .canonicalizer import FILLER, LINE_WIDTH
from .exceptions import MrzFormatError
from .models import ParsedIdentity

# ─── Offsets ─────────────────────────────────────────────────────────

# Line 1
DOCUMENT_CODE = slice(0, 1)
DOCUMENT_TYPE = slice(1, 2)
ISSUING_STATE = slice(2, 5)
NAMES = slice(5, None)

# Line 2
DOCUMENT_NUMBER = slice(0, 9)
DOCUMENT_NUMBER_CHECK = slice(9, 10)
NATIONALITY = slice(10, 13)
DATE_OF_BIRTH = slice(13, 19)
DATE_OF_BIRTH_CHECK = slice(19, 20)
SEX = slice(20, 21)
DATE_OF_EXPIRY = slice(21, 27)
DATE_OF_EXPIRY_CHECK = slice(27, 28)
OPTIONAL_DATA = slice(28, 30)

# Line 3 (strict mode)
OPTIONAL_DATA_TAIL = slice(0, 28)
OPTIONAL_DATA_CHECK = slice(28, 29)
COMPOSITE_CHECK = slice(29, 30)

NAME_SEPARATOR = FILLER * 2
MIN_LINES = 2

# Year windowing: YY above (current YY + margin) belongs to the 1900s.
CENTURY_WINDOW_MARGIN = 5

REQUIRED_CHECKS: tuple[str, ...] = ("document_number", "date_of_birth", "date_of_expiry")
STRICT_CHECKS: tuple[str, ...] = ("optional_data", "composite")

_YYMMDD = re.compile(r"[0-9]{6}")


@dataclass
class ExtractedFields:
    """Parsed identity plus the (data, embedded check) pairs still to verify."""

    parsed: ParsedIdentity
    check_inputs: dict[str, tuple[str, str]] = field(default_factory=dict)


def expand_yymmdd(value: str, evaluation_date: date) -> str | None:
    """Render a YYMMDD field as YYYY-MM-DD using the sliding century window.

    Returns None when ``value`` is not six ASCII digits. The calendar
    validity of the date is not checked here.
    """
    if not _YYMMDD.fullmatch(value):
        return None
    year = int(value[0:2])
    current_yy = evaluation_date.year % 100
    year += 1900 if year > current_yy + CENTURY_WINDOW_MARGIN else 2000
    return f"{year}-{value[2:4]}-{value[4:6]}"


def split_names(line1: str) -> tuple[str | None, str | None]:
    """Split the name field on '<<' into (surname, given names)."""
    parts = line1[NAMES].split(NAME_SEPARATOR)
    surname = parts[0].rstrip(FILLER) or None
    given_names = parts[1].rstrip(FILLER) if len(parts) > 1 else ""
    return surname, given_names or None


def extract_fields(
    lines: list[str], evaluation_date: date, strict: bool = False
) -> ExtractedFields:
    """Slice a corrected canonical line set into named TD1 fields.

    Args:
        lines: Canonical (and OCR-corrected) lines; at least two.
        evaluation_date: Reference date for the two-digit year window.
        strict: Also read the optional-data and composite check digits.

    Raises:
        MrzFormatError: fewer than two lines were supplied.
    """
    if len(lines) < MIN_LINES:
        raise MrzFormatError(
            f"Expected at least {MIN_LINES} MRZ lines, got {len(lines)}.",
            details={"line_count": len(lines)},
        )

    line1, line2 = lines[0], lines[1]
    line3 = lines[2] if len(lines) > 2 else FILLER * LINE_WIDTH

    document_number = line2[DOCUMENT_NUMBER]
    date_of_birth = line2[DATE_OF_BIRTH]
    date_of_expiry = line2[DATE_OF_EXPIRY]

    if strict:
        optional_region = line2[OPTIONAL_DATA] + line3[OPTIONAL_DATA_TAIL]
    else:
        optional_region = line2[OPTIONAL_DATA] + line3

    surname, given_names = split_names(line1)

    parsed = ParsedIdentity(
        document_code=line1[DOCUMENT_CODE],
        document_type=line1[DOCUMENT_TYPE],
        issuing_state=line1[ISSUING_STATE],
        surname=surname,
        given_names=given_names,
        document_number=document_number.rstrip(FILLER),
        nationality=line2[NATIONALITY],
        date_of_birth=date_of_birth,
        date_of_birth_full=expand_yymmdd(date_of_birth, evaluation_date),
        sex=line2[SEX],
        date_of_expiry=date_of_expiry,
        date_of_expiry_full=expand_yymmdd(date_of_expiry, evaluation_date),
        optional_data=optional_region.rstrip(FILLER),
    )

    check_inputs: dict[str, tuple[str, str]] = {
        "document_number": (document_number, line2[DOCUMENT_NUMBER_CHECK]),
        "date_of_birth": (date_of_birth, line2[DATE_OF_BIRTH_CHECK]),
        "date_of_expiry": (date_of_expiry, line2[DATE_OF_EXPIRY_CHECK]),
    }

    if strict:
        optional_check = line3[OPTIONAL_DATA_CHECK]
        composite_data = (
            line2[DOCUMENT_NUMBER] + line2[DOCUMENT_NUMBER_CHECK]
            + line2[DATE_OF_BIRTH] + line2[DATE_OF_BIRTH_CHECK]
            + line2[DATE_OF_EXPIRY] + line2[DATE_OF_EXPIRY_CHECK]
            + optional_region + optional_check
        )
        check_inputs["optional_data"] = (optional_region, optional_check)
        check_inputs["composite"] = (composite_data, line3[COMPOSITE_CHECK])

    return ExtractedFields(parsed=parsed, check_inputs=check_inputs)
