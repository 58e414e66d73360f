"""
TD1 line-set composition — the inverse of field extraction.

Builds three canonical lines from a ParsedIdentity and inserts the correct
check digits. Used to generate fixtures and demo data, and to round-trip
extraction in tests.
"""

from __future__ import annotations

from .canonicalizer import FILLER, LINE_WIDTH
from .check_digit import compute_check_digit
from .fields import NAME_SEPARATOR
from .models import ParsedIdentity

_NAME_WIDTH = LINE_WIDTH - 5
_OPTIONAL_WIDTH = 2 + LINE_WIDTH  # line 2 tail + all of line 3
_STRICT_OPTIONAL_WIDTH = 2 + LINE_WIDTH - 2  # last two columns hold checks


def _pad(value: str, width: int) -> str:
    return value[:width].ljust(width, FILLER)


def _with_check(value: str) -> str:
    return value + str(compute_check_digit(value))


def compose_lines(identity: ParsedIdentity, strict: bool = False) -> list[str]:
    """Compose the three 30-character TD1 lines for ``identity``.

    Args:
        identity: Field values; dates are the raw YYMMDD fields.
        strict: Emit the optional-data and composite check digits in the
            last two columns of line 3.
    """
    names = identity.surname or ""
    if identity.given_names:
        names += NAME_SEPARATOR + identity.given_names

    line1 = _pad(
        _pad(identity.document_code, 1)
        + _pad(identity.document_type, 1)
        + _pad(identity.issuing_state, 3)
        + _pad(names, _NAME_WIDTH),
        LINE_WIDTH,
    )

    document_part = _with_check(_pad(identity.document_number, 9))
    birth_part = _with_check(_pad(identity.date_of_birth, 6))
    expiry_part = _with_check(_pad(identity.date_of_expiry, 6))

    if strict:
        optional_region = _pad(identity.optional_data, _STRICT_OPTIONAL_WIDTH)
        optional_check = str(compute_check_digit(optional_region))
        composite = compute_check_digit(
            document_part + birth_part + expiry_part + optional_region + optional_check
        )
        tail = optional_region + optional_check + str(composite)
    else:
        tail = _pad(identity.optional_data, _OPTIONAL_WIDTH)

    line2 = (
        document_part
        + _pad(identity.nationality, 3)
        + birth_part
        + _pad(identity.sex, 1)
        + expiry_part
        + tail[:2]
    )
    line3 = tail[2:]

    return [line1, line2, line3]


def compose_text(identity: ParsedIdentity, strict: bool = False) -> str:
    """Compose the line set as newline-delimited text."""
    return "\n".join(compose_lines(identity, strict=strict))
