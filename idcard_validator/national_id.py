"""
National identity number validation (11 digits, two dependent check digits).

    d9  = ((d0 + d2 + d4 + d6 + d8) * 7 - (d1 + d3 + d5 + d7)) mod 10
    d10 = (d0 + d1 + ... + d9) mod 10

The first digit is never zero.
"""

from __future__ import annotations

import re

NATIONAL_ID_LENGTH = 11

_NATIONAL_ID = re.compile(r"[1-9][0-9]{10}")
_BODY = re.compile(r"[1-9][0-9]{8}")


def _tenth_digit(digits: list[int]) -> int:
    odd_sum = sum(digits[0:9:2])
    even_sum = sum(digits[1:8:2])
    return (odd_sum * 7 - even_sum) % 10


def national_id_check_digits(body: str) -> str:
    """Derive the two check digits for the first nine digits of a national ID.

    Raises:
        ValueError: ``body`` is not nine digits with a non-zero first digit.
    """
    if not isinstance(body, str) or not _BODY.fullmatch(body):
        raise ValueError(f"National ID body must be 9 digits not starting with 0: {body!r}")
    digits = [int(char) for char in body]
    tenth = _tenth_digit(digits)
    eleventh = (sum(digits) + tenth) % 10
    return f"{tenth}{eleventh}"


def validate_national_id(candidate: object) -> bool:
    """True iff ``candidate`` is a valid 11-digit national identity number."""
    if not isinstance(candidate, str) or not _NATIONAL_ID.fullmatch(candidate):
        return False

    digits = [int(char) for char in candidate]

    if digits[9] != _tenth_digit(digits):
        return False

    return digits[10] == sum(digits[:10]) % 10
