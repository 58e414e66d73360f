"""
Context-aware OCR confusion correction for TD1 line 2.

Only the positions that must hold digits are touched: the document number,
date of birth and date of expiry, each with its check digit. Letters outside
those windows are legitimate data (nationality, sex, optional data).
"""

from __future__ import annotations

import logging

from .models import SubstitutionRecord

logger = logging.getLogger(__name__)

# ─── Constants ───────────────────────────────────────────────────────

CORRECTED_LINE_INDEX = 1  # 0-based: the second canonical line

# 1-based inclusive column windows that require digits.
DIGIT_WINDOWS: tuple[tuple[int, int], ...] = (
    (1, 10),  # document number + check digit
    (14, 20),  # date of birth + check digit
    (22, 28),  # date of expiry + check digit
)

CONFUSIONS: dict[str, str] = {
    "O": "0",
    "I": "1",
    "L": "1",
    "B": "8",
}

DIGIT_EXPECTED = "digit expected"


def in_digit_window(column: int) -> bool:
    """True if a 1-based column lies in one of the digit-only windows."""
    return any(start <= column <= end for start, end in DIGIT_WINDOWS)


def correct_line(line: str, line_index: int) -> tuple[str, list[SubstitutionRecord]]:
    """Apply the confusion map to one canonical line.

    Args:
        line: A canonical 30-character line.
        line_index: 0-based index of the line in the line set.

    Returns:
        The corrected line and one SubstitutionRecord per replaced character.
    """
    if line_index != CORRECTED_LINE_INDEX:
        return line, []

    chars: list[str] = []
    substitutions: list[SubstitutionRecord] = []

    for column, char in enumerate(line, start=1):
        replacement = CONFUSIONS.get(char)
        if replacement is not None and in_digit_window(column):
            substitutions.append(
                SubstitutionRecord(
                    line=line_index + 1,
                    column=column,
                    original_char=char,
                    corrected_char=replacement,
                    reason=DIGIT_EXPECTED,
                )
            )
            logger.debug("OCR correction at %d:%d %s -> %s", line_index + 1, column, char, replacement)
            chars.append(replacement)
        else:
            chars.append(char)

    return "".join(chars), substitutions


def correct_lines(lines: list[str]) -> tuple[list[str], list[SubstitutionRecord]]:
    """Correct a whole line set, concatenating the audit trail in line order."""
    corrected: list[str] = []
    substitutions: list[SubstitutionRecord] = []
    for index, line in enumerate(lines):
        fixed, applied = correct_line(line, index)
        corrected.append(fixed)
        substitutions.extend(applied)
    return corrected, substitutions
