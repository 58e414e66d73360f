"""
Line canonicalization — raw multi-line text to fixed-width MRZ candidate lines.

Every raw line yields exactly one canonical line: 30 characters drawn from
A–Z, 0–9 and the filler '<'. Lines are padded or truncated, never rejected.
"""

from __future__ import annotations

import re

# ─── Constants ───────────────────────────────────────────────────────

LINE_WIDTH = 30
FILLER = "<"

# Issuing-country letters that survive upper-casing and must fold to ASCII.
_TRANSLITERATIONS = str.maketrans({
    "Ç": "C",
    "Ğ": "G",
    "İ": "I",
    "Ö": "O",
    "Ş": "S",
    "Ü": "U",
})

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_WHITESPACE = re.compile(r"\s")
_DISALLOWED = re.compile(r"[^A-Z0-9<]")


def canonicalize_line(line: str) -> str:
    """Canonicalize a single raw line (case, diacritics, filler, width)."""
    value = line.upper().translate(_TRANSLITERATIONS)
    value = _WHITESPACE.sub(FILLER, value)
    value = _DISALLOWED.sub("", value)
    return value[:LINE_WIDTH].ljust(LINE_WIDTH, FILLER)


def canonicalize_text(raw_text: str) -> list[str]:
    """Split raw text on line breaks and canonicalize every line.

    Only CR, LF and CRLF break lines; barcode separators such as GS (0x1D)
    stay inside the line and become filler. A trailing newline (as appended
    by most keyboard-wedge scanners) does not produce an extra line.
    """
    lines = _LINE_BREAK.split(raw_text)
    if lines[-1] == "":
        lines.pop()
    return [canonicalize_line(line) for line in lines]
