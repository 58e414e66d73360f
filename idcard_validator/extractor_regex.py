"""
Deterministic regex-based fallback extraction from unstructured text.

Used when the MRZ path does not produce a valid result: barcode payloads and
free-typed scanner input often still contain an 11-digit national ID and a
birth date somewhere in the noise.

An unseparated DDMMYYYY run is easy to confuse with digits of a national ID,
so compact dates are only read from long inputs (barcode payloads) and never
from inside a national-ID match. Because this is a heuristic, every plausible
pairing is returned, ranked, rather than silently picking one.
"""

from __future__ import annotations

import re

from .models import DatePattern, FallbackCandidate
from .national_id import validate_national_id

# ─── Constants ───────────────────────────────────────────────────────

# Inputs shorter than this are treated as typed values, not barcode payloads.
BARCODE_MIN_LENGTH = 20

_NATIONAL_ID = re.compile(r"\b([1-9][0-9]{10})\b")

_DAY = r"(0[1-9]|[12][0-9]|3[01])"
_MONTH = r"(0[1-9]|1[0-2])"
_YEAR = r"((?:19|20)[0-9]{2})"

_DOTTED_DATE = re.compile(rf"(?<![0-9]){_DAY}\.{_MONTH}\.{_YEAR}(?![0-9])")
# Lookahead so overlapping runs inside a longer digit string are all seen.
_COMPACT_DATE = re.compile(rf"(?={_DAY}{_MONTH}{_YEAR})")


def extract_national_ids(text: str) -> list[tuple[str, tuple[int, int]]]:
    """All standalone 11-digit runs with a non-zero first digit, with spans."""
    return [(m.group(1), m.span(1)) for m in _NATIONAL_ID.finditer(text)]


def extract_dates(
    text: str, excluded_spans: list[tuple[int, int]] | None = None
) -> list[tuple[str, DatePattern, int]]:
    """Find birth-date candidates rendered as DD.MM.YYYY.

    Args:
        text: Raw input.
        excluded_spans: Character spans (e.g. national-ID matches) that a
            compact date may not overlap.

    Returns:
        (date, pattern, position) tuples in order of appearance per pattern.
    """
    excluded_spans = excluded_spans or []
    found: list[tuple[str, DatePattern, int]] = []
    seen: set[str] = set()

    for match in _DOTTED_DATE.finditer(text):
        value = f"{match.group(1)}.{match.group(2)}.{match.group(3)}"
        if value not in seen:
            seen.add(value)
            found.append((value, DatePattern.DOTTED, match.start()))

    if len(text.strip()) < BARCODE_MIN_LENGTH:
        return found

    for match in _COMPACT_DATE.finditer(text):
        start = match.start()
        end = start + 8
        if any(start < span_end and end > span_start for span_start, span_end in excluded_spans):
            continue
        value = f"{match.group(1)}.{match.group(2)}.{match.group(3)}"
        if value not in seen:
            seen.add(value)
            found.append((value, DatePattern.COMPACT, start))

    return found


def extract_fallback_candidates(raw_text: str) -> list[FallbackCandidate]:
    """Pair every national-ID candidate with every date candidate, ranked.

    Ranking: checksum-valid IDs first, dotted dates before compact ones,
    then order of appearance. Empty when either part is missing.
    """
    national_ids = extract_national_ids(raw_text)
    if not national_ids:
        return []

    dates = extract_dates(raw_text, excluded_spans=[span for _, span in national_ids])
    if not dates:
        return []

    pairs = []
    for national_id, (id_start, _) in national_ids:
        id_valid = validate_national_id(national_id)
        for birth_date, pattern, date_start in dates:
            sort_key = (not id_valid, pattern != DatePattern.DOTTED, id_start, date_start)
            pairs.append((sort_key, national_id, id_valid, birth_date, pattern))

    pairs.sort(key=lambda pair: pair[0])

    return [
        FallbackCandidate(
            national_id=national_id,
            birth_date=birth_date,
            date_pattern=pattern,
            national_id_valid=id_valid,
            rank=rank,
        )
        for rank, (_, national_id, id_valid, birth_date, pattern) in enumerate(pairs)
    ]


def best_fallback_candidate(raw_text: str) -> FallbackCandidate | None:
    """The top-ranked candidate, or None when nothing usable was found."""
    candidates = extract_fallback_candidates(raw_text)
    return candidates[0] if candidates else None
