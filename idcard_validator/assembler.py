"""
MRZ result assembly — raw text in, one closed outcome out.

    canonicalize → OCR-correct → extract fields → verify check digits → reduce

The status is a pure reduction over the checks and the line count; the
assembler never mutates upstream data.
"""

from __future__ import annotations

import logging
from datetime import date

from .canonicalizer import canonicalize_text
from .check_digit import verify
from .exceptions import MrzFormatError
from .fields import REQUIRED_CHECKS, STRICT_CHECKS, extract_fields
from .models import (
    CheckDigitOutcome,
    ChecksumFailure,
    FormatMismatch,
    MrzOk,
    MrzResult,
    OutcomeStatus,
)
from .ocr_corrections import correct_lines

logger = logging.getLogger(__name__)


def decide_status(checks: dict[str, CheckDigitOutcome], strict: bool = False) -> OutcomeStatus:
    """Reduce verified checks to OK or CHECKSUM_FAILURE."""
    required = REQUIRED_CHECKS + STRICT_CHECKS if strict else REQUIRED_CHECKS
    if all(checks[name].is_valid for name in required if name in checks):
        return OutcomeStatus.OK
    return OutcomeStatus.CHECKSUM_FAILURE


def parse_mrz(
    raw_text: str, evaluation_date: date | None = None, strict: bool = False
) -> MrzResult:
    """Decode and verify a TD1 machine-readable zone from raw text.

    Args:
        raw_text: Newline-delimited OCR / scanner output.
        evaluation_date: Reference date for two-digit year windowing.
            Defaults to today.
        strict: Also require the optional-data and composite checks.

    Returns:
        MrzOk, ChecksumFailure or FormatMismatch.
    """
    if evaluation_date is None:
        evaluation_date = date.today()

    lines = canonicalize_text(raw_text)
    corrected, substitutions = correct_lines(lines)

    try:
        extracted = extract_fields(corrected, evaluation_date, strict=strict)
    except MrzFormatError as exc:
        logger.info("MRZ format mismatch: %s", exc)
        return FormatMismatch(lines=lines)

    checks = {
        name: verify(data, found)
        for name, (data, found) in extracted.check_inputs.items()
    }

    status = decide_status(checks, strict=strict)
    result_type = MrzOk if status == OutcomeStatus.OK else ChecksumFailure
    logger.info("MRZ decoded: %s (%d substitution(s))", status.value, len(substitutions))

    return result_type(
        lines=corrected,
        parsed=extracted.parsed,
        checks=checks,
        substitutions=substitutions,
    )
