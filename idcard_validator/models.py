"""
Pydantic models for identity data — strict typing as our first line of defense.

Every result model is frozen: an outcome is computed once by the component
that owns it and never mutated downstream.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ─── Severity Levels ────────────────────────────────────────────────


class Severity(str, Enum):
    """Severity of a validation finding."""

    ERROR = "ERROR"  # Fatal: record MUST NOT be accepted
    WARNING = "WARNING"  # Suspicious: needs operator attention
    INFO = "INFO"  # Informational observation


# ─── Validation Finding ─────────────────────────────────────────────


class ValidationFinding(BaseModel):
    """A single validation finding with severity, machine-readable code, and details."""

    severity: Severity
    code: str  # Machine-readable, e.g. "MRZ_CHECKSUM_FAILURE"
    field: str  # Which identity field this relates to
    message: str  # Human-readable explanation
    details: dict = Field(default_factory=dict)


# ─── MRZ Models ─────────────────────────────────────────────────────


class OutcomeStatus(str, Enum):
    """Closed set of MRZ decoding outcomes."""

    OK = "OK"
    CHECKSUM_FAILURE = "CHECKSUM_FAILURE"
    FORMAT_MISMATCH = "FORMAT_MISMATCH"


class SubstitutionRecord(BaseModel):
    """One OCR correction applied to a canonical line (1-based positions)."""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int
    original_char: str
    corrected_char: str
    reason: str


class CheckDigitOutcome(BaseModel):
    """Comparison of an embedded check character against the computed digit."""

    model_config = ConfigDict(frozen=True)

    found_digit: str
    computed_digit: str
    is_valid: bool


class ParsedIdentity(BaseModel):
    """Named TD1 fields sliced from the corrected line set.

    Dates are kept both as the raw YYMMDD field and as a windowed
    YYYY-MM-DD rendering (None when the raw field is not six digits).
    """

    model_config = ConfigDict(frozen=True)

    document_code: str
    document_type: str
    issuing_state: str
    surname: Optional[str] = None
    given_names: Optional[str] = None
    document_number: str
    nationality: str
    date_of_birth: str
    date_of_birth_full: Optional[str] = None
    sex: str
    date_of_expiry: str
    date_of_expiry_full: Optional[str] = None
    optional_data: str = ""


class FormatMismatch(BaseModel):
    """Fewer than two canonical lines: nothing could be decoded."""

    model_config = ConfigDict(frozen=True)

    status: Literal[OutcomeStatus.FORMAT_MISMATCH] = OutcomeStatus.FORMAT_MISMATCH
    lines: list[str] = Field(default_factory=list)
    checks: dict[str, CheckDigitOutcome] = Field(default_factory=dict)
    substitutions: list[SubstitutionRecord] = Field(default_factory=list)


class ChecksumFailure(BaseModel):
    """All fields extracted but at least one required check digit mismatched."""

    model_config = ConfigDict(frozen=True)

    status: Literal[OutcomeStatus.CHECKSUM_FAILURE] = OutcomeStatus.CHECKSUM_FAILURE
    lines: list[str]
    parsed: ParsedIdentity
    checks: dict[str, CheckDigitOutcome]
    substitutions: list[SubstitutionRecord] = Field(default_factory=list)

    @property
    def failed_checks(self) -> list[str]:
        return [name for name, check in self.checks.items() if not check.is_valid]


class MrzOk(BaseModel):
    """All required check digits match."""

    model_config = ConfigDict(frozen=True)

    status: Literal[OutcomeStatus.OK] = OutcomeStatus.OK
    lines: list[str]
    parsed: ParsedIdentity
    checks: dict[str, CheckDigitOutcome]
    substitutions: list[SubstitutionRecord] = Field(default_factory=list)


MrzResult = Annotated[
    Union[MrzOk, ChecksumFailure, FormatMismatch],
    Field(discriminator="status"),
]


# ─── Birth Date ─────────────────────────────────────────────────────


class BirthDateResult(BaseModel):
    """Outcome of validating a DD.MM.YYYY birth date literal."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    is_minor: bool = False
    birth_date: Optional[date] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


# ─── Fallback Extraction ────────────────────────────────────────────


class DatePattern(str, Enum):
    """Which date shape a fallback candidate was read from."""

    DOTTED = "dotted"  # DD.MM.YYYY
    COMPACT = "compact"  # DDMMYYYY, barcode payloads only


class FallbackCandidate(BaseModel):
    """A (national ID, birth date) pair found in unstructured text."""

    model_config = ConfigDict(frozen=True)

    national_id: str
    birth_date: str  # Always rendered DD.MM.YYYY
    date_pattern: DatePattern
    national_id_valid: bool
    rank: Optional[int] = None  # 0 = best; None when not from the regex ranking


# ─── Identity Record ────────────────────────────────────────────────


class RecordSource(str, Enum):
    """Where an accepted identity record came from."""

    MRZ = "MRZ"
    BARCODE = "BARCODE"
    MANUAL = "MANUAL"


class IdentityRecord(BaseModel):
    """A flat, accepted identity row — what the roster stores and exports."""

    national_id: str
    birth_date: str  # DD.MM.YYYY
    phone: Optional[str] = None
    guardian_phone: Optional[str] = None
    source: RecordSource = RecordSource.MANUAL


# ─── Scan Report ────────────────────────────────────────────────────


class ScanSource(str, Enum):
    """Which path of the scan pipeline produced the report."""

    MRZ = "MRZ"
    BARCODE = "BARCODE"
    NATIONAL_ID_ONLY = "NATIONAL_ID_ONLY"
    MANUAL = "MANUAL"
    UNRECOGNIZED = "UNRECOGNIZED"


class ScanReport(BaseModel):
    """The final output of the scan pipeline."""

    source: ScanSource
    is_valid: bool
    findings: list[ValidationFinding] = Field(default_factory=list)
    mrz: Optional[MrzResult] = None
    candidates: list[FallbackCandidate] = Field(default_factory=list)
    record: Optional[IdentityRecord] = None
    national_id: Optional[str] = None  # Set for NATIONAL_ID_ONLY reports
    extraction_method: str = "unknown"
    original_hash: str = ""  # SHA-256 of the raw input for audit trail
