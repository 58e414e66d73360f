"""
Scan pipeline — orchestrates one scanner/OCR input end to end.

Flow:
  ┌──────────┐
  │ Raw text │
  └────┬─────┘
       │
  ┌────▼────┐   OK
  │   MRZ   ├────────────────────────────┐
  └────┬────┘                            │
       │ CHECKSUM_FAILURE / FORMAT_MISMATCH
  ┌────▼─────┐     ┌──────────┐          │
  │  Regex   │     │   LLM    │  ← fallback extraction
  │ fallback │     │ fallback │          │
  └────┬─────┘     └────┬─────┘          │
       └───────┬────────┘                │
        ┌──────▼──────┐                  │
        │ Reconciler  │                  │
        └──────┬──────┘                  │
               │ nothing usable          │
        ┌──────▼──────┐                  │
        │ Bare nat.ID │                  │
        └──────┬──────┘                  │
        ┌──────▼──────────────────────▼──┐
        │  ID + birth date validators    │
        └──────┬─────────────────────────┘
        ┌──────▼──────┐
        │   Report    │   ← Typed findings + record
        └─────────────┘

Design principles:
  - The MRZ path and the regex fallback are deterministic.
  - The LLM extractor is optional (graceful degradation) and only consulted
    when the MRZ could not be verified.
  - Every accepted record has passed the national-ID and birth-date checks.
  - The raw input is SHA-256 hashed for audit trail.
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import date

from .assembler import parse_mrz
from .birth_date import validate_birth_date
from .exceptions import DuplicateRecordError
from .extractor_llm import extract_with_llm
from .extractor_regex import extract_fallback_candidates
from .models import (
    ChecksumFailure,
    FallbackCandidate,
    FormatMismatch,
    IdentityRecord,
    MrzOk,
    MrzResult,
    RecordSource,
    ScanReport,
    ScanSource,
    Severity,
    ValidationFinding,
)
from .national_id import validate_national_id
from .roster import IdentityRoster

logger = logging.getLogger(__name__)

_EMBEDDED_NATIONAL_ID = re.compile(r"(?<![0-9])[1-9][0-9]{10}(?![0-9])")


class IdentityScanPipeline:
    """Orchestrates the full scanner-input workflow.

    Usage:
        pipeline = IdentityScanPipeline(roster=IdentityRoster())
        report = pipeline.run(raw_scanner_text)
        if report.record is None:
            # nothing accepted: rescan or enter manually
            for finding in report.findings:
                print(finding)
    """

    def __init__(self, roster: IdentityRoster | None = None, strict: bool = False):
        self.roster = roster
        self.strict = strict

    def run(self, raw_text: str, today: date | None = None) -> ScanReport:
        """Execute the pipeline on one scanner/OCR input.

        Args:
            raw_text: Raw text from an MRZ OCR, a barcode reader or a keyboard.
            today: Evaluation date for year windowing and age checks.

        Returns:
            ScanReport with findings and, when accepted, an IdentityRecord.
        """
        if today is None:
            today = date.today()

        # ── Step 0: Audit hash of original input ────────────────────
        doc_hash = hashlib.sha256(raw_text.encode("utf-8")).hexdigest()

        # ── Step 1: Structured MRZ ──────────────────────────────────
        logger.info("Starting MRZ decoding...")
        mrz = parse_mrz(raw_text, evaluation_date=today, strict=self.strict)

        if isinstance(mrz, MrzOk):
            return self._finish_mrz(mrz, today, doc_hash)

        mrz_finding = self._mrz_failure_finding(mrz)

        # ── Step 2: Fallback extraction ─────────────────────────────
        logger.info("MRZ not usable (%s); starting fallback extraction...", mrz.status.value)
        candidates = extract_fallback_candidates(raw_text)
        llm_candidate = extract_with_llm(raw_text)

        if llm_candidate is not None:
            extraction_method = "LLM + Regex cross-check"
        else:
            extraction_method = "Regex-only (no LLM API key)"

        if candidates or llm_candidate is not None:
            return self._finish_fallback(
                mrz, mrz_finding, candidates, llm_candidate,
                extraction_method, today, doc_hash,
            )

        # ── Step 3: Bare national ID (birth date entered manually) ──
        cleaned = raw_text.strip()
        if validate_national_id(cleaned):
            return ScanReport(
                source=ScanSource.NATIONAL_ID_ONLY,
                is_valid=True,
                findings=[
                    ValidationFinding(
                        severity=Severity.WARNING,
                        code="BIRTH_DATE_REQUIRED",
                        field="birth_date",
                        message=(
                            "Input is a valid national ID on its own. Enter the "
                            "birth date manually to complete the record."
                        ),
                        details={"national_id": cleaned},
                    )
                ],
                mrz=mrz,
                national_id=cleaned,
                extraction_method="National ID only",
                original_hash=doc_hash,
            )

        # ── Step 4: Nothing recognisable ────────────────────────────
        findings = [mrz_finding.model_copy(update={"severity": Severity.ERROR})]
        if isinstance(mrz, FormatMismatch):
            findings = [
                ValidationFinding(
                    severity=Severity.ERROR,
                    code="INPUT_UNRECOGNIZED",
                    field="raw_text",
                    message="The scanned data could not be understood or is incomplete.",
                    details={"line_count": len(mrz.lines)},
                )
            ]

        return ScanReport(
            source=ScanSource.MRZ if isinstance(mrz, ChecksumFailure) else ScanSource.UNRECOGNIZED,
            is_valid=False,
            findings=findings,
            mrz=mrz,
            extraction_method=extraction_method,
            original_hash=doc_hash,
        )

    def submit_manual(
        self,
        national_id: str,
        birth_date: str,
        phone: str | None = None,
        guardian_phone: str | None = None,
        today: date | None = None,
    ) -> ScanReport:
        """Validate a hand-typed national ID and birth date into a record."""
        if today is None:
            today = date.today()

        doc_hash = hashlib.sha256(f"{national_id}|{birth_date}".encode("utf-8")).hexdigest()
        findings = self._national_id_findings(national_id, Severity.ERROR)
        findings.extend(self._birth_date_findings(birth_date, today))

        record = None
        if not self._has_errors(findings):
            record = IdentityRecord(
                national_id=national_id,
                birth_date=birth_date,
                phone=phone,
                guardian_phone=guardian_phone,
                source=RecordSource.MANUAL,
            )

        return self._report(
            ScanSource.MANUAL, findings, record,
            extraction_method="Manual entry", doc_hash=doc_hash,
        )

    # ─── MRZ Path ───────────────────────────────────────────────────

    def _finish_mrz(self, mrz: MrzOk, today: date, doc_hash: str) -> ScanReport:
        """Turn a verified MRZ into a record (national ID + DD.MM.YYYY)."""
        findings = self._substitution_findings(mrz)
        parsed = mrz.parsed

        match = _EMBEDDED_NATIONAL_ID.search(parsed.optional_data)
        if match and validate_national_id(match.group(0)):
            national_id = match.group(0)
        else:
            national_id = parsed.document_number
            findings.append(
                ValidationFinding(
                    severity=Severity.WARNING,
                    code="NATIONAL_ID_INVALID",
                    field="national_id",
                    message=(
                        "No valid national ID in the optional data; the document "
                        f"number '{national_id}' is used as the identifier."
                    ),
                    details={"optional_data": parsed.optional_data},
                )
            )

        birth_date = self._dotted_from_iso(parsed.date_of_birth_full)
        findings.extend(self._birth_date_findings(birth_date, today))

        record = None
        if not self._has_errors(findings):
            record = IdentityRecord(
                national_id=national_id,
                birth_date=birth_date,
                source=RecordSource.MRZ,
            )

        return self._report(
            ScanSource.MRZ, findings, record,
            extraction_method="MRZ (ICAO 9303 TD1)", doc_hash=doc_hash, mrz=mrz,
        )

    def _mrz_failure_finding(self, mrz: ChecksumFailure | FormatMismatch) -> ValidationFinding:
        if isinstance(mrz, ChecksumFailure):
            return ValidationFinding(
                severity=Severity.WARNING,
                code="MRZ_CHECKSUM_FAILURE",
                field="mrz",
                message=(
                    "MRZ was read but could not be verified "
                    f"(failed: {', '.join(mrz.failed_checks)}). Please rescan."
                ),
                details={
                    "failed_checks": mrz.failed_checks,
                    "substitutions": [s.model_dump() for s in mrz.substitutions],
                },
            )
        return ValidationFinding(
            severity=Severity.INFO,
            code="MRZ_FORMAT_MISMATCH",
            field="mrz",
            message=f"Input is not a TD1 MRZ ({len(mrz.lines)} line(s)).",
            details={"line_count": len(mrz.lines)},
        )

    # ─── Fallback Path ──────────────────────────────────────────────

    def _finish_fallback(
        self,
        mrz: MrzResult,
        mrz_finding: ValidationFinding,
        candidates: list[FallbackCandidate],
        llm_candidate: FallbackCandidate | None,
        extraction_method: str,
        today: date,
        doc_hash: str,
    ) -> ScanReport:
        findings = [mrz_finding]

        if llm_candidate is not None and candidates:
            findings.extend(self._reconcile(candidates[0], llm_candidate))

        # LLM first (as primary source), regex ranking after it.
        ordered = ([llm_candidate] if llm_candidate is not None else []) + candidates
        chosen = next(
            (
                c for c in ordered
                if c.national_id_valid and validate_birth_date(c.birth_date, today).is_valid
            ),
            ordered[0],
        )

        if len(candidates) > 1:
            findings.append(
                ValidationFinding(
                    severity=Severity.WARNING,
                    code="FALLBACK_AMBIGUOUS",
                    field="raw_text",
                    message=(
                        f"{len(candidates)} possible ID/birth-date pairings found; "
                        f"used {chosen.national_id} / {chosen.birth_date}, the first one that "
                        "passes validation (or the top one if none does). Verify against the card."
                    ),
                    details={
                        "candidates": [
                            f"{c.national_id} / {c.birth_date}" for c in candidates
                        ],
                        "chosen": f"{chosen.national_id} / {chosen.birth_date}",
                    },
                )
            )

        findings.extend(self._national_id_findings(chosen.national_id, Severity.ERROR))
        findings.extend(self._birth_date_findings(chosen.birth_date, today))

        record = None
        if not self._has_errors(findings):
            record = IdentityRecord(
                national_id=chosen.national_id,
                birth_date=chosen.birth_date,
                source=RecordSource.BARCODE,
            )

        return self._report(
            ScanSource.BARCODE, findings, record,
            extraction_method=extraction_method, doc_hash=doc_hash,
            mrz=mrz, candidates=candidates,
        )

    def _reconcile(
        self, regex: FallbackCandidate, llm: FallbackCandidate
    ) -> list[ValidationFinding]:
        """Flag every field where the LLM and the top regex candidate disagree."""
        findings: list[ValidationFinding] = []

        for field_name, display_name in (
            ("national_id", "National ID"),
            ("birth_date", "Birth Date"),
        ):
            regex_val = getattr(regex, field_name)
            llm_val = getattr(llm, field_name)
            if regex_val.strip() != llm_val.strip():
                findings.append(
                    ValidationFinding(
                        severity=Severity.WARNING,
                        code="EXTRACTION_DISAGREEMENT",
                        field=field_name,
                        message=(
                            f"LLM and regex disagree on {display_name}: "
                            f"regex='{regex_val}', LLM='{llm_val}'. "
                            f"Manual review recommended."
                        ),
                        details={"regex_value": regex_val, "llm_value": llm_val},
                    )
                )

        return findings

    # ─── Shared Checks ──────────────────────────────────────────────

    def _national_id_findings(self, national_id: str, severity: Severity) -> list[ValidationFinding]:
        if validate_national_id(national_id):
            return []
        return [
            ValidationFinding(
                severity=severity,
                code="NATIONAL_ID_INVALID",
                field="national_id",
                message=f"'{national_id}' is not a valid national ID number.",
                details={"national_id": national_id},
            )
        ]

    def _birth_date_findings(self, birth_date: str, today: date) -> list[ValidationFinding]:
        result = validate_birth_date(birth_date, today)
        if not result.is_valid:
            return [
                ValidationFinding(
                    severity=Severity.ERROR,
                    code="BIRTH_DATE_INVALID",
                    field="birth_date",
                    message=result.error or "Invalid birth date.",
                    details={"birth_date": birth_date, "reason": result.error_code},
                )
            ]
        if result.is_minor:
            return [
                ValidationFinding(
                    severity=Severity.INFO,
                    code="SUBJECT_IS_MINOR",
                    field="birth_date",
                    message="Subject is under 18; a guardian contact may be required.",
                    details={"birth_date": birth_date},
                )
            ]
        return []

    def _substitution_findings(self, mrz: MrzOk) -> list[ValidationFinding]:
        return [
            ValidationFinding(
                severity=Severity.INFO,
                code="OCR_SUBSTITUTION",
                field="mrz",
                message=(
                    f"Line {s.line}, column {s.column}: '{s.original_char}' read as "
                    f"'{s.corrected_char}' ({s.reason})."
                ),
                details=s.model_dump(),
            )
            for s in mrz.substitutions
        ]

    # ─── Report Assembly ────────────────────────────────────────────

    def _report(
        self,
        source: ScanSource,
        findings: list[ValidationFinding],
        record: IdentityRecord | None,
        *,
        extraction_method: str,
        doc_hash: str,
        mrz: MrzResult | None = None,
        candidates: list[FallbackCandidate] | None = None,
    ) -> ScanReport:
        """Register the record with the roster (if any) and build the report."""
        if record is not None and self.roster is not None:
            try:
                self.roster.add(record)
            except DuplicateRecordError as exc:
                findings.append(
                    ValidationFinding(
                        severity=Severity.ERROR,
                        code=exc.code,
                        field="national_id",
                        message=str(exc),
                        details=exc.details,
                    )
                )
                record = None

        return ScanReport(
            source=source,
            is_valid=not self._has_errors(findings),
            findings=findings,
            mrz=mrz,
            candidates=candidates or [],
            record=record,
            extraction_method=extraction_method,
            original_hash=doc_hash,
        )

    @staticmethod
    def _has_errors(findings: list[ValidationFinding]) -> bool:
        return any(f.severity == Severity.ERROR for f in findings)

    @staticmethod
    def _dotted_from_iso(value: str | None) -> str:
        """'1990-05-15' → '15.05.1990'; '' when there is no rendering."""
        if not value:
            return ""
        year, month, day = value.split("-")
        return f"{day}.{month}.{year}"
