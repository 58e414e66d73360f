"""
ID Card Validator — FastAPI Server
==================================

RESTful API for validating identity-document scanner and OCR text.

Endpoints:
    POST /scan                    Run the full scan pipeline on raw text
    POST /scan/file               Upload a text file for scanning
    POST /mrz                     Decode and verify a TD1 MRZ only
    POST /national-id/validate    Check an 11-digit national ID
    POST /birth-date/validate     Check a DD.MM.YYYY birth date
    POST /export                  Download records as an .xlsx workbook
    GET  /health                  Health check / readiness probe

Run:
    uvicorn api:app --reload              # Dev (http://localhost:8000)
    uvicorn api:app --host 0.0.0.0        # Production
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

from fastapi import FastAPI, HTTPException, Response, UploadFile
from pydantic import BaseModel, Field

from idcard_validator import __version__
from idcard_validator.assembler import parse_mrz
from idcard_validator.birth_date import validate_birth_date
from idcard_validator.exceptions import DuplicateRecordError
from idcard_validator.extractor_llm import llm_enabled
from idcard_validator.models import (
    BirthDateResult,
    FallbackCandidate,
    IdentityRecord,
    MrzResult,
    ScanReport,
    ScanSource,
    Severity,
    ValidationFinding,
)
from idcard_validator.national_id import validate_national_id
from idcard_validator.pipeline import IdentityScanPipeline
from idcard_validator.roster import DEFAULT_EXPORT_FILENAME, IdentityRoster

# ─── Load .env if available ──────────────────────────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── Application Lifespan ────────────────────────────────────────────

_pipeline: IdentityScanPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared (stateless, roster-less) pipeline on startup."""
    global _pipeline  # noqa: PLW0603
    _pipeline = IdentityScanPipeline()
    yield
    _pipeline = None


# ─── FastAPI App ─────────────────────────────────────────────────────

app = FastAPI(
    title="ID Card Validator API",
    description=(
        "Recognition and validation of identity-document text: ICAO 9303 TD1 "
        "MRZ decoding with check digits and OCR correction, national ID "
        "checksums, birth-date validation and barcode fallback extraction."
    ),
    version=__version__,
    lifespan=lifespan,
)

_SAMPLE_MRZ = (
    "IDTURYILMAZ<<AHMET<<<<<<<<<<<<\n"
    "U103456782TUR9005156M2801016<<\n"
    "10000000146<<<<<<<<<<<<<<<<<<<"
)


# ─── Request / Response Schemas ─────────────────────────────────────


class ScanRequest(BaseModel):
    """Request body for the /scan endpoint."""

    raw_text: str = Field(
        ...,
        min_length=1,
        description="Raw scanner / OCR text (newline-delimited for MRZ).",
        json_schema_extra={"example": _SAMPLE_MRZ},
    )
    today: Optional[date] = Field(
        None, description="Evaluation date (defaults to the server's current date)."
    )


class MrzRequest(BaseModel):
    raw_text: str = Field(..., min_length=1, json_schema_extra={"example": _SAMPLE_MRZ})
    strict: bool = Field(False, description="Also require optional-data and composite checks.")
    today: Optional[date] = None


class NationalIdRequest(BaseModel):
    national_id: str = Field(..., json_schema_extra={"example": "10000000146"})


class NationalIdResponse(BaseModel):
    national_id: str
    is_valid: bool


class BirthDateRequest(BaseModel):
    birth_date: str = Field(..., json_schema_extra={"example": "15.05.2010"})
    today: Optional[date] = None


class ExportRequest(BaseModel):
    records: list[IdentityRecord] = Field(..., min_length=1)


class ScanResponse(BaseModel):
    """Structured scan report returned by the API."""

    source: ScanSource
    is_valid: bool
    extraction_method: str
    original_hash: str = Field(description="SHA-256 hash of the raw input")
    error_count: int
    warning_count: int
    findings: list[ValidationFinding]
    record: Optional[IdentityRecord] = None
    national_id: Optional[str] = None
    candidates: list[FallbackCandidate] = Field(default_factory=list)
    mrz: Optional[MrzResult] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    llm_enabled: bool


# ─── Helpers ─────────────────────────────────────────────────────────


def _get_pipeline() -> IdentityScanPipeline:
    if _pipeline is None:
        raise HTTPException(status_code=503, detail="Pipeline not initialised")
    return _pipeline


def _build_response(report: ScanReport) -> ScanResponse:
    """Convert the internal ScanReport to the API response schema."""
    error_count = sum(1 for f in report.findings if f.severity == Severity.ERROR)
    warning_count = sum(1 for f in report.findings if f.severity == Severity.WARNING)

    return ScanResponse(
        source=report.source,
        is_valid=report.is_valid,
        extraction_method=report.extraction_method,
        original_hash=report.original_hash,
        error_count=error_count,
        warning_count=warning_count,
        findings=report.findings,
        record=report.record,
        national_id=report.national_id,
        candidates=report.candidates,
        mrz=report.mrz,
    )


# ─── Endpoints ───────────────────────────────────────────────────────


@app.post(
    "/scan",
    summary="Scan raw MRZ / barcode / typed text",
    tags=["Scanning"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def scan(request: ScanRequest) -> ScanResponse:
    """Run the full scan pipeline.

    Returns a structured report with:
    - **source**: which path produced it (MRZ, BARCODE, NATIONAL_ID_ONLY, UNRECOGNIZED)
    - **record**: the accepted identity record, if any
    - **findings**: detailed list of errors, warnings, and info items
    - **original_hash**: SHA-256 of the input for audit trail
    """
    pipeline = _get_pipeline()
    report = pipeline.run(request.raw_text, today=request.today)
    return _build_response(report)


@app.post(
    "/scan/file",
    summary="Scan an uploaded text file",
    tags=["Scanning"],
    responses={
        413: {"description": "File too large (max 1 MB)"},
        400: {"description": "File is not valid UTF-8 text"},
        422: {"description": "File is empty"},
        503: {"description": "Pipeline not yet initialised"},
    },
)
async def scan_file(file: UploadFile) -> ScanResponse:
    """Upload a `.txt` file containing raw scanner or OCR text."""
    if file.size and file.size > 1_048_576:
        raise HTTPException(status_code=413, detail="File too large (max 1 MB)")

    content = await file.read()
    try:
        raw_text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text")

    if not raw_text.strip():
        raise HTTPException(status_code=422, detail="File is empty")

    pipeline = _get_pipeline()
    report = await asyncio.to_thread(pipeline.run, raw_text)
    return _build_response(report)


@app.post("/mrz", summary="Decode and verify a TD1 MRZ", tags=["Validation"])
def decode_mrz(request: MrzRequest) -> MrzResult:
    """Canonicalize, OCR-correct, extract and check-digit-verify a TD1 MRZ."""
    return parse_mrz(request.raw_text, evaluation_date=request.today, strict=request.strict)


@app.post("/national-id/validate", summary="Validate a national ID", tags=["Validation"])
def check_national_id(request: NationalIdRequest) -> NationalIdResponse:
    return NationalIdResponse(
        national_id=request.national_id,
        is_valid=validate_national_id(request.national_id),
    )


@app.post("/birth-date/validate", summary="Validate a birth date", tags=["Validation"])
def check_birth_date(request: BirthDateRequest) -> BirthDateResult:
    """Validate a DD.MM.YYYY birth date and classify minor/adult."""
    return validate_birth_date(request.birth_date, today=request.today)


@app.post(
    "/export",
    summary="Export identity records as .xlsx",
    tags=["Export"],
    responses={409: {"description": "Duplicate national ID in the request"}},
)
def export_records(request: ExportRequest) -> Response:
    """Build a spreadsheet with one row per record."""
    try:
        roster = IdentityRoster(request.records)
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    return Response(
        content=roster.export_xlsx_bytes(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{DEFAULT_EXPORT_FILENAME}"'},
    )


@app.get(
    "/health",
    summary="Health check",
    tags=["System"],
    responses={503: {"description": "Pipeline not yet initialised"}},
)
def health_check() -> HealthResponse:
    """Returns service status and configuration info."""
    _get_pipeline()
    return HealthResponse(
        status="healthy",
        version=__version__,
        llm_enabled=llm_enabled(),
    )
