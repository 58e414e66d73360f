#!/usr/bin/env python3
"""
ID Card Validator — Entry Point
===============================

Runs the scan pipeline on an MRZ / barcode / typed text sample and prints
a report.

Usage:
    python main.py                          # Built-in noisy MRZ sample
    python main.py scan.txt                 # Scan the contents of a file
    OPENAI_API_KEY=sk-... python main.py    # Enable the LLM fallback extractor
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from idcard_validator.models import ChecksumFailure, MrzOk, ScanReport, Severity
from idcard_validator.pipeline import IdentityScanPipeline

# ─── Load .env if available (optional dependency) ────────────────────
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass


# ─── A Photographed MRZ — Lower-case, Unpadded, One "O" for a "0" ──

RAW_OCR_TEXT = """\
idturyilmaz<<ahmet
u1O3456782TUR9005156m2801016
10000000146"""


# ─── ANSI Color Constants ───────────────────────────────────────────

_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"
_BOLD = "\033[1m"
_RESET = "\033[0m"
_WIDTH = 72


# ─── Pretty Printer Helpers ─────────────────────────────────────────


def _print_mrz_details(report: ScanReport) -> None:
    """Print canonical lines, decoded fields and check digits."""
    mrz = report.mrz
    if mrz is None:
        return
    for line in mrz.lines:
        print(f"  {_DIM}{line}{_RESET}")
    if not isinstance(mrz, (MrzOk, ChecksumFailure)):
        return
    parsed = mrz.parsed
    print(f"  Surname:     {parsed.surname or '-'}")
    print(f"  Given names: {parsed.given_names or '-'}")
    print(f"  Document:    {parsed.document_code}{parsed.document_type} {parsed.document_number} ({parsed.issuing_state})")
    print(f"  Nationality: {parsed.nationality}")
    print(f"  Born:        {parsed.date_of_birth_full or parsed.date_of_birth}")
    print(f"  Sex:         {parsed.sex}")
    print(f"  Expires:     {parsed.date_of_expiry_full or parsed.date_of_expiry}")
    for name, check in mrz.checks.items():
        color = _GREEN if check.is_valid else _RED
        print(
            f"  {color}check {name:<16}{_RESET} "
            f"found={check.found_digit} computed={check.computed_digit}"
        )


def _print_findings_group(findings, color: str, label: str) -> None:
    """Print a categorized group of findings (errors or warnings)."""
    if not findings:
        return
    print(f"\n  {color}{_BOLD}{label} ({len(findings)}){_RESET}")
    for f in findings:
        print(f"    {color}[{f.code}]{_RESET}")
        print(f"    {f.message}")
        for k, v in f.details.items():
            print(f"      {_DIM}{k}: {v}{_RESET}")
        print()


def _print_info_group(findings) -> None:
    """Print informational findings (compact format)."""
    if not findings:
        return
    print(f"  {_CYAN}INFO ({len(findings)}){_RESET}")
    for f in findings:
        print(f"    [{f.code}] {f.message}")
    print()


# ─── Pretty Printer ─────────────────────────────────────────────────


def print_report(report: ScanReport) -> int:
    """Pretty-print the scan report with ANSI color codes.

    Returns:
        0 if a record was accepted, 1 otherwise.
    """
    print(f"\n{'=' * _WIDTH}")
    print(f"{_BOLD}{_CYAN}  IDENTITY SCAN REPORT{_RESET}")
    print(f"{'=' * _WIDTH}")
    print(f"  Source:      {report.source.value}")
    print(f"  Audit Hash:  {_DIM}{report.original_hash[:16]}...{_RESET}")
    print(f"  Extraction:  {report.extraction_method}")
    print(f"{'─' * _WIDTH}")

    _print_mrz_details(report)

    print(f"{'─' * _WIDTH}")

    errors = [f for f in report.findings if f.severity == Severity.ERROR]
    warnings = [f for f in report.findings if f.severity == Severity.WARNING]
    infos = [f for f in report.findings if f.severity == Severity.INFO]

    _print_findings_group(errors, _RED, "ERRORS")
    _print_findings_group(warnings, _YELLOW, "WARNINGS")
    _print_info_group(infos)

    print(f"{'=' * _WIDTH}")
    if report.record is not None:
        print(
            f"  {_GREEN}{_BOLD}RECORD ACCEPTED  --  {report.record.national_id} "
            f"/ {report.record.birth_date}{_RESET}"
        )
    elif report.national_id is not None:
        print(f"  {_YELLOW}{_BOLD}NATIONAL ID {report.national_id}  --  birth date required{_RESET}")
    else:
        print(f"  {_RED}{_BOLD}INPUT REJECTED  --  {len(errors)} error(s) found{_RESET}")
    print(f"{'=' * _WIDTH}\n")

    return 0 if report.record is not None else 1


# ─── Main ────────────────────────────────────────────────────────────


def main():
    """Run the scan pipeline and print the report."""
    logging.basicConfig(level=logging.WARNING)

    raw_text = RAW_OCR_TEXT
    if len(sys.argv) > 1:
        raw_text = Path(sys.argv[1]).read_text(encoding="utf-8")

    print("\n  Starting ID Card Validator...")
    print("  Analyzing scanner input...\n")

    pipeline = IdentityScanPipeline()
    report = pipeline.run(raw_text)
    exit_code = print_report(report)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
