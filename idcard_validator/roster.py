"""
Identity roster — ordered, de-duplicated collection of accepted records,
with spreadsheet export.

A national ID appears at most once. Export writes one flat row per record
through pandas (openpyxl engine); phone numbers are exported digits-only.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import IO, Iterable, Iterator, Union

import pandas as pd

from .exceptions import DuplicateRecordError
from .models import IdentityRecord

logger = logging.getLogger(__name__)

SHEET_NAME = "Identity Records"
DEFAULT_EXPORT_FILENAME = "identity_records.xlsx"

EXPORT_COLUMNS: tuple[str, ...] = (
    "National ID",
    "Birth Date",
    "Phone",
    "Guardian Phone",
)

_NON_DIGITS = re.compile(r"\D")


def _digits_only(value: str | None) -> str:
    return _NON_DIGITS.sub("", value) if value else ""


class IdentityRoster:
    """In-memory list of identity records keyed by national ID.

    Usage:
        roster = IdentityRoster()
        roster.add(record)          # raises DuplicateRecordError on repeats
        roster.export_xlsx("out.xlsx")
    """

    def __init__(self, records: Iterable[IdentityRecord] | None = None):
        self._records: list[IdentityRecord] = []
        for record in records or []:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[IdentityRecord]:
        return iter(self._records)

    def __contains__(self, national_id: object) -> bool:
        return any(r.national_id == national_id for r in self._records)

    @property
    def records(self) -> list[IdentityRecord]:
        return list(self._records)

    def add(self, record: IdentityRecord) -> None:
        """Append a record.

        Raises:
            DuplicateRecordError: the national ID is already present.
        """
        if record.national_id in self:
            raise DuplicateRecordError(
                f"Identity {record.national_id} has already been added.",
                details={"national_id": record.national_id},
            )
        self._records.append(record)
        logger.info("Added identity record from %s", record.source.value)

    def remove(self, national_id: str) -> bool:
        """Remove the record with ``national_id``; False if it was absent."""
        before = len(self._records)
        self._records = [r for r in self._records if r.national_id != national_id]
        return len(self._records) < before

    def to_rows(self) -> list[dict[str, str]]:
        """Flat export rows in EXPORT_COLUMNS order."""
        return [
            dict(zip(EXPORT_COLUMNS, (
                record.national_id,
                record.birth_date,
                _digits_only(record.phone),
                _digits_only(record.guardian_phone),
            )))
            for record in self._records
        ]

    def export_xlsx(self, target: Union[str, Path, IO[bytes]]) -> None:
        """Write the roster as a single-sheet .xlsx workbook.

        Raises:
            ValueError: the roster is empty.
        """
        if not self._records:
            raise ValueError("There are no records to export.")

        df = pd.DataFrame(self.to_rows(), columns=list(EXPORT_COLUMNS))
        # National IDs and dates must stay text, not become numbers.
        df = df.astype(str)
        df.to_excel(target, sheet_name=SHEET_NAME, index=False, engine="openpyxl")
        logger.info("Exported %d identity record(s)", len(self._records))

    def export_xlsx_bytes(self) -> bytes:
        """The .xlsx workbook as bytes (for HTTP downloads)."""
        buffer = io.BytesIO()
        self.export_xlsx(buffer)
        return buffer.getvalue()
