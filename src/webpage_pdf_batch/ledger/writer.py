from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font

from ..models import OutcomeRecord
from ..settings import TEXT_LEDGER_NAME, XLSX_LEDGER_NAME

LOGGER = logging.getLogger(__name__)

SHEET_TITLE = "URLs Requiring Sign-in"
HEADERS = ("URL", "Status", "Notes")
COLUMN_WIDTHS = {"A": 100, "B": 20, "C": 50}


def _replace_atomically(path: Path, write: Callable[[Path], None]) -> None:
    """Write into a sibling temp file, then swap it over `path` in one rename."""
    directory = path.parent
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        write(tmp_path)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class OutcomeLedgerWriter:
    """Persists the full ordered record set on every flush; never appends."""

    file_name = ""

    def __init__(self, output_dir: Path) -> None:
        self.path = output_dir / self.file_name

    def flush(self, records: Sequence[OutcomeRecord]) -> Path:
        _replace_atomically(self.path, lambda tmp: self._write(tmp, records))
        LOGGER.debug("Ledger flushed: %d record(s) -> %s", len(records), self.path)
        return self.path

    def _write(self, path: Path, records: Sequence[OutcomeRecord]) -> None:
        raise NotImplementedError


class XlsxLedgerWriter(OutcomeLedgerWriter):
    file_name = XLSX_LEDGER_NAME

    def _write(self, path: Path, records: Sequence[OutcomeRecord]) -> None:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = SHEET_TITLE
        sheet.append(HEADERS)
        for column, width in COLUMN_WIDTHS.items():
            sheet.column_dimensions[column].width = width

        for record in records:
            sheet.append((record.url, record.status, record.notes or None))
            url_cell = sheet.cell(row=sheet.max_row, column=1)
            url_cell.hyperlink = record.url
            url_cell.font = Font(color="0563C1", underline="single")

        workbook.save(path)


class TextLedgerWriter(OutcomeLedgerWriter):
    """One URL per line; status and notes are not kept in this format."""

    file_name = TEXT_LEDGER_NAME

    def _write(self, path: Path, records: Sequence[OutcomeRecord]) -> None:
        with open(path, "w", encoding="utf-8", newline="\n") as handle:
            for record in records:
                handle.write(record.url + "\n")


LEDGER_WRITERS: dict[str, type[OutcomeLedgerWriter]] = {
    "xlsx": XlsxLedgerWriter,
    "txt": TextLedgerWriter,
}


def build_ledger_writer(ledger_format: str, output_dir: Path) -> OutcomeLedgerWriter:
    try:
        writer_cls = LEDGER_WRITERS[ledger_format]
    except KeyError as exc:
        raise ValueError(
            f"Unknown ledger format {ledger_format!r}; expected one of {sorted(LEDGER_WRITERS)}"
        ) from exc
    return writer_cls(output_dir)
