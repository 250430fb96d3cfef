from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Iterator

from openpyxl import load_workbook
from pydantic import ValidationError

from ..models import UrlEntry

LOGGER = logging.getLogger(__name__)

URL_COLUMN = "URL"


class BatchInputError(RuntimeError):
    pass


def clean_input_path(raw: str) -> Path:
    """Strip whitespace and the quotes terminals add to drag-and-dropped paths."""
    return Path(raw.strip().replace('"', "").replace("'", ""))


def _entries_from_rows(rows: Iterable[dict[str, object]]) -> Iterator[UrlEntry]:
    for row in rows:
        raw = row.get(URL_COLUMN)
        if raw is None:
            continue
        try:
            yield UrlEntry(url=str(raw))
        except ValidationError:
            continue


def _read_csv_rows(path: Path) -> list[dict[str, object]]:
    # utf-8-sig drops the BOM spreadsheet exports put in front of the header.
    with open(path, newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        if URL_COLUMN not in (reader.fieldnames or []):
            raise BatchInputError(f"No {URL_COLUMN!r} column in {path}")
        return list(reader)


def _read_xlsx_rows(path: Path) -> list[dict[str, object]]:
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None) or ()
        columns = [str(cell).strip() if cell is not None else "" for cell in header]
        if URL_COLUMN not in columns:
            raise BatchInputError(f"No {URL_COLUMN!r} column in {path}")
        return [dict(zip(columns, values)) for values in rows]
    finally:
        workbook.close()


def read_url_entries(path: Path) -> list[UrlEntry]:
    """Load the URL column of a .csv or .xlsx file, dropping blank cells."""
    if not path.is_file():
        raise BatchInputError(f"Input file not found at: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".xlsx":
            rows = _read_xlsx_rows(path)
        elif suffix in (".csv", ".txt", ""):
            rows = _read_csv_rows(path)
        else:
            raise BatchInputError(f"Unsupported input format {suffix!r}; use .csv or .xlsx")
    except BatchInputError:
        raise
    except Exception as exc:
        raise BatchInputError(f"Error reading input file {path}: {exc}") from exc

    entries = list(_entries_from_rows(rows))
    LOGGER.info("Found %d URLs in %s", len(entries), path.name)
    return entries
