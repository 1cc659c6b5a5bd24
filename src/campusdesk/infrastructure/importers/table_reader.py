from __future__ import annotations

import logging
from pathlib import Path

from campusdesk.core.errors import SpreadsheetDecodeError
from campusdesk.domain.models.ingestion import RawTable
from campusdesk.infrastructure.importers.csv_table_reader import parse_csv_rows
from campusdesk.infrastructure.importers.xlsx_table_reader import parse_xlsx_rows

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".xlsx")


def resolve_table_format(filename: str | None) -> str:
    suffix = Path(filename or "").suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise SpreadsheetDecodeError("supported file types: .csv, .xlsx")
    return suffix.lstrip(".")


def read_table(filename: str | None, data: bytes) -> RawTable:
    """Decode an uploaded spreadsheet into a header row plus data rows."""
    fmt = resolve_table_format(filename)
    if fmt == "csv":
        records = parse_csv_rows(data)
    else:
        records = parse_xlsx_rows(data)
    if not records:
        raise SpreadsheetDecodeError("file is empty")

    table = RawTable.from_records(records)
    logger.debug(
        "Decoded %s upload %s: %d columns, %d data rows",
        fmt,
        filename,
        len(table.headers),
        len(table.rows),
    )
    return table
