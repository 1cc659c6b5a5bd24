from __future__ import annotations

import csv
import io

from campusdesk.core.errors import SpreadsheetDecodeError


def parse_csv_rows(data: bytes) -> list[list[str]]:
    """Decode comma-delimited bytes into trimmed records, dropping blank lines."""
    text = data.decode("utf-8-sig", errors="replace")
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=",", skipinitialspace=True, strict=True)
    rows: list[list[str]] = []
    try:
        for record in reader:
            if not record:
                continue
            rows.append([str(v).strip() for v in record])
    except csv.Error as exc:
        raise SpreadsheetDecodeError("failed to parse csv file") from exc
    return rows
