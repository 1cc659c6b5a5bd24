from __future__ import annotations

import argparse
from pathlib import Path

from rich.table import Table

from campusdesk.application.services.header_mapper import (
    SCORE_HEADER_ALIASES,
    STUDENT_HEADER_ALIASES,
    HeaderMapper,
)
from campusdesk.cli.context import CLIContext
from campusdesk.domain.models.ingestion import RawTable
from campusdesk.infrastructure.importers.table_reader import read_table


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("inspect", help="Decode a .csv/.xlsx file and show its first rows")
    parser.add_argument("file_path", help="Path to the spreadsheet")
    parser.add_argument("--rows", type=int, default=10, help="Number of data rows to show")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    path = Path(args.file_path)
    table = read_table(path.name, path.read_bytes())

    score_mapper = HeaderMapper(SCORE_HEADER_ALIASES)
    student_mapper = HeaderMapper(STUDENT_HEADER_ALIASES)

    mapping = Table(title="Header mapping")
    mapping.add_column("#", justify="right")
    mapping.add_column("Header")
    mapping.add_column("Score field")
    mapping.add_column("Student field")
    for position, header in enumerate(table.headers):
        mapping.add_row(
            str(position),
            header,
            score_mapper.canonical_for(header) or "",
            student_mapper.canonical_for(header) or "",
        )
    ctx.console.print(mapping)

    preview = Table(title=f"{path.name}: {len(table.rows)} data rows")
    preview.add_column("Row", justify="right")
    for header in table.headers:
        preview.add_column(header or "(blank)", overflow="fold")
    for row_number, record in table.numbered_rows():
        if row_number - 1 > args.rows:
            break
        preview.add_row(str(row_number), *(RawTable.cell(record, i) for i in range(len(table.headers))))
    ctx.console.print(preview)
    return 0
