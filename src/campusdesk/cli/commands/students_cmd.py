from __future__ import annotations

import argparse
from pathlib import Path

from rich.panel import Panel
from rich.table import Table

from campusdesk.application.services.project_service import ProjectService
from campusdesk.application.services.student_service import StudentService
from campusdesk.cli.context import CLIContext
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo
from campusdesk.infrastructure.importers.table_reader import read_table


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("students", help="Student roster management")
    students_subparsers = parser.add_subparsers(dest="students_command", required=True)

    import_file = students_subparsers.add_parser("import", help="Bulk import students from .csv or .xlsx")
    import_file.add_argument("file_path", help="Path to the roster file")
    import_file.add_argument("--school-id", required=True)
    import_file.set_defaults(handler=run_import)

    list_students = students_subparsers.add_parser("list", help="List a school's students")
    list_students.add_argument("--school-id", required=True)
    list_students.add_argument("--class", dest="class_label", default=None)
    list_students.add_argument("--limit", type=int, default=500)
    list_students.set_defaults(handler=run_list)


def _build_service(ctx: CLIContext) -> StudentService:
    ProjectService(ctx.paths).require_initialized()
    return StudentService(StudentRepo(ctx.paths.db_path), school_repo=SchoolRepo(ctx.paths.db_path))


def run_import(args: argparse.Namespace, ctx: CLIContext) -> int:
    service = _build_service(ctx)
    path = Path(args.file_path)
    table = read_table(path.name, path.read_bytes())

    summary = service.upload_students(args.school_id, table)

    ctx.console.print(
        Panel.fit(
            "\n".join(
                [
                    f"Data rows: {len(table.rows)}",
                    f"Inserted: {summary.inserted_count}",
                    f"Failed: {summary.failed_count}",
                ]
            ),
            title="Student Import Summary",
        )
    )
    for error in summary.errors:
        ctx.console.print(f"[red]{error}[/red]")
    return 0 if not summary.errors else 1


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    students = _build_service(ctx).list_students(args.school_id, class_label=args.class_label, limit=args.limit)

    table = Table(title=f"Students ({len(students)})")
    table.add_column("Class")
    table.add_column("Roll", justify="right")
    table.add_column("Name")
    table.add_column("DOB")
    table.add_column("House")
    table.add_column("Parent Phone")
    table.add_column("ID")
    for student in students:
        table.add_row(
            student.class_label,
            str(student.roll_number),
            student.full_name,
            student.date_of_birth,
            student.house,
            student.parent_phone,
            student.id,
        )

    ctx.console.print(table)
    return 0
