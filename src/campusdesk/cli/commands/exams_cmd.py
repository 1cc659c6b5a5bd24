from __future__ import annotations

import argparse

from rich.table import Table

from campusdesk.application.services.exam_service import ExamService
from campusdesk.application.services.project_service import ProjectService
from campusdesk.cli.context import CLIContext
from campusdesk.infrastructure.db.repos.exam_repo import ExamRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("exams", help="Exam management")
    exams_subparsers = parser.add_subparsers(dest="exams_command", required=True)

    add = exams_subparsers.add_parser("add", help="Create an exam for a class")
    add.add_argument("--school-id", required=True)
    add.add_argument("--class", dest="class_label", required=True)
    add.add_argument("--title", required=True)
    add.add_argument("--term", default="")
    add.add_argument("--date", dest="exam_date", required=True, help="Exam date as YYYY-MM-DD")
    add.set_defaults(handler=run_add)

    list_exams = exams_subparsers.add_parser("list", help="List a school's exams")
    list_exams.add_argument("--school-id", required=True)
    list_exams.add_argument("--limit", type=int, default=200)
    list_exams.set_defaults(handler=run_list)


def _build_service(ctx: CLIContext) -> ExamService:
    ProjectService(ctx.paths).require_initialized()
    return ExamService(ExamRepo(ctx.paths.db_path))


def run_add(args: argparse.Namespace, ctx: CLIContext) -> int:
    exam = _build_service(ctx).create_exam(
        args.school_id,
        class_label=args.class_label,
        title=args.title,
        term=args.term,
        exam_date=args.exam_date,
    )
    ctx.console.print(f"[green]Added exam[/green] {exam.title} for class {exam.class_label} ({exam.id})")
    return 0


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    exams = _build_service(ctx).list_exams(args.school_id, limit=args.limit)

    table = Table(title=f"Exams ({len(exams)})")
    table.add_column("ID")
    table.add_column("Class")
    table.add_column("Title")
    table.add_column("Term")
    table.add_column("Date")
    for exam in exams:
        table.add_row(exam.id, exam.class_label, exam.title, exam.term, exam.exam_date)

    ctx.console.print(table)
    return 0
