from __future__ import annotations

import argparse
from pathlib import Path

from rich.panel import Panel

from campusdesk.application.services.project_service import ProjectService
from campusdesk.application.services.score_service import ScoreService
from campusdesk.cli.context import CLIContext
from campusdesk.domain.models.ingestion import ScoreUploadRejected
from campusdesk.infrastructure.db.repos.exam_repo import ExamRepo
from campusdesk.infrastructure.db.repos.score_repo import ScoreRepo
from campusdesk.infrastructure.db.repos.student_repo import StudentRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("scores", help="Exam score management")
    scores_subparsers = parser.add_subparsers(dest="scores_command", required=True)

    import_file = scores_subparsers.add_parser(
        "import",
        help="Import an exam's scores from .csv or .xlsx (all rows or none)",
    )
    import_file.add_argument("file_path", help="Path to the score sheet")
    import_file.add_argument("--school-id", required=True)
    import_file.add_argument("--exam-id", required=True)
    import_file.set_defaults(handler=run_import)


def run_import(args: argparse.Namespace, ctx: CLIContext) -> int:
    ProjectService(ctx.paths).require_initialized()
    service = ScoreService(
        exam_repo=ExamRepo(ctx.paths.db_path),
        student_repo=StudentRepo(ctx.paths.db_path),
        score_repo=ScoreRepo(ctx.paths.db_path),
    )
    path = Path(args.file_path)

    outcome = service.upload_scores(args.school_id, args.exam_id, path.name, path.read_bytes())

    if isinstance(outcome, ScoreUploadRejected):
        ctx.console.print(
            Panel.fit(
                f"Rejected with {len(outcome.errors)} error(s); nothing was saved.",
                title="Score Import",
                border_style="red",
            )
        )
        for error in outcome.errors:
            ctx.console.print(f"[red]{error}[/red]")
        return 1

    ctx.console.print(Panel.fit(f"Inserted: {outcome.inserted}", title="Score Import", border_style="green"))
    return 0
