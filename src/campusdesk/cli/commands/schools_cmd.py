from __future__ import annotations

import argparse

from rich.table import Table

from campusdesk.application.services.project_service import ProjectService
from campusdesk.application.services.school_service import SchoolService
from campusdesk.cli.context import CLIContext
from campusdesk.infrastructure.db.repos.school_repo import SchoolRepo


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("schools", help="School management")
    schools_subparsers = parser.add_subparsers(dest="schools_command", required=True)

    add = schools_subparsers.add_parser("add", help="Register a school")
    add.add_argument("name")
    add.add_argument("--state", default="")
    add.add_argument("--district", default="")
    add.set_defaults(handler=run_add)

    list_schools = schools_subparsers.add_parser("list", help="List schools")
    list_schools.add_argument("--limit", type=int, default=200)
    list_schools.set_defaults(handler=run_list)


def _build_service(ctx: CLIContext) -> SchoolService:
    ProjectService(ctx.paths).require_initialized()
    return SchoolService(SchoolRepo(ctx.paths.db_path))


def run_add(args: argparse.Namespace, ctx: CLIContext) -> int:
    school = _build_service(ctx).create_school(args.name, state=args.state, district=args.district)
    ctx.console.print(f"[green]Added school[/green] {school.name} ({school.id})")
    return 0


def run_list(args: argparse.Namespace, ctx: CLIContext) -> int:
    schools = _build_service(ctx).list_schools(limit=args.limit)

    table = Table(title=f"Schools ({len(schools)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("District")
    for school in schools:
        table.add_row(school.id, school.name, school.state, school.district)

    ctx.console.print(table)
    return 0
