from __future__ import annotations

import argparse

import uvicorn

from campusdesk.cli.context import CLIContext
from campusdesk.web.app import create_app


def register(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    parser = subparsers.add_parser("web", help="Run the HTTP API server")
    parser.add_argument("--host", default=None, help="Bind address (default: HTTP_HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: HTTP_PORT or 8080)")
    parser.set_defaults(handler=run)


def run(args: argparse.Namespace, ctx: CLIContext) -> int:
    app = create_app(ctx.paths, ctx.settings)
    host = args.host or ctx.settings.http_host
    port = args.port or ctx.settings.http_port
    ctx.console.print(f"[green]Serving[/green] http://{host}:{port} ({ctx.settings.env})")
    uvicorn.run(app, host=host, port=port)
    return 0
