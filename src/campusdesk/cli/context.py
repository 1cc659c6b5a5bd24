from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console

from campusdesk.core.config import AppPaths, AppSettings


@dataclass(slots=True)
class CLIContext:
    paths: AppPaths
    settings: AppSettings
    console: Console
