from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from campusdesk.core.config import AppPaths
from campusdesk.core.errors import ProjectNotInitializedError
from campusdesk.core.files import ensure_directory
from campusdesk.infrastructure.db.sqlite import SCHEMA_PATH, initialize_schema


@dataclass(slots=True)
class InitResult:
    data_dir_created: bool
    db_path: Path


class ProjectService:
    def __init__(self, paths: AppPaths) -> None:
        self.paths = paths

    def init_project(self) -> InitResult:
        created = not self.paths.data_dir.exists()
        ensure_directory(self.paths.data_dir)
        initialize_schema(self.paths.db_path, SCHEMA_PATH)
        return InitResult(data_dir_created=created, db_path=self.paths.db_path)

    def is_initialized(self) -> bool:
        return self.paths.db_path.exists()

    def require_initialized(self) -> None:
        if not self.is_initialized():
            raise ProjectNotInitializedError(
                f"Project is not initialized. Run 'campusdesk init' first in {self.paths.project_root}"
            )
