from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from campusdesk.core.errors import ConfigurationError


@dataclass(frozen=True)
class AppPaths:
    project_root: Path
    data_dir: Path
    db_path: Path


@dataclass(frozen=True)
class AppSettings:
    env: str
    http_host: str
    http_port: int
    max_upload_bytes: int


DEFAULT_DATA_DIRNAME = ".campusdesk"
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 8080
DEFAULT_MAX_UPLOAD_BYTES = 20 << 20


def load_env_file(project_root: Path) -> None:
    """Load ``<root>/.env`` without overriding variables already set."""
    env_path = project_root / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)


def load_paths(project_root: Path | None = None) -> AppPaths:
    root = (project_root or Path.cwd()).expanduser().resolve()

    home_raw = os.getenv("CAMPUSDESK_HOME")
    if home_raw:
        data_dir = Path(home_raw).expanduser().resolve()
    else:
        data_dir = root / DEFAULT_DATA_DIRNAME

    return AppPaths(
        project_root=root,
        data_dir=data_dir,
        db_path=data_dir / "campusdesk.db",
    )


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> AppSettings:
    return AppSettings(
        env=os.getenv("APP_ENV") or "development",
        http_host=os.getenv("HTTP_HOST") or DEFAULT_HTTP_HOST,
        http_port=_read_int_env("HTTP_PORT", DEFAULT_HTTP_PORT),
        max_upload_bytes=_read_int_env("CAMPUSDESK_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
    )
