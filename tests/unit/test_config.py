from __future__ import annotations

import os
from pathlib import Path

import pytest

from campusdesk.core.config import load_env_file, load_paths, load_settings
from campusdesk.core.errors import ConfigurationError


def test_load_paths_defaults_under_project_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CAMPUSDESK_HOME", raising=False)

    paths = load_paths(tmp_path)

    assert paths.project_root == tmp_path.resolve()
    assert paths.data_dir == tmp_path.resolve() / ".campusdesk"
    assert paths.db_path == paths.data_dir / "campusdesk.db"


def test_load_paths_honours_campusdesk_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAMPUSDESK_HOME", str(tmp_path / "data"))

    paths = load_paths(tmp_path / "proj")

    assert paths.data_dir == (tmp_path / "data").resolve()


def test_load_settings_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("HTTP_PORT", "9090")
    monkeypatch.delenv("HTTP_HOST", raising=False)
    monkeypatch.delenv("CAMPUSDESK_MAX_UPLOAD_BYTES", raising=False)

    settings = load_settings()

    assert settings.env == "production"
    assert settings.http_host == "127.0.0.1"
    assert settings.http_port == 9090
    assert settings.max_upload_bytes == 20 << 20


def test_load_settings_rejects_bad_integers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTP_PORT", "eighty")
    with pytest.raises(ConfigurationError, match="HTTP_PORT"):
        load_settings()


def test_env_file_does_not_override_existing_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.delenv("HTTP_HOST", raising=False)
    (tmp_path / ".env").write_text("APP_ENV=production\nHTTP_HOST=0.0.0.0\n", encoding="utf-8")

    load_env_file(tmp_path)
    try:
        settings = load_settings()
        assert settings.env == "test"
        assert settings.http_host == "0.0.0.0"
    finally:
        os.environ.pop("HTTP_HOST", None)
