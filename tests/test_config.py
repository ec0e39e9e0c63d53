"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from ppt_service.config import MAX_UPLOAD_BYTES, STATIC_DIR, ServiceConfig


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PORT", "UPLOAD_DIR", "OUTPUT_DIR", "MAX_UPLOAD_MB", "MAX_BATCH_FILES", "RELOAD", "SOFFICE_BIN"):
        monkeypatch.delenv(name, raising=False)

    config = ServiceConfig.from_env()

    assert config.port == 3000
    assert config.max_upload_bytes == MAX_UPLOAD_BYTES == 52_428_800
    assert config.max_batch_files == 10
    assert config.upload_dir == Path("./uploads").resolve()
    assert config.output_dir == Path("./output").resolve()
    assert config.static_dir == STATIC_DIR
    assert (STATIC_DIR / "index.html").is_file()
    assert config.soffice_bin is None
    assert config.reload is False
    assert config.workers >= 1


def test_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "in"))
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("MAX_UPLOAD_MB", "5")
    monkeypatch.setenv("WORKERS", "3")
    monkeypatch.setenv("JOB_TIMEOUT_SEC", "12.5")
    monkeypatch.setenv("SOFFICE_BIN", "/opt/lo/soffice")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("RELOAD", "yes")

    config = ServiceConfig.from_env()

    assert config.port == 8080
    assert config.upload_dir == tmp_path / "in"
    assert config.output_dir == tmp_path / "out"
    assert config.max_upload_bytes == 5 * 1024 * 1024
    assert config.workers == 3
    assert config.job_timeout_sec == 12.5
    assert config.soffice_bin == "/opt/lo/soffice"
    assert config.log_level == "DEBUG"
    assert config.reload is True
