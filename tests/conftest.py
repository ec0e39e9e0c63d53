"""Shared fixtures: isolated directories and an in-process converter."""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from ppt_service.config import ServiceConfig
from ppt_service.errors import ConversionError

PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PPT_MIME = "application/vnd.ms-powerpoint"


class FakeConverter:
    """Prefixes input with a PDF header. Inputs starting with CORRUPT fail.

    Inputs of the form ``SLEEP:<seconds>:...`` block for that long first.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[bytes, str, str]] = []
        self.max_in_flight = 0
        self._in_flight = 0
        self._lock = threading.Lock()

    def convert(self, data: bytes, target_extension: str, *, source_suffix: str = "") -> bytes:
        with self._lock:
            self.calls.append((data, target_extension, source_suffix))
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if data.startswith(b"SLEEP:"):
                time.sleep(float(data.split(b":")[1].decode()))
            if data.startswith(b"CORRUPT"):
                raise ConversionError("source file could not be loaded", stage="convert")
            return b"%PDF-1.4\n" + data
        finally:
            with self._lock:
                self._in_flight -= 1


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def config(tmp_path: Path) -> ServiceConfig:
    return ServiceConfig(
        upload_dir=tmp_path / "uploads",
        output_dir=tmp_path / "output",
        workers=2,
        job_timeout_sec=5,
    )
