import os
import re
import secrets
import shutil
import subprocess
import tempfile
import time
from pathlib import Path

from loguru import logger

from ..errors import ConversionError, DownloadNotFoundError
from .interfaces import ConverterGateway, StorageGateway

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._ -]")
_DOT_RUNS = re.compile(r"\.{2,}")

# Checked after SOFFICE_BIN and PATH lookup
_SOFFICE_LOCATIONS = (
    "/usr/bin/soffice",
    "/usr/bin/libreoffice",
    "/usr/local/bin/soffice",
    "/usr/lib/libreoffice/program/soffice",
    "/opt/libreoffice/program/soffice",
    "/snap/bin/libreoffice",
    "/Applications/LibreOffice.app/Contents/MacOS/soffice",
    r"C:\Program Files\LibreOffice\program\soffice.exe",
    r"C:\Program Files (x86)\LibreOffice\program\soffice.exe",
)


def safe_filename(name: str) -> str:
    """Reduce a client-supplied filename to a safe basename."""
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE_CHARS.sub("_", base)
    # downloads reject "..", so it must not reach a staged name
    base = _DOT_RUNS.sub(".", base).strip().lstrip(".")
    return base or "upload"


_SOURCE_SUFFIX = re.compile(r"\.[A-Za-z0-9]{1,8}")


def _source_suffix(suffix: str) -> str:
    suffix = suffix.lower()
    return suffix if _SOURCE_SUFFIX.fullmatch(suffix) else ""


def is_safe_download_name(filename: str) -> bool:
    if not filename or filename != filename.strip():
        return False
    if any(sep in filename for sep in ("/", "\\", "\x00", "..")):
        return False
    return not os.path.isabs(filename)


class LocalStorage(StorageGateway):
    def __init__(self, upload_dir: str | Path, output_dir: str | Path) -> None:
        self._uploads = Path(upload_dir).resolve()
        self._output = Path(output_dir).resolve()

    @property
    def upload_dir(self) -> Path:
        return self._uploads

    @property
    def output_dir(self) -> Path:
        return self._output

    def new_staged_path(self, original_name: str) -> Path:
        """Allocate ``<unix millis>-<random hex>-<safe name>`` inside the staging dir."""
        self._uploads.mkdir(parents=True, exist_ok=True)
        millis = int(time.time() * 1000)
        return self._uploads / f"{millis}-{secrets.token_hex(4)}-{safe_filename(original_name)}"

    def read_staged(self, path: str) -> bytes:
        return Path(path).read_bytes()

    def write_output(self, filename: str, data: bytes) -> Path:
        self._output.mkdir(parents=True, exist_ok=True)
        target = self._output / filename
        partial = target.with_name(target.name + ".part")
        partial.write_bytes(data)
        os.replace(partial, target)
        return target

    def resolve_output(self, filename: str) -> Path:
        if not is_safe_download_name(filename):
            raise DownloadNotFoundError(f"rejected download name {filename!r}")
        candidate = (self._output / filename).resolve()
        if candidate.parent != self._output or not candidate.is_file():
            raise DownloadNotFoundError(f"{filename} not found in output directory")
        return candidate


class LibreOfficeConverter(ConverterGateway):
    """Runs headless LibreOffice on a private temp dir per call."""

    def __init__(self, soffice_bin: str | None = None, *, timeout_sec: float = 300.0) -> None:
        self._soffice_bin = soffice_bin
        self._timeout_sec = timeout_sec

    def binary(self) -> str:
        if self._soffice_bin:
            return self._soffice_bin
        for name in ("soffice", "libreoffice"):
            found = shutil.which(name)
            if found:
                return found
        for candidate in _SOFFICE_LOCATIONS:
            if Path(candidate).exists():
                return candidate
        raise ConversionError("LibreOffice executable not found; set SOFFICE_BIN", stage="convert")

    def convert(self, data: bytes, target_extension: str, *, source_suffix: str = "") -> bytes:
        fmt = target_extension.lstrip(".").lower()
        if not fmt:
            raise ValueError("target_extension must not be empty")
        binary = self.binary()
        with tempfile.TemporaryDirectory(prefix="ppt-service-") as tmp:
            work = Path(tmp)
            # LibreOffice picks its import filter from the extension
            source = work / f"source{_source_suffix(source_suffix)}"
            source.write_bytes(data)
            out_dir = work / "out"
            out_dir.mkdir()
            # A private profile lets several soffice processes run side by side
            profile = (work / "profile").as_uri()
            cmd = [
                binary,
                f"-env:UserInstallation={profile}",
                "--headless",
                "--norestore",
                "--convert-to",
                fmt,
                "--outdir",
                str(out_dir),
                str(source),
            ]
            logger.debug("Running {}", " ".join(cmd))
            try:
                subprocess.run(cmd, check=True, capture_output=True, timeout=self._timeout_sec)
            except subprocess.TimeoutExpired as exc:
                raise ConversionError(
                    f"LibreOffice timed out after {self._timeout_sec}s", stage="timeout"
                ) from exc
            except subprocess.CalledProcessError as exc:
                stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
                raise ConversionError(
                    f"LibreOffice exited with status {exc.returncode}: {stderr}", stage="convert"
                ) from exc
            except OSError as exc:
                raise ConversionError(f"could not start LibreOffice: {exc}", stage="convert") from exc

            result = out_dir / f"{source.stem}.{fmt}"
            if not result.exists():
                raise ConversionError("LibreOffice produced no output file", stage="convert")
            return result.read_bytes()
