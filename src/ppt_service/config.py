import os
from dataclasses import dataclass, field
from pathlib import Path

ALLOWED_MIME = frozenset(
    {
        "application/vnd.ms-powerpoint",  # .ppt
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",  # .pptx
    }
)

MAX_UPLOAD_BYTES = 50 * 1024 * 1024

STATIC_DIR = Path(__file__).resolve().parent / "static"


def _default_workers() -> int:
    return max(1, min(4, os.cpu_count() or 1))


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ServiceConfig:
    """Runtime settings. Directory roots are injectable so tests can isolate them."""

    upload_dir: Path = Path("./uploads")
    output_dir: Path = Path("./output")
    static_dir: Path = STATIC_DIR
    host: str = "0.0.0.0"
    port: int = 3000
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    max_batch_files: int = 10
    workers: int = field(default_factory=_default_workers)
    job_timeout_sec: float = 300.0
    soffice_bin: str | None = None
    port_search_limit: int = 1000
    log_level: str = "INFO"
    reload: bool = False

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        max_upload_mb = int(os.getenv("MAX_UPLOAD_MB", "50"))
        return cls(
            upload_dir=Path(os.getenv("UPLOAD_DIR", "./uploads")).resolve(),
            output_dir=Path(os.getenv("OUTPUT_DIR", "./output")).resolve(),
            static_dir=Path(os.getenv("STATIC_DIR", str(STATIC_DIR))).resolve(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            max_upload_bytes=max_upload_mb * 1024 * 1024,
            max_batch_files=int(os.getenv("MAX_BATCH_FILES", "10")),
            workers=int(os.getenv("WORKERS", str(_default_workers()))),
            job_timeout_sec=float(os.getenv("JOB_TIMEOUT_SEC", "300")),
            soffice_bin=os.getenv("SOFFICE_BIN") or None,
            port_search_limit=int(os.getenv("PORT_SEARCH_LIMIT", "1000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            reload=_env_flag("RELOAD"),
        )
