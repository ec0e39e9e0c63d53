import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from loguru import logger

from ..config import ALLOWED_MIME, MAX_UPLOAD_BYTES
from ..errors import (
    ConversionError,
    FileTooLargeError,
    InvalidFileTypeError,
    UploadValidationError,
)
from .interfaces import ConverterGateway, RawUpload, StorageGateway, UploadedFile

CHUNK_SIZE = 1024 * 1024
GENERIC_CONVERSION_ERROR = "Failed to convert file"


class FailureStage:
    READ = "read"
    CONVERT = "convert"
    WRITE = "write"
    TIMEOUT = "timeout"
    INVALID_TYPE = "invalid_type"
    TOO_LARGE = "too_large"


@dataclass(frozen=True)
class ConversionJob:
    input: UploadedFile
    output_path: str | None = None
    error: str | None = None
    error_code: str | None = None

    def __post_init__(self) -> None:
        if (self.output_path is None) == (self.error is None):
            raise ValueError("a conversion job has exactly one of output_path or error")

    @property
    def succeeded(self) -> bool:
        return self.output_path is not None

    @property
    def converted_name(self) -> str | None:
        return Path(self.output_path).name if self.output_path else None


@dataclass(frozen=True)
class ConversionResult:
    """Client-facing view of one file's outcome."""

    original_name: str
    converted_name: str | None = None
    download_link: str | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def from_job(cls, job: ConversionJob) -> "ConversionResult":
        if job.succeeded:
            name = job.converted_name
            return cls(job.input.original_name, converted_name=name, download_link=download_link(name))
        return cls(job.input.original_name, error=job.error, error_code=job.error_code)

    @classmethod
    def rejected(cls, original_name: str, exc: UploadValidationError) -> "ConversionResult":
        return cls(original_name, error=exc.message, error_code=exc.code)

    def to_dict(self) -> dict[str, str]:
        if self.error is not None:
            body = {"originalName": self.original_name, "error": self.error}
            if self.error_code:
                body["errorCode"] = self.error_code
            return body
        return {
            "originalName": self.original_name,
            "convertedName": str(self.converted_name),
            "downloadLink": str(self.download_link),
        }


def download_link(converted_name: str | None) -> str:
    return f"/download/{converted_name}"


def output_name_for(staged: UploadedFile) -> str:
    return Path(staged.stored_path).stem + ".pdf"


def normalize_mime(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


class ConversionService:
    """Core domain service: upload intake and conversion orchestration.

    Framework-agnostic. Blocking work (disk I/O, the converter call) runs in
    worker threads; batch concurrency is bounded by ``workers``.
    """

    def __init__(
        self,
        storage: StorageGateway,
        converter: ConverterGateway,
        *,
        workers: int = 4,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._storage = storage
        self._converter = converter
        self._workers = workers
        self._max_upload_bytes = max_upload_bytes

    # Upload intake

    def validate(self, upload: RawUpload) -> str:
        """Check type and declared size. Returns the normalized MIME type."""
        mime = normalize_mime(upload.content_type)
        if mime not in ALLOWED_MIME:
            raise InvalidFileTypeError("Only PowerPoint files are allowed!")
        if upload.size is not None and upload.size > self._max_upload_bytes:
            raise FileTooLargeError(self._too_large_message())
        return mime

    async def intake_one(self, upload: RawUpload) -> UploadedFile:
        """Validate and persist one upload into the staging directory.

        Nothing is left in the staging directory for a rejected upload.
        """
        mime = self.validate(upload)
        path = self._storage.new_staged_path(upload.filename)
        size_bytes = 0
        try:
            with path.open("wb") as f_out:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size_bytes += len(chunk)
                    if size_bytes > self._max_upload_bytes:
                        raise FileTooLargeError(self._too_large_message())
                    f_out.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.info("Staged {} as {} ({} bytes)", upload.filename, path.name, size_bytes)
        return UploadedFile(
            original_name=upload.filename,
            stored_path=str(path),
            mime_type=mime,
            size_bytes=size_bytes,
        )

    async def intake(self, uploads: Sequence[RawUpload]) -> list[UploadedFile]:
        return [await self.intake_one(upload) for upload in uploads]

    def _too_large_message(self) -> str:
        limit_mb = self._max_upload_bytes / (1024 * 1024)
        return f"File too large (max {limit_mb:g}MB)"

    # Conversion

    def convert_one(self, staged: UploadedFile) -> ConversionJob:
        """Convert one staged file to PDF. Blocking; never raises for conversion failures."""
        started = time.monotonic()
        stage = FailureStage.READ
        try:
            try:
                data = self._storage.read_staged(staged.stored_path)
            except OSError as exc:
                raise ConversionError(f"cannot read {staged.stored_path}: {exc}", stage=FailureStage.READ) from exc

            stage = FailureStage.CONVERT
            pdf = self._converter.convert(data, ".pdf", source_suffix=Path(staged.stored_path).suffix)
            if not pdf:
                raise ConversionError("converter returned no data", stage=FailureStage.CONVERT)

            stage = FailureStage.WRITE
            try:
                output_path = self._storage.write_output(output_name_for(staged), pdf)
            except OSError as exc:
                raise ConversionError(f"cannot write output: {exc}", stage=FailureStage.WRITE) from exc
        except Exception as exc:
            code = exc.stage if isinstance(exc, ConversionError) else stage
            logger.opt(exception=exc).error(
                "Error converting file {} (stage={})", staged.original_name, code
            )
            return ConversionJob(input=staged, error=GENERIC_CONVERSION_ERROR, error_code=code)

        logger.info(
            "Converted {} -> {} in {:.2f}s",
            staged.original_name,
            output_path.name,
            time.monotonic() - started,
        )
        return ConversionJob(input=staged, output_path=str(output_path))

    async def convert_many(self, staged: Sequence[UploadedFile]) -> list[ConversionJob]:
        """Convert files concurrently; the result list is in submission order."""
        slots: list[ConversionJob | None] = [None] * len(staged)
        semaphore = asyncio.Semaphore(self._workers)

        async def run(index: int, item: UploadedFile) -> None:
            async with semaphore:
                slots[index] = await asyncio.to_thread(self.convert_one, item)

        await asyncio.gather(*(run(i, item) for i, item in enumerate(staged)))
        return [job for job in slots if job is not None]

    async def convert_single(self, staged: UploadedFile) -> ConversionJob:
        jobs = await self.convert_many([staged])
        return jobs[0]

    async def process_batch(self, uploads: Sequence[RawUpload]) -> list[ConversionResult]:
        """Intake and convert a batch, reporting one result per upload in order.

        Uploads rejected by validation are reported in place and never staged.
        """
        results: list[ConversionResult | None] = [None] * len(uploads)
        staged: list[UploadedFile] = []
        positions: list[int] = []
        for index, upload in enumerate(uploads):
            try:
                staged.append(await self.intake_one(upload))
                positions.append(index)
            except UploadValidationError as exc:
                logger.warning("Rejected {}: {}", upload.filename, exc.message)
                results[index] = ConversionResult.rejected(upload.filename, exc)

        jobs = await self.convert_many(staged)
        for index, job in zip(positions, jobs):
            results[index] = ConversionResult.from_job(job)
        return [result for result in results if result is not None]

    def resolve_download(self, filename: str) -> Path:
        return self._storage.resolve_output(filename)
