from fastapi import FastAPI, File, Request, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger

from ppt_service import __version__
from ppt_service.config import ServiceConfig
from ppt_service.conversion import ConversionResult, ConversionService, ConverterGateway, RawUpload
from ppt_service.conversion.adapters import LibreOfficeConverter, LocalStorage
from ppt_service.errors import (
    DownloadNotFoundError,
    NoFileUploadedError,
    PortUnavailableError,
    TooManyFilesError,
    UploadValidationError,
)
from ppt_service.log import setup_logging
from ppt_service.ports import find_available_port

CONVERT_FAILED = "Failed to convert file"
BATCH_FAILED = "Failed to process files"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _raw_upload(file: UploadFile) -> RawUpload:
    return RawUpload(
        filename=file.filename or "upload",
        content_type=file.content_type or "",
        read=file.read,
        size=file.size,
    )


def create_app(config: ServiceConfig | None = None, converter: ConverterGateway | None = None) -> FastAPI:
    """Build the HTTP application.

    ``config`` defaults to the environment; ``converter`` defaults to headless
    LibreOffice. Both are injectable so tests can run against temp dirs and a
    fake engine.
    """
    config = config or ServiceConfig.from_env()
    if converter is None:
        converter = LibreOfficeConverter(config.soffice_bin, timeout_sec=config.job_timeout_sec)
    storage = LocalStorage(config.upload_dir, config.output_dir)
    service = ConversionService(
        storage,
        converter,
        workers=config.workers,
        max_upload_bytes=config.max_upload_bytes,
    )

    app = FastAPI(
        title="PPT to PDF Conversion Service",
        version=__version__,
        description="Upload PowerPoint presentations and download them converted to PDF.",
    )
    app.state.config = config
    app.state.service = service

    @app.exception_handler(UploadValidationError)
    async def _validation_error(request: Request, exc: UploadValidationError) -> JSONResponse:
        logger.warning("{} {} rejected: {}", request.method, request.url.path, exc.message)
        return _error(status.HTTP_400_BAD_REQUEST, exc.message)

    @app.exception_handler(DownloadNotFoundError)
    async def _not_found(request: Request, exc: DownloadNotFoundError) -> JSONResponse:
        logger.info("Download miss: {}", exc.message)
        return _error(status.HTTP_404_NOT_FOUND, "File not found")

    @app.get("/health")
    def health() -> dict[str, str]:
        """Basic health check endpoint."""
        return {"status": "ok"}

    @app.post("/convert")
    async def convert(pptFile: UploadFile | None = File(None)) -> JSONResponse:
        """Convert a single presentation uploaded as multipart field ``pptFile``."""
        if pptFile is None or not pptFile.filename:
            raise NoFileUploadedError("No file uploaded")

        try:
            staged = await service.intake_one(_raw_upload(pptFile))
        except OSError:
            logger.exception("Error staging upload {}", pptFile.filename)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, CONVERT_FAILED)

        job = await service.convert_single(staged)
        if not job.succeeded:
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, CONVERT_FAILED)

        result = ConversionResult.from_job(job)
        return JSONResponse(
            content={"message": "File converted successfully", "downloadLink": result.download_link}
        )

    @app.post("/convert-multiple")
    async def convert_multiple(pptFiles: list[UploadFile] | None = File(None)) -> JSONResponse:
        """Convert up to ``max_batch_files`` presentations uploaded as ``pptFiles``.

        Every file gets one entry in ``results``, in upload order, carrying
        either a download link or an error.
        """
        files = [f for f in (pptFiles or []) if f.filename]
        if not files:
            raise NoFileUploadedError("No files uploaded")
        if len(files) > config.max_batch_files:
            raise TooManyFilesError("Too many files uploaded")

        try:
            results = await service.process_batch([_raw_upload(f) for f in files])
        except Exception:
            logger.exception("Error processing files")
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, BATCH_FAILED)

        return JSONResponse(
            content={"message": "Files processed", "results": [r.to_dict() for r in results]}
        )

    @app.get("/download/{filename}")
    async def download(filename: str) -> FileResponse:
        path = service.resolve_download(filename)
        return FileResponse(path, media_type="application/pdf", filename=path.name)

    # Registered last so the API routes above take precedence
    app.mount("/", StaticFiles(directory=config.static_dir, html=True, check_dir=False), name="static")
    return app


def run() -> None:
    """Run the service with uvicorn on the first free port at or above PORT (default 3000)."""
    import uvicorn

    config = ServiceConfig.from_env()
    setup_logging(config.log_level)
    try:
        port = find_available_port(config.port, host=config.host, max_attempts=config.port_search_limit)
    except PortUnavailableError as exc:
        logger.error("Could not find an available port: {}", exc.message)
        raise SystemExit(1) from exc

    logger.info("Server running at http://localhost:{}", port)
    uvicorn.run(
        "ppt_service.webapi:create_app",
        factory=True,
        host=config.host,
        port=port,
        reload=config.reload,
    )


if __name__ == "__main__":
    run()
