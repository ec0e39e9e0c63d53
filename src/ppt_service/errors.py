"""Error taxonomy shared by the intake, conversion and HTTP layers."""


class ServiceError(Exception):
    """Base class for all service errors. ``code`` is a stable machine-readable tag."""

    code = "service_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class UploadValidationError(ServiceError):
    """Upload rejected before conversion. Maps to HTTP 400."""

    code = "invalid_upload"


class NoFileUploadedError(UploadValidationError):
    code = "no_file"


class InvalidFileTypeError(UploadValidationError):
    code = "invalid_type"


class FileTooLargeError(UploadValidationError):
    code = "too_large"


class TooManyFilesError(UploadValidationError):
    code = "too_many_files"


class ConversionError(ServiceError):
    """Reading, converting or writing a staged file failed.

    ``stage`` tells which step failed. The message may contain internal
    details and is only meant for logs.
    """

    code = "conversion_failed"

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message, code=stage)
        self.stage = stage


class DownloadNotFoundError(ServiceError):
    code = "not_found"


class PortUnavailableError(ServiceError):
    code = "port_unavailable"
