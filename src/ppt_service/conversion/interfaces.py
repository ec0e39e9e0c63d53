from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Protocol


class ConverterGateway(Protocol):
    def convert(self, data: bytes, target_extension: str, *, source_suffix: str = "") -> bytes:
        """Convert document bytes into the format named by ``target_extension`` (e.g. ".pdf").
        ``source_suffix`` (e.g. ".pptx") names the input format when known.
        This is a blocking call; callers should offload to threads if needed.
        """


class StorageGateway(Protocol):
    def new_staged_path(self, original_name: str) -> Path:
        ...

    def read_staged(self, path: str) -> bytes:
        ...

    def write_output(self, filename: str, data: bytes) -> Path:
        ...

    def resolve_output(self, filename: str) -> Path:
        ...


@dataclass(frozen=True)
class RawUpload:
    """An upload as received from the transport, not yet validated or staged."""

    filename: str
    content_type: str
    read: Callable[[int], Awaitable[bytes]]
    size: int | None = None


@dataclass(frozen=True)
class UploadedFile:
    original_name: str
    stored_path: str
    mime_type: str
    size_bytes: int
