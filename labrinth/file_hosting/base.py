"""Shared types for file storage backends."""

from __future__ import annotations

import abc
import json
from dataclasses import dataclass
from typing import Any


class FileHostingError(Exception):
    """Raised when a file storage backend fails."""


class BackblazeError(FileHostingError):
    """The Backblaze API answered with an error document."""

    def __init__(self, payload: Any) -> None:
        self.payload = payload
        rendered = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        super().__init__(f"Backblaze error: {rendered}")


class S3Error(FileHostingError):
    """An S3 operation failed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"S3 error: {detail}")


class InvalidFilenameError(FileHostingError):
    """The requested file name cannot be stored."""

    def __init__(self) -> None:
        super().__init__("Invalid Filename")


@dataclass(frozen=True)
class UploadFileData:
    """What a backend reports about a stored file."""

    file_id: str
    file_name: str
    content_length: int
    content_sha512: str
    content_sha1: str
    content_md5: str | None
    content_type: str
    upload_timestamp: int


@dataclass(frozen=True)
class DeleteFileData:
    """What a backend reports about a deleted file."""

    file_id: str
    file_name: str


class FileHost(abc.ABC):
    """A place where uploaded files are stored."""

    @abc.abstractmethod
    async def upload_file(
        self, content_type: str, file_name: str, file_bytes: bytes
    ) -> UploadFileData:
        """Store ``file_bytes`` under ``file_name``."""

    @abc.abstractmethod
    async def delete_file_version(self, file_id: str, file_name: str) -> DeleteFileData:
        """Remove a stored file."""