"""File host that stores files in a local directory."""

from __future__ import annotations

import hashlib
import os
import time
from pathlib import Path

from .base import (
    DeleteFileData,
    FileHost,
    FileHostingError,
    InvalidFilenameError,
    UploadFileData,
)

MOCK_PATH_VARIABLE = "MOCK_FILE_PATH"


def _filesystem_error(exc: OSError) -> FileHostingError:
    return FileHostingError(f"File system error in file hosting: {exc}")


class MockHost(FileHost):
    """Stores files below ``root``, or below ``$MOCK_FILE_PATH`` when no root is given."""

    def __init__(self, root: str | os.PathLike[str] | None = None) -> None:
        self._root = root

    def _path_for(self, file_name: str) -> Path:
        root = self._root if self._root is not None else os.environ.get(MOCK_PATH_VARIABLE)
        if root is None:
            raise FileHostingError(f"{MOCK_PATH_VARIABLE} is not set")
        return Path(root) / file_name.replace("../", "")

    async def upload_file(
        self, content_type: str, file_name: str, file_bytes: bytes
    ) -> UploadFileData:
        path = self._path_for(file_name)
        if path.parent == path:
            raise InvalidFilenameError()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            content_sha1 = hashlib.sha1(file_bytes).hexdigest()
            content_sha512 = hashlib.sha512(file_bytes).hexdigest()
            path.write_bytes(file_bytes)
        except OSError as exc:
            raise _filesystem_error(exc) from exc

        return UploadFileData(
            file_id="MOCK_FILE_ID",
            file_name=file_name,
            content_length=len(file_bytes),
            content_sha512=content_sha512,
            content_sha1=content_sha1,
            content_md5=None,
            content_type=content_type,
            upload_timestamp=int(time.time()),
        )

    async def delete_file_version(self, file_id: str, file_name: str) -> DeleteFileData:
        path = self._path_for(file_name)
        try:
            path.unlink()
        except OSError as exc:
            raise _filesystem_error(exc) from exc
        return DeleteFileData(file_id=file_id, file_name=file_name)