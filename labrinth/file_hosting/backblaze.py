"""File host backed by Backblaze B2."""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import httpx

from .base import (
    BackblazeError,
    DeleteFileData,
    FileHost,
    FileHostingError,
    UploadFileData,
)

AUTHORIZE_URL = "https://api.backblazeb2.com/b2api/v2/b2_authorize_account"
_HTTP_ERROR = "Error while accessing the data from backblaze"

T = TypeVar("T")


def _json_body(data: dict[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"), sort_keys=True)


def _decode(payload: Any, build: Callable[[Any], T]) -> T:
    try:
        return build(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise FileHostingError(_HTTP_ERROR) from exc


async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    try:
        return await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise FileHostingError(_HTTP_ERROR) from exc


@dataclass(frozen=True)
class AuthorizationPermissions:
    capabilities: list[str]
    bucket_id: str | None = None
    bucket_name: str | None = None
    name_prefix: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AuthorizationPermissions:
        return cls(
            capabilities=[str(item) for item in data["capabilities"]],
            bucket_id=data.get("bucketId"),
            bucket_name=data.get("bucketName"),
            name_prefix=data.get("namePrefix"),
        )


@dataclass(frozen=True)
class AuthorizationData:
    absolute_minimum_part_size: int
    account_id: str
    allowed: AuthorizationPermissions
    api_url: str
    authorization_token: str
    download_url: str
    recommended_part_size: int

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> AuthorizationData:
        return cls(
            absolute_minimum_part_size=int(data["absoluteMinimumPartSize"]),
            account_id=data["accountId"],
            allowed=AuthorizationPermissions.from_json(data["allowed"]),
            api_url=data["apiUrl"],
            authorization_token=data["authorizationToken"],
            download_url=data["downloadUrl"],
            recommended_part_size=int(data["recommendedPartSize"]),
        )


@dataclass(frozen=True)
class UploadUrlData:
    bucket_id: str
    upload_url: str
    authorization_token: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> UploadUrlData:
        return cls(
            bucket_id=data["bucketId"],
            upload_url=data["uploadUrl"],
            authorization_token=data["authorizationToken"],
        )


@dataclass(frozen=True)
class BackblazeUploadData:
    """The upload report returned by B2."""

    file_id: str
    file_name: str
    account_id: str
    bucket_id: str
    content_length: int
    content_sha1: str
    content_md5: str | None
    content_type: str
    upload_timestamp: int

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BackblazeUploadData:
        return cls(
            file_id=data["fileId"],
            file_name=data["fileName"],
            account_id=data["accountId"],
            bucket_id=data["bucketId"],
            content_length=int(data["contentLength"]),
            content_sha1=data["contentSha1"],
            content_md5=data.get("contentMd5"),
            content_type=data["contentType"],
            upload_timestamp=int(data["uploadTimestamp"]),
        )


def process_response(response: httpx.Response) -> Any:
    """Return the decoded JSON body, raising ``BackblazeError`` for error statuses."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise FileHostingError(_HTTP_ERROR) from exc
    if response.is_success:
        return payload
    raise BackblazeError(payload)


async def authorize_account(
    client: httpx.AsyncClient, key_id: str, application_key: str
) -> AuthorizationData:
    credentials = base64.b64encode(f"{key_id}:{application_key}".encode()).decode()
    response = await _send(
        client,
        "GET",
        AUTHORIZE_URL,
        headers={"Content-Type": "application/json", "Authorization": f"Basic {credentials}"},
    )
    return _decode(process_response(response), AuthorizationData.from_json)


async def get_upload_url(
    client: httpx.AsyncClient, authorization_data: AuthorizationData, bucket_id: str
) -> UploadUrlData:
    response = await _send(
        client,
        "POST",
        f"{authorization_data.api_url}/b2api/v2/b2_get_upload_url",
        headers={
            "Content-Type": "application/json",
            "Authorization": authorization_data.authorization_token,
        },
        content=_json_body({"bucketId": bucket_id}),
    )
    return _decode(process_response(response), UploadUrlData.from_json)


async def delete_file_version(
    client: httpx.AsyncClient,
    authorization_data: AuthorizationData,
    file_id: str,
    file_name: str,
) -> DeleteFileData:
    response = await _send(
        client,
        "POST",
        f"{authorization_data.api_url}/b2api/v2/b2_delete_file_version",
        headers={
            "Content-Type": "application/json",
            "Authorization": authorization_data.authorization_token,
        },
        content=_json_body({"fileName": file_name, "fileId": file_id}),
    )
    return _decode(
        process_response(response),
        lambda data: DeleteFileData(file_id=data["fileId"], file_name=data["fileName"]),
    )


async def upload_file(
    client: httpx.AsyncClient,
    url_data: UploadUrlData,
    content_type: str,
    file_name: str,
    file_bytes: bytes,
) -> BackblazeUploadData:
    response = await _send(
        client,
        "POST",
        url_data.upload_url,
        headers={
            "Authorization": url_data.authorization_token,
            "X-Bz-File-Name": file_name,
            "Content-Type": content_type,
            "Content-Length": str(len(file_bytes)),
            "X-Bz-Content-Sha1": hashlib.sha1(file_bytes).hexdigest(),
        },
        content=file_bytes,
    )
    return _decode(process_response(response), BackblazeUploadData.from_json)


class BackblazeHost(FileHost):
    """Stores files in a B2 bucket."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        authorization_data: AuthorizationData,
        upload_url_data: UploadUrlData,
    ) -> None:
        self._client = client
        self.authorization_data = authorization_data
        self.upload_url_data = upload_url_data

    @classmethod
    async def create(
        cls,
        key_id: str,
        key: str,
        bucket_id: str,
        client: httpx.AsyncClient | None = None,
    ) -> BackblazeHost:
        """Authorize the account and fetch an upload URL for ``bucket_id``."""
        client = client if client is not None else httpx.AsyncClient()
        authorization_data = await authorize_account(client, key_id, key)
        upload_url_data = await get_upload_url(client, authorization_data, bucket_id)
        return cls(client, authorization_data, upload_url_data)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def upload_file(
        self, content_type: str, file_name: str, file_bytes: bytes
    ) -> UploadFileData:
        content_sha512 = hashlib.sha512(file_bytes).hexdigest()
        uploaded = await upload_file(
            self._client, self.upload_url_data, content_type, file_name, file_bytes
        )
        return UploadFileData(
            file_id=uploaded.file_id,
            file_name=uploaded.file_name,
            content_length=uploaded.content_length,
            content_sha512=content_sha512,
            content_sha1=uploaded.content_sha1,
            content_md5=uploaded.content_md5,
            content_type=uploaded.content_type,
            upload_timestamp=uploaded.upload_timestamp,
        )

    async def delete_file_version(self, file_id: str, file_name: str) -> DeleteFileData:
        return await delete_file_version(
            self._client, self.authorization_data, file_id, file_name
        )