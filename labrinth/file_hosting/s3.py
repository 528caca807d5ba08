"""File host backed by an S3-compatible bucket."""

from __future__ import annotations

import hashlib
import hmac
import time
from datetime import datetime, timezone
from urllib.parse import quote, urlsplit

import httpx

from .base import DeleteFileData, FileHost, S3Error, UploadFileData

_ALGORITHM = "AWS4-HMAC-SHA256"
_SERVICE = "s3"


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode(), hashlib.sha256).digest()


def _signing_key(secret: str, date: str, region: str) -> bytes:
    key = _hmac_sha256(f"AWS4{secret}".encode(), date)
    key = _hmac_sha256(key, region)
    key = _hmac_sha256(key, _SERVICE)
    return _hmac_sha256(key, "aws4_request")


def _object_path(file_name: str) -> str:
    return "/" + "/".join(quote(part, safe="-_.~") for part in file_name.split("/"))


class S3Host(FileHost):
    """Stores files in a bucket, signing requests with AWS Signature Version 4.

    A region of ``r2`` selects Cloudflare R2, with ``url`` holding the account id.
    """

    def __init__(
        self,
        bucket_name: str,
        bucket_region: str,
        url: str,
        access_token: str,
        secret: str,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not access_token or not secret:
            raise S3Error("Error while creating credentials")
        if bucket_region == "r2":
            region = "auto"
            endpoint = f"https://{url}.r2.cloudflarestorage.com"
        else:
            region = bucket_region
            endpoint = url if "://" in url else f"https://{url}"
        parts = urlsplit(endpoint)
        if not bucket_name or not parts.netloc or not region:
            raise S3Error("Error while creating Bucket instance")

        self._region = region
        self._host = f"{bucket_name}.{parts.netloc}"
        self._base_url = f"{parts.scheme}://{self._host}"
        self._access_token = access_token
        self._secret = secret
        self._client = client if client is not None else httpx.AsyncClient()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _signed_headers(
        self, method: str, path: str, payload: bytes, extra: dict[str, str]
    ) -> dict[str, str]:
        now = datetime.fromtimestamp(time.time(), tz=timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        date = now.strftime("%Y%m%d")
        payload_hash = hashlib.sha256(payload).hexdigest()

        headers = {
            "host": self._host,
            "x-amz-content-sha256": payload_hash,
            "x-amz-date": amz_date,
            **{name.lower(): value.strip() for name, value in extra.items()},
        }
        names = sorted(headers)
        signed_names = ";".join(names)
        canonical_headers = "".join(f"{name}:{headers[name]}\n" for name in names)
        canonical_request = "\n".join(
            [method, path, "", canonical_headers, signed_names, payload_hash]
        )
        scope = f"{date}/{self._region}/{_SERVICE}/aws4_request"
        string_to_sign = "\n".join(
            [
                _ALGORITHM,
                amz_date,
                scope,
                hashlib.sha256(canonical_request.encode()).hexdigest(),
            ]
        )
        signature = hmac.new(
            _signing_key(self._secret, date, self._region),
            string_to_sign.encode(),
            hashlib.sha256,
        ).hexdigest()

        del headers["host"]
        headers["authorization"] = (
            f"{_ALGORITHM} Credential={self._access_token}/{scope}, "
            f"SignedHeaders={signed_names}, Signature={signature}"
        )
        return headers

    async def _send(self, method: str, file_name: str, payload: bytes, extra: dict[str, str]) -> bool:
        path = _object_path(file_name)
        headers = self._signed_headers(method, path, payload, extra)
        try:
            response = await self._client.request(
                method, self._base_url + path, content=payload, headers=headers
            )
        except httpx.HTTPError:
            return False
        return response.is_success

    async def upload_file(
        self, content_type: str, file_name: str, file_bytes: bytes
    ) -> UploadFileData:
        content_sha1 = hashlib.sha1(file_bytes).hexdigest()
        content_sha512 = hashlib.sha512(file_bytes).hexdigest()

        if not await self._send("PUT", file_name, file_bytes, {"content-type": content_type}):
            raise S3Error("Error while uploading file to S3")

        return UploadFileData(
            file_id=file_name,
            file_name=file_name,
            content_length=len(file_bytes),
            content_sha512=content_sha512,
            content_sha1=content_sha1,
            content_md5=None,
            content_type=content_type,
            upload_timestamp=int(time.time()),
        )

    async def delete_file_version(self, file_id: str, file_name: str) -> DeleteFileData:
        if not await self._send("DELETE", file_name, b"", {}):
            raise S3Error("Error while deleting file from S3")
        return DeleteFileData(file_id=file_id, file_name=file_name)