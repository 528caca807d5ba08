import base64
import hashlib
import json

import httpx
import pytest
import respx

from labrinth.file_hosting.backblaze import (
    AUTHORIZE_URL,
    AuthorizationData,
    AuthorizationPermissions,
    BackblazeHost,
    UploadUrlData,
    authorize_account,
    delete_file_version,
    get_upload_url,
    process_response,
    upload_file,
)
from labrinth.file_hosting.base import BackblazeError, DeleteFileData, FileHostingError

API_URL = "https://api.example.com"
UPLOAD_URL = "https://upload.example.com/b2api/v2/b2_upload_file/bucket-1"

AUTH_JSON = {
    "absoluteMinimumPartSize": 5000000,
    "accountId": "account-1",
    "allowed": {
        "bucketId": "bucket-1",
        "bucketName": "assets",
        "capabilities": ["writeFiles", "deleteFiles"],
        "namePrefix": None,
    },
    "apiUrl": API_URL,
    "authorizationToken": "token",
    "downloadUrl": "https://download.example.com",
    "recommendedPartSize": 100000000,
}

UPLOAD_URL_JSON = {"bucketId": "bucket-1", "uploadUrl": UPLOAD_URL, "authorizationToken": "token"}


def _upload_json(file_name, body):
    return {
        "fileId": "file-1",
        "fileName": file_name,
        "accountId": "account-1",
        "bucketId": "bucket-1",
        "contentLength": len(body),
        "contentSha1": hashlib.sha1(body).hexdigest(),
        "contentMd5": None,
        "contentType": "application/java-archive",
        "uploadTimestamp": 1700000000,
    }


AUTH = AuthorizationData.from_json(AUTH_JSON)


def test_authorization_data_from_json():
    assert AUTH.account_id == "account-1"
    assert AUTH.api_url == API_URL
    assert AUTH.allowed == AuthorizationPermissions(
        capabilities=["writeFiles", "deleteFiles"], bucket_id="bucket-1", bucket_name="assets"
    )


def test_process_response_success_and_error():
    assert process_response(httpx.Response(200, json={"a": 1})) == {"a": 1}
    with pytest.raises(BackblazeError) as info:
        process_response(httpx.Response(401, json={"code": "unauthorized"}))
    assert info.value.payload == {"code": "unauthorized"}


def test_process_response_invalid_json():
    with pytest.raises(FileHostingError, match="Error while accessing the data from backblaze"):
        process_response(httpx.Response(200, content=b"not json"))


@pytest.mark.asyncio
async def test_authorize_account_sends_basic_credentials():
    key_id = "key-1"
    application_key = "secret"
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            route = router.get(AUTHORIZE_URL).mock(return_value=httpx.Response(200, json=AUTH_JSON))
            result = await authorize_account(client, key_id, application_key)
    header = route.calls.last.request.headers["authorization"]
    scheme, encoded = header.split(" ")
    assert scheme == "Basic"
    assert base64.b64decode(encoded).decode() == f"{key_id}:{application_key}"
    assert result == AUTH


@pytest.mark.asyncio
async def test_get_upload_url_posts_bucket_id():
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            route = router.post(f"{API_URL}/b2api/v2/b2_get_upload_url").mock(
                return_value=httpx.Response(200, json=UPLOAD_URL_JSON)
            )
            result = await get_upload_url(client, AUTH, "bucket-1")
    request = route.calls.last.request
    assert json.loads(request.content) == {"bucketId": "bucket-1"}
    assert request.headers["authorization"] == AUTH.authorization_token
    assert result == UploadUrlData(bucket_id="bucket-1", upload_url=UPLOAD_URL, authorization_token="token")


@pytest.mark.asyncio
async def test_upload_file_sends_b2_headers():
    body = b"jar bytes"
    url_data = UploadUrlData.from_json(UPLOAD_URL_JSON)
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            route = router.post(UPLOAD_URL).mock(
                return_value=httpx.Response(200, json=_upload_json("mods/a.jar", body))
            )
            result = await upload_file(client, url_data, "application/java-archive", "mods/a.jar", body)
    request = route.calls.last.request
    assert request.headers["x-bz-file-name"] == "mods/a.jar"
    assert request.headers["x-bz-content-sha1"] == hashlib.sha1(body).hexdigest()
    assert request.headers["content-length"] == str(len(body))
    assert request.content == body
    assert result.file_name == "mods/a.jar"
    assert result.content_length == len(body)


@pytest.mark.asyncio
async def test_delete_file_version_posts_names():
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            route = router.post(f"{API_URL}/b2api/v2/b2_delete_file_version").mock(
                return_value=httpx.Response(200, json={"fileId": "file-1", "fileName": "mods/a.jar"})
            )
            result = await delete_file_version(client, AUTH, "file-1", "mods/a.jar")
    assert json.loads(route.calls.last.request.content) == {"fileId": "file-1", "fileName": "mods/a.jar"}
    assert result == DeleteFileData(file_id="file-1", file_name="mods/a.jar")


@pytest.mark.asyncio
async def test_missing_fields_raise_file_hosting_error():
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            router.get(AUTHORIZE_URL).mock(return_value=httpx.Response(200, json={"accountId": "x"}))
            with pytest.raises(FileHostingError, match="Error while accessing the data from backblaze"):
                await authorize_account(client, "key-1", "secret")


@pytest.mark.asyncio
async def test_transport_error_raises_file_hosting_error():
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            router.get(AUTHORIZE_URL).mock(side_effect=httpx.ConnectError("down"))
            with pytest.raises(FileHostingError, match="Error while accessing the data from backblaze"):
                await authorize_account(client, "key-1", "secret")


@pytest.mark.asyncio
async def test_host_create_upload_and_delete():
    body = b"content"
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            router.get(AUTHORIZE_URL).mock(return_value=httpx.Response(200, json=AUTH_JSON))
            router.post(f"{API_URL}/b2api/v2/b2_get_upload_url").mock(
                return_value=httpx.Response(200, json=UPLOAD_URL_JSON)
            )
            router.post(UPLOAD_URL).mock(
                return_value=httpx.Response(200, json=_upload_json("mods/b.jar", body))
            )
            router.post(f"{API_URL}/b2api/v2/b2_delete_file_version").mock(
                return_value=httpx.Response(200, json={"fileId": "file-1", "fileName": "mods/b.jar"})
            )
            host = await BackblazeHost.create("key-1", "secret", "bucket-1", client)
            uploaded = await host.upload_file("application/java-archive", "mods/b.jar", body)
            deleted = await host.delete_file_version(uploaded.file_id, uploaded.file_name)

    assert host.upload_url_data.upload_url == UPLOAD_URL
    assert uploaded.content_sha512 == hashlib.sha512(body).hexdigest()
    assert uploaded.content_sha1 == hashlib.sha1(body).hexdigest()
    assert uploaded.file_id == "file-1"
    assert deleted == DeleteFileData(file_id="file-1", file_name="mods/b.jar")


@pytest.mark.asyncio
async def test_host_create_propagates_backblaze_error():
    async with httpx.AsyncClient() as client:
        with respx.mock() as router:
            router.get(AUTHORIZE_URL).mock(
                return_value=httpx.Response(401, json={"status": 401, "code": "bad_auth_token"})
            )
            with pytest.raises(BackblazeError) as info:
                await BackblazeHost.create("key-1", "secret", "bucket-1", client)
    assert info.value.payload["code"] == "bad_auth_token"