# labrinth

Async building blocks for a mod-hosting backend: pluggable file storage,
PostgreSQL data models written against a small executor interface, and a
health module.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## File hosting

Every storage backend subclasses `FileHost` from `labrinth.file_hosting.base`:

- `await host.upload_file(content_type, file_name, file_bytes)` returns an
  `UploadFileData` with the file id and name, length, SHA-1 and SHA-512 hex
  digests, an MD5 when the backend reports one, the content type and the upload
  timestamp in seconds.
- `await host.delete_file_version(file_id, file_name)` returns a
  `DeleteFileData`.

Failures are raised as `FileHostingError` or one of its subclasses:
`BackblazeError` (carrying the error document as `payload`), `S3Error`
(carrying `detail`) and `InvalidFilenameError`.

Three backends are provided:

- `labrinth.file_hosting.mock.MockHost(root=None)` writes files below `root`,
  or below the directory in the `MOCK_FILE_PATH` environment variable when no
  root is given. Any `../` in a file name is removed; missing directories are
  created. The file id it reports is always `MOCK_FILE_ID`.
- `labrinth.file_hosting.s3.S3Host(bucket_name, bucket_region, url,
  access_token, secret, client=None)` stores files in an S3-compatible bucket,
  signing requests with AWS Signature Version 4. A region of `r2` selects
  Cloudflare R2, with `url` holding the account id; otherwise `url` is the
  endpoint. The file id it reports is the file name.
- `labrinth.file_hosting.backblaze.BackblazeHost` uses the Backblaze B2 API.
  `BackblazeHost.create(key_id, key, bucket_id, client=None)` authorises the
  account and fetches an upload URL:

```python
import httpx
from labrinth.file_hosting.backblaze import BackblazeHost

async def store(data: bytes) -> str:
    async with httpx.AsyncClient() as client:
        host = await BackblazeHost.create(
            key_id="placeholder", key="secret", bucket_id="placeholder", client=client
        )
        uploaded = await host.upload_file("application/java-archive", "data/mod.jar", data)
        return uploaded.content_sha512
```

`S3Host` and `BackblazeHost` also have `aclose()` to close their HTTP client.
The individual B2 calls, `authorize_account`, `get_upload_url`, `upload_file`
and `delete_file_version`, each take an `httpx.AsyncClient` as their first
argument and are available from the same module, together with
`process_response`, which decodes a JSON response and raises `BackblazeError`
for an error status.

## Database models

The modules under `labrinth.database` run SQL with positional `$n`
parameters through an executor: any object with async `execute`, `fetch` and
`fetchrow` methods, each taking a query and positional arguments, such as an
asyncpg connection. `labrinth.database.core.Executor` is an abstract base class
for this; a subclass need only provide `execute` and `fetch`, and gets a
`fetchrow` that returns the first row or `None`. The same module defines
`DatabaseError` and `RandomIdError`.

- `labrinth.database.ids`: `to_base62`, `parse_base62` (unsigned 64-bit, at
  most 11 characters, raises `ValueError` otherwise), `random_base62`, and
  `generate_id(executor, table, ...)` with one shortcut per table, such as
  `generate_project_id(executor)`. A generated id is unused in its table and
  spells no blocked word; after 20 retries `RandomIdError` is raised.
- `labrinth.database.categories`: `Category`, `Loader`, `GameVersion` (with
  `list_filter` and `GameVersionBuilder` for inserting or partly updating a
  game version), `DonationPlatform`, `ReportType`, `ProjectType` and
  `SideType`, each with `get_id` and `list`.
- `labrinth.database.threads`: `Thread`, `ThreadMessage`, `ThreadBuilder` and
  `ThreadMessageBuilder`. Message bodies are plain dicts; a removed message's
  body becomes `{"type": "deleted"}`.
- `labrinth.database.reports`: `Report` and `QueryReport`.
- `labrinth.database.notifications`: `Notification`, `NotificationAction` and
  `NotificationBuilder`, which sends a copy of a notification to each user.
  Notifications without a JSON body are read back as a `legacy_markdown` body
  built from their title, text, link and actions, or as `{"type": "unknown"}`.
- `labrinth.database.versions`: `VersionBuilder`, `VersionFileBuilder`,
  `HashBuilder`, `DependencyBuilder` and `Version`, with `Version.remove_full`.
- `labrinth.database.version_queries`: `get_project_versions`,
  `get_projects_versions`, `get_full`, `get_many_full`,
  `get_full_from_id_slug` and `build_query_files`, returning `QueryVersion`,
  `QueryFile` and `QueryDependency` objects. Files come primary first, then by
  name.
- `labrinth.database.projects`: `Project`, `ProjectBuilder`, `DonationUrl`
  and `GalleryItem`.
- `labrinth.database.project_queries`: `QueryProject`, `get_full`,
  `get_many_full`, `get_full_from_slug`, `get_from_slug`,
  `get_from_slug_or_project_id`, `get_full_from_slug_or_project_id` (trying a
  base62 id before a slug) and `remove_full`.
- `labrinth.database.project_sync`: `update_game_versions` and
  `update_loaders` recompute a project's cached lists from its versions.

Statuses, project types and thread types are plain strings. Calls that depend
on which version statuses are hidden or listed take them as an argument
(`hidden_statuses` or `listed_statuses`), so the caller decides.

```python
from labrinth.database.categories import Category
from labrinth.database.ids import parse_base62, to_base62

async def category_names(executor) -> list[str]:
    return [category.category for category in await Category.list(executor)]

assert parse_base62(to_base62(123456789)) == 123456789
```

## Health

`labrinth.health` has `await check_database(executor)`, which runs `SELECT 1`
and lets any database error propagate, and `set_search_ready(ready)` and
`is_search_ready()`, a process-wide flag for whether the search index is
ready.

## What this package does not do

It has no HTTP server, routes or command-line entry point. It does not open
database connections, create the database or run migrations: callers pass in
an executor for a database whose tables already exist. It does not index or
query a search engine, run scheduled jobs, or model users, teams or payouts.