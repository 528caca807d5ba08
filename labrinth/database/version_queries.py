"""Read-side queries for versions: listings, full records and lookups by slug."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .core import Executor
from .ids import parse_base62
from .threads import _parse_timestamp
from .versions import Version

_PROJECT_VERSIONS_QUERY = (
    "SELECT DISTINCT ON(v.date_published, v.id) version_id, v.date_published FROM versions v "
    "INNER JOIN game_versions_versions gvv ON gvv.joining_version_id = v.id "
    "INNER JOIN game_versions gv on gvv.game_version_id = gv.id "
    "AND (cardinality($2::varchar[]) = 0 OR gv.version = ANY($2::varchar[])) "
    "INNER JOIN loaders_versions lv ON lv.version_id = v.id "
    "INNER JOIN loaders l on lv.loader_id = l.id "
    "AND (cardinality($3::varchar[]) = 0 OR l.loader = ANY($3::varchar[])) "
    "WHERE v.mod_id = $1 AND ($4::varchar IS NULL OR v.version_type = $4) "
    "ORDER BY v.date_published DESC, v.id "
    "LIMIT $5 OFFSET $6"
)

_PROJECTS_VERSIONS_QUERY = (
    "SELECT DISTINCT ON(v.date_published, v.id) version_id, v.mod_id, v.date_published "
    "FROM versions v "
    "INNER JOIN game_versions_versions gvv ON gvv.joining_version_id = v.id "
    "INNER JOIN game_versions gv on gvv.game_version_id = gv.id "
    "AND (cardinality($2::varchar[]) = 0 OR gv.version = ANY($2::varchar[])) "
    "INNER JOIN loaders_versions lv ON lv.version_id = v.id "
    "INNER JOIN loaders l on lv.loader_id = l.id "
    "AND (cardinality($3::varchar[]) = 0 OR l.loader = ANY($3::varchar[])) "
    "WHERE v.mod_id = ANY($1) AND ($4::varchar IS NULL OR v.version_type = $4) "
    "ORDER BY v.date_published, v.id ASC "
    "LIMIT $5 OFFSET $6"
)

_FULL_QUERY = (
    "SELECT v.id id, v.mod_id mod_id, v.author_id author_id, v.name version_name, "
    "v.version_number version_number, v.changelog changelog, "
    "v.date_published date_published, v.downloads downloads, "
    "v.version_type version_type, v.featured featured, v.status status, "
    "v.requested_status requested_status, "
    "JSONB_AGG(DISTINCT jsonb_build_object('version', gv.version, 'created', gv.created)) "
    "filter (where gv.version is not null) game_versions, "
    "ARRAY_AGG(DISTINCT l.loader) filter (where l.loader is not null) loaders, "
    "JSONB_AGG(DISTINCT jsonb_build_object('id', f.id, 'url', f.url, 'filename', f.filename, "
    "'primary', f.is_primary, 'size', f.size, 'file_type', f.file_type)) "
    "filter (where f.id is not null) files, "
    "JSONB_AGG(DISTINCT jsonb_build_object('algorithm', h.algorithm, "
    "'hash', encode(h.hash, 'escape'), 'file_id', h.file_id)) "
    "filter (where h.hash is not null) hashes, "
    "JSONB_AGG(DISTINCT jsonb_build_object('project_id', d.mod_dependency_id, "
    "'version_id', d.dependency_id, 'dependency_type', d.dependency_type, "
    "'file_name', dependency_file_name)) "
    "filter (where d.dependency_type is not null) dependencies "
    "FROM versions v "
    "LEFT OUTER JOIN game_versions_versions gvv on v.id = gvv.joining_version_id "
    "LEFT OUTER JOIN game_versions gv on gvv.game_version_id = gv.id "
    "LEFT OUTER JOIN loaders_versions lv on v.id = lv.version_id "
    "LEFT OUTER JOIN loaders l on lv.loader_id = l.id "
    "LEFT OUTER JOIN files f on v.id = f.version_id "
    "LEFT OUTER JOIN hashes h on f.id = h.file_id "
    "LEFT OUTER JOIN dependencies d on v.id = d.dependent_id "
    "WHERE v.id = ANY($1) "
    "GROUP BY v.id "
    "ORDER BY v.date_published ASC"
)

_ID_SLUG_QUERY = (
    "SELECT v.id FROM versions v "
    "INNER JOIN mods m ON mod_id = m.id "
    "WHERE (m.id = $1 OR m.slug = $2) AND (v.id = $3 OR v.version_number = $4) "
    "ORDER BY date_published ASC"
)

_PARSE_ERRORS = (KeyError, TypeError, ValueError)


def _load_json(value: Any) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


def _json_list(raw: Any) -> list[Any]:
    loaded = _load_json(raw)
    if loaded is None:
        return []
    if not isinstance(loaded, list):
        raise TypeError("expected a JSON array")
    return loaded


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _as_signed(value: int) -> int:
    return value - 2**64 if value >= 2**63 else value


def _optional_id(text: str) -> int | None:
    try:
        return _as_signed(parse_base62(text))
    except ValueError:
        return None


@dataclass(frozen=True)
class QueryFile:
    id: int
    url: str
    filename: str
    hashes: dict[str, str]
    primary: bool
    size: int
    file_type: str | None = None


@dataclass(frozen=True)
class QueryDependency:
    dependency_type: str
    project_id: int | None = None
    version_id: int | None = None
    file_name: str | None = None

    @classmethod
    def from_json(cls, data: Any) -> QueryDependency:
        if not isinstance(data, Mapping):
            raise TypeError("a dependency must be a JSON object")
        file_name = data.get("file_name")
        return cls(
            dependency_type=str(data["dependency_type"]),
            project_id=_optional_int(data.get("project_id")),
            version_id=_optional_int(data.get("version_id")),
            file_name=None if file_name is None else str(file_name),
        )


@dataclass
class QueryVersion:
    inner: Version
    files: list[QueryFile] = field(default_factory=list)
    game_versions: list[str] = field(default_factory=list)
    loaders: list[str] = field(default_factory=list)
    dependencies: list[QueryDependency] = field(default_factory=list)


def _parse_hashes(raw: Any) -> list[tuple[int, str, str]]:
    try:
        return [
            (int(item["file_id"]), str(item["algorithm"]), str(item["hash"]))
            for item in _json_list(raw)
        ]
    except _PARSE_ERRORS:
        return []


def build_query_files(files: Any, hashes: Any) -> list[QueryFile]:
    """Combine aggregated file and hash JSON into files, primary file first, then by name.

    Input that cannot be read yields no files (or no hashes).
    """
    all_hashes = _parse_hashes(hashes)
    try:
        raw_files = [
            (
                int(item["id"]),
                str(item["url"]),
                str(item["filename"]),
                bool(item["primary"]),
                int(item["size"]),
                item.get("file_type"),
            )
            for item in _json_list(files)
        ]
    except _PARSE_ERRORS:
        return []

    built = [
        QueryFile(
            id=file_id,
            url=url,
            filename=filename,
            hashes={
                algorithm: value
                for owner, algorithm, value in all_hashes
                if owner == file_id
            },
            primary=primary,
            size=size,
            file_type=None if file_type is None else str(file_type),
        )
        for file_id, url, filename, primary, size, file_type in raw_files
    ]
    return sorted(built, key=lambda item: (not item.primary, item.filename))


def _parse_game_versions(raw: Any) -> list[str]:
    try:
        entries = [
            (_parse_timestamp(item["created"]), str(item["version"]))
            for item in _json_list(raw)
        ]
    except _PARSE_ERRORS:
        return []
    entries.sort(key=lambda entry: entry[0])
    return [version for _, version in entries]


def _parse_dependencies(raw: Any) -> list[QueryDependency]:
    try:
        return [QueryDependency.from_json(item) for item in _json_list(raw)]
    except _PARSE_ERRORS:
        return []


def _version_from_row(row: Mapping[str, Any]) -> QueryVersion:
    return QueryVersion(
        inner=Version(
            id=row["id"],
            project_id=row["mod_id"],
            author_id=row["author_id"],
            name=row["version_name"],
            version_number=row["version_number"],
            changelog=row["changelog"],
            version_type=row["version_type"],
            status=row["status"],
            featured=row["featured"],
            downloads=row["downloads"],
            requested_status=row["requested_status"],
            date_published=row["date_published"],
        ),
        files=build_query_files(row["files"], row["hashes"]),
        game_versions=_parse_game_versions(row["game_versions"]),
        loaders=list(row["loaders"] or []),
        dependencies=_parse_dependencies(row["dependencies"]),
    )


async def get_project_versions(
    project_id: int,
    game_versions: Iterable[str] | None,
    loaders: Iterable[str] | None,
    version_type: str | None,
    limit: int | None,
    offset: int | None,
    executor: Executor,
) -> list[int]:
    """Ids of a project's versions, newest first, filtered by game version, loader and type."""
    rows = await executor.fetch(
        _PROJECT_VERSIONS_QUERY,
        project_id,
        list(game_versions or []),
        list(loaders or []),
        version_type,
        limit,
        offset,
    )
    return [row["version_id"] for row in rows]


async def get_projects_versions(
    project_ids: Iterable[int],
    game_versions: Iterable[str] | None,
    loaders: Iterable[str] | None,
    version_type: str | None,
    limit: int | None,
    offset: int | None,
    executor: Executor,
) -> dict[int, list[int]]:
    """Version ids of several projects, oldest first, grouped by project id."""
    rows = await executor.fetch(
        _PROJECTS_VERSIONS_QUERY,
        list(project_ids),
        list(game_versions or []),
        list(loaders or []),
        version_type,
        limit,
        offset,
    )
    grouped: dict[int, list[int]] = {}
    for row in rows:
        grouped.setdefault(row["mod_id"], []).append(row["version_id"])
    return grouped


async def get_many_full(version_ids: Iterable[int], executor: Executor) -> list[QueryVersion]:
    """Full records of the given versions, oldest first."""
    rows = await executor.fetch(_FULL_QUERY, list(version_ids))
    return [_version_from_row(row) for row in rows]


async def get_full(version_id: int, executor: Executor) -> QueryVersion | None:
    versions = await get_many_full([version_id], executor)
    return versions[0] if versions else None


async def get_full_from_id_slug(
    project_id_or_slug: str, slug: str, executor: Executor
) -> QueryVersion | None:
    """Find a version of a project, each given either by base62 id or by slug/number."""
    row = await executor.fetchrow(
        _ID_SLUG_QUERY,
        _optional_id(project_id_or_slug),
        project_id_or_slug,
        _optional_id(slug),
        slug,
    )
    if row is None:
        return None
    return await get_full(row["id"], executor)