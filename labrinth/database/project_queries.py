"""Read-side project queries: full records, lookups by slug or id, and removal."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .core import Executor
from .ids import parse_base62
from .projects import DonationUrl, GalleryItem, Project
from .threads import Thread, _parse_timestamp
from .versions import Version

_FULL_QUERY = (
    "SELECT m.id id, m.project_type project_type, m.title title, m.description description, "
    "m.downloads downloads, m.follows follows, "
    "m.icon_url icon_url, m.body body, m.published published, "
    "m.updated updated, m.approved approved, m.queued, m.status status, "
    "m.requested_status requested_status, "
    "m.issues_url issues_url, m.source_url source_url, m.wiki_url wiki_url, "
    "m.discord_url discord_url, m.license_url license_url, "
    "m.team_id team_id, m.client_side client_side, m.server_side server_side, "
    "m.license license, m.slug slug, m.moderation_message moderation_message, "
    "m.moderation_message_body moderation_message_body, "
    "cs.name client_side_type, ss.name server_side_type, pt.name project_type_name, "
    "m.webhook_sent, m.color, "
    "m.loaders loaders, m.game_versions game_versions, m.thread_id thread_id, "
    "m.monetization_status monetization_status, "
    "ARRAY_AGG(DISTINCT c.category) filter (where c.category is not null "
    "and mc.is_additional is false) categories, "
    "ARRAY_AGG(DISTINCT c.category) filter (where c.category is not null "
    "and mc.is_additional is true) additional_categories, "
    "JSONB_AGG(DISTINCT jsonb_build_object('id', v.id, 'date_published', v.date_published)) "
    "filter (where v.id is not null) versions, "
    "JSONB_AGG(DISTINCT jsonb_build_object('image_url', mg.image_url, 'featured', mg.featured, "
    "'title', mg.title, 'description', mg.description, 'created', mg.created, "
    "'ordering', mg.ordering)) filter (where mg.image_url is not null) gallery, "
    "JSONB_AGG(DISTINCT jsonb_build_object('platform_id', md.joining_platform_id, "
    "'platform_short', dp.short, 'platform_name', dp.name,'url', md.url)) "
    "filter (where md.joining_platform_id is not null) donations "
    "FROM mods m "
    "INNER JOIN project_types pt ON pt.id = m.project_type "
    "INNER JOIN side_types cs ON m.client_side = cs.id "
    "INNER JOIN side_types ss ON m.server_side = ss.id "
    "LEFT JOIN mods_donations md ON md.joining_mod_id = m.id "
    "LEFT JOIN donation_platforms dp ON md.joining_platform_id = dp.id "
    "LEFT JOIN mods_categories mc ON mc.joining_mod_id = m.id "
    "LEFT JOIN categories c ON mc.joining_category_id = c.id "
    "LEFT JOIN versions v ON v.mod_id = m.id AND v.status = ANY($2) "
    "LEFT JOIN mods_gallery mg ON mg.mod_id = m.id "
    "WHERE m.id = ANY($1) "
    "GROUP BY pt.id, cs.id, ss.id, m.id"
)

_SLUG_QUERY = "SELECT id FROM mods WHERE slug = LOWER($1)"

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


def _as_signed(value: int) -> int:
    return value - 2**64 if value >= 2**63 else value


def _optional_id(text: str) -> int | None:
    try:
        return _as_signed(parse_base62(text))
    except ValueError:
        return None


@dataclass
class QueryProject:
    """A project together with its type name, categories, versions, gallery and links."""

    inner: Project
    project_type: str
    client_side: str
    server_side: str
    categories: list[str] = field(default_factory=list)
    additional_categories: list[str] = field(default_factory=list)
    versions: list[int] = field(default_factory=list)
    donation_urls: list[DonationUrl] = field(default_factory=list)
    gallery_items: list[GalleryItem] = field(default_factory=list)


def _parse_versions(raw: Any) -> list[int]:
    try:
        entries = [
            (_parse_timestamp(item["date_published"]), int(item["id"]))
            for item in _json_list(raw)
        ]
    except _PARSE_ERRORS:
        return []
    entries.sort(key=lambda entry: entry[0])
    return [version_id for _, version_id in entries]


def _parse_gallery(raw: Any) -> list[GalleryItem]:
    try:
        items = [GalleryItem.from_json(item) for item in _json_list(raw)]
    except _PARSE_ERRORS:
        return []
    return sorted(items, key=lambda item: item.ordering)


def _parse_donations(raw: Any) -> list[DonationUrl]:
    try:
        return [DonationUrl.from_json(item) for item in _json_list(raw)]
    except _PARSE_ERRORS:
        return []


def _query_project_from_row(row: Mapping[str, Any]) -> QueryProject:
    return QueryProject(
        inner=Project._from_row(row),
        project_type=row["project_type_name"],
        client_side=row["client_side_type"],
        server_side=row["server_side_type"],
        categories=list(row["categories"] or []),
        additional_categories=list(row["additional_categories"] or []),
        versions=_parse_versions(row["versions"]),
        donation_urls=_parse_donations(row["donations"]),
        gallery_items=_parse_gallery(row["gallery"]),
    )


async def get_many_full(
    project_ids: Iterable[int], listed_statuses: Iterable[str], executor: Executor
) -> list[QueryProject]:
    """Full records of the given projects; only versions with a listed status are included."""
    rows = await executor.fetch(_FULL_QUERY, list(project_ids), list(listed_statuses))
    return [_query_project_from_row(row) for row in rows]


async def get_full(
    project_id: int, listed_statuses: Iterable[str], executor: Executor
) -> QueryProject | None:
    projects = await get_many_full([project_id], listed_statuses, executor)
    return projects[0] if projects else None


async def _id_from_slug(slug: str, executor: Executor) -> int | None:
    row = await executor.fetchrow(_SLUG_QUERY, slug)
    return None if row is None else row["id"]


async def get_full_from_slug(
    slug: str, listed_statuses: Iterable[str], executor: Executor
) -> QueryProject | None:
    project_id = await _id_from_slug(slug, executor)
    if project_id is None:
        return None
    return await get_full(project_id, listed_statuses, executor)


async def get_from_slug(slug: str, executor: Executor) -> Project | None:
    project_id = await _id_from_slug(slug, executor)
    if project_id is None:
        return None
    return await Project.get(project_id, executor)


async def get_from_slug_or_project_id(
    slug_or_project_id: str, executor: Executor
) -> Project | None:
    """Look a project up by base62 id first, then by slug."""
    project_id = _optional_id(slug_or_project_id)
    if project_id is not None:
        project = await Project.get(project_id, executor)
        if project is not None:
            return project
    return await get_from_slug(slug_or_project_id, executor)


async def get_full_from_slug_or_project_id(
    slug_or_project_id: str, listed_statuses: Iterable[str], executor: Executor
) -> QueryProject | None:
    """Full record looked up by base62 id first, then by slug."""
    listed = list(listed_statuses)
    project_id = _optional_id(slug_or_project_id)
    if project_id is not None:
        project = await get_full(project_id, listed, executor)
        if project is not None:
            return project
    return await get_full_from_slug(slug_or_project_id, listed, executor)


async def remove_full(
    project_id: int, hidden_statuses: Iterable[str], executor: Executor
) -> bool:
    """Delete a project with its team, thread, versions and links.

    Returns ``False`` when the project does not exist.
    """
    hidden = list(hidden_statuses)
    team_row = await executor.fetchrow("SELECT team_id FROM mods WHERE id = $1", project_id)
    if team_row is None:
        return False
    team_id = team_row["team_id"]

    thread_row = await executor.fetchrow("SELECT thread_id FROM mods WHERE id = $1", project_id)
    if thread_row is not None and thread_row["thread_id"] is not None:
        await Thread.remove_full(thread_row["thread_id"], executor)

    for statement in (
        "DELETE FROM mod_follows WHERE mod_id = $1",
        "DELETE FROM mods_gallery WHERE mod_id = $1",
        "DELETE FROM mod_follows WHERE mod_id = $1",
        "DELETE FROM reports WHERE mod_id = $1",
        "DELETE FROM mods_categories WHERE joining_mod_id = $1",
        "DELETE FROM mods_donations WHERE joining_mod_id = $1",
    ):
        await executor.execute(statement, project_id)

    version_rows = await executor.fetch("SELECT id FROM versions WHERE mod_id = $1", project_id)
    for row in version_rows:
        await Version.remove_full(row["id"], hidden, executor)

    await executor.execute("DELETE FROM dependencies WHERE mod_dependency_id = $1", project_id)
    await executor.execute(
        "UPDATE payouts_values SET mod_id = NULL WHERE (mod_id = $1)", project_id
    )
    await executor.execute("DELETE FROM mods WHERE id = $1", project_id)
    await executor.execute("DELETE FROM team_members WHERE team_id = $1", team_id)
    await executor.execute("DELETE FROM teams WHERE id = $1", team_id)
    return True