"""Keep the denormalised game version and loader lists on projects up to date."""

from __future__ import annotations

from collections.abc import Iterable

from .core import Executor

_GAME_VERSIONS_SQL = (
    "UPDATE mods "
    "SET game_versions = ("
    "SELECT COALESCE(ARRAY_AGG(DISTINCT gv.version) filter (where gv.version is not null), "
    "array[]::varchar[]) "
    "FROM versions v "
    "INNER JOIN game_versions_versions gvv ON v.id = gvv.joining_version_id "
    "INNER JOIN game_versions gv on gvv.game_version_id = gv.id "
    "WHERE v.mod_id = mods.id AND v.status != ANY($2)"
    ") "
    "WHERE id = $1"
)

_LOADERS_SQL = (
    "UPDATE mods "
    "SET loaders = ("
    "SELECT COALESCE(ARRAY_AGG(DISTINCT l.loader) filter (where l.loader is not null), "
    "array[]::varchar[]) "
    "FROM versions v "
    "INNER JOIN loaders_versions lv ON lv.version_id = v.id "
    "INNER JOIN loaders l on lv.loader_id = l.id "
    "WHERE v.mod_id = mods.id AND v.status != ANY($2)"
    ") "
    "WHERE id = $1"
)


async def update_game_versions(
    project_id: int, hidden_statuses: Iterable[str], executor: Executor
) -> None:
    """Recompute the project's game versions from its versions that are not hidden."""
    await executor.execute(_GAME_VERSIONS_SQL, project_id, list(hidden_statuses))


async def update_loaders(
    project_id: int, hidden_statuses: Iterable[str], executor: Executor
) -> None:
    """Recompute the project's loaders from its versions that are not hidden."""
    await executor.execute(_LOADERS_SQL, project_id, list(hidden_statuses))