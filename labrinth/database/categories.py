"""Lookup tables: project types, side types, loaders, game versions and more."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .core import Executor

_GAME_VERSION_COLUMNS = (
    "SELECT gv.id id, gv.version version_, gv.type type_, gv.created created, "
    "gv.major major FROM game_versions gv"
)


async def _lookup_id(executor: Executor, query: str, *args: Any) -> int | None:
    row = await executor.fetchrow(query, *args)
    return None if row is None else row["id"]


async def _names(executor: Executor, query: str) -> list[str]:
    return [row["name"] for row in await executor.fetch(query)]


@dataclass(frozen=True)
class ProjectType:
    id: int
    name: str

    @staticmethod
    async def get_id(name: str, executor: Executor) -> int | None:
        return await _lookup_id(executor, "SELECT id FROM project_types WHERE name = $1", name)

    @staticmethod
    async def list(executor: Executor) -> list[str]:
        return await _names(executor, "SELECT name FROM project_types")


@dataclass(frozen=True)
class SideType:
    id: int
    name: str

    @staticmethod
    async def get_id(name: str, executor: Executor) -> int | None:
        return await _lookup_id(executor, "SELECT id FROM side_types WHERE name = $1", name)

    @staticmethod
    async def list(executor: Executor) -> list[str]:
        return await _names(executor, "SELECT name FROM side_types")


@dataclass(frozen=True)
class Loader:
    id: int
    loader: str
    icon: str
    supported_project_types: tuple[str, ...]

    @staticmethod
    async def get_id(name: str, executor: Executor) -> int | None:
        return await _lookup_id(executor, "SELECT id FROM loaders WHERE loader = $1", name)

    @classmethod
    async def list(cls, executor: Executor) -> list[Loader]:
        rows = await executor.fetch(
            "SELECT l.id id, l.loader loader, l.icon icon, "
            "ARRAY_AGG(DISTINCT pt.name) filter (where pt.name is not null) project_types "
            "FROM loaders l "
            "LEFT OUTER JOIN loaders_project_types lpt ON joining_loader_id = l.id "
            "LEFT OUTER JOIN project_types pt ON lpt.joining_project_type_id = pt.id "
            "GROUP BY l.id"
        )
        return [
            cls(
                id=row["id"],
                loader=row["loader"],
                icon=row["icon"],
                supported_project_types=tuple(str(t) for t in row["project_types"] or ()),
            )
            for row in rows
        ]


@dataclass(frozen=True)
class GameVersion:
    id: int
    version: str
    version_type: str
    created: datetime
    major: bool

    @classmethod
    def _from_row(cls, row: Any) -> GameVersion:
        return cls(
            id=row["id"],
            version=row["version_"],
            version_type=row["type_"],
            created=row["created"],
            major=row["major"],
        )

    @staticmethod
    async def get_id(version: str, executor: Executor) -> int | None:
        return await _lookup_id(
            executor, "SELECT id FROM game_versions WHERE version = $1", version
        )

    @classmethod
    async def list(cls, executor: Executor) -> list[GameVersion]:
        rows = await executor.fetch(f"{_GAME_VERSION_COLUMNS} ORDER BY created DESC")
        return [cls._from_row(row) for row in rows]

    @classmethod
    async def list_filter(
        cls, version_type: str | None, major: bool | None, executor: Executor
    ) -> list[GameVersion]:
        """Versions matching the given type and/or major flag; empty when neither is given."""
        if version_type is not None and major is not None:
            rows = await executor.fetch(
                f"{_GAME_VERSION_COLUMNS} WHERE major = $1 AND type = $2 ORDER BY created DESC",
                major,
                version_type,
            )
        elif version_type is not None:
            rows = await executor.fetch(
                f"{_GAME_VERSION_COLUMNS} WHERE type = $1 ORDER BY created DESC", version_type
            )
        elif major is not None:
            rows = await executor.fetch(
                f"{_GAME_VERSION_COLUMNS} WHERE major = $1 ORDER BY created DESC", major
            )
        else:
            return []
        return [cls._from_row(row) for row in rows]


@dataclass(frozen=True)
class GameVersionBuilder:
    """Creates a game version, or updates only the given fields of an existing one."""

    version: str | None = None
    version_type: str | None = None
    date: datetime | None = None

    async def insert(self, executor: Executor) -> int:
        created = None
        if self.date is not None:
            created = (
                self.date.astimezone(timezone.utc).replace(tzinfo=None)
                if self.date.tzinfo is not None
                else self.date
            )
        row = await executor.fetchrow(
            "INSERT INTO game_versions (version, type, created) "
            "VALUES ($1, COALESCE($2, 'other'), COALESCE($3, timezone('utc', now()))) "
            "ON CONFLICT (version) DO UPDATE "
            "SET type = COALESCE($2, game_versions.type), "
            "created = COALESCE($3, game_versions.created) "
            "RETURNING id",
            self.version,
            self.version_type,
            created,
        )
        if row is None:
            raise LookupError("game version insert returned no id")
        return row["id"]


@dataclass(frozen=True)
class Category:
    id: int
    category: str
    project_type: str
    icon: str
    header: str

    @staticmethod
    async def get_id(name: str, executor: Executor) -> int | None:
        return await _lookup_id(executor, "SELECT id FROM categories WHERE category = $1", name)

    @staticmethod
    async def get_id_project(name: str, project_type: int, executor: Executor) -> int | None:
        return await _lookup_id(
            executor,
            "SELECT id FROM categories WHERE category = $1 AND project_type = $2",
            name,
            project_type,
        )

    @classmethod
    async def list(cls, executor: Executor) -> list[Category]:
        rows = await executor.fetch(
            "SELECT c.id id, c.category category, c.icon icon, c.header category_header, "
            "pt.name project_type "
            "FROM categories c "
            "INNER JOIN project_types pt ON c.project_type = pt.id "
            "ORDER BY c.ordering, c.category"
        )
        return [
            cls(
                id=row["id"],
                category=row["category"],
                project_type=row["project_type"],
                icon=row["icon"],
                header=row["category_header"],
            )
            for row in rows
        ]


@dataclass(frozen=True)
class ReportType:
    id: int
    report_type: str

    @staticmethod
    async def get_id(name: str, executor: Executor) -> int | None:
        return await _lookup_id(executor, "SELECT id FROM report_types WHERE name = $1", name)

    @staticmethod
    async def list(executor: Executor) -> list[str]:
        return await _names(executor, "SELECT name FROM report_types")


@dataclass(frozen=True)
class DonationPlatform:
    id: int
    short: str
    name: str

    @staticmethod
    async def get_id(short: str, executor: Executor) -> int | None:
        return await _lookup_id(
            executor, "SELECT id FROM donation_platforms WHERE short = $1", short
        )

    @classmethod
    async def list(cls, executor: Executor) -> list[DonationPlatform]:
        rows = await executor.fetch("SELECT id, short, name FROM donation_platforms")
        return [cls(id=row["id"], short=row["short"], name=row["name"]) for row in rows]