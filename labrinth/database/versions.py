"""Project versions: creation, their files, dependencies and removal."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .core import DatabaseError, Executor
from .ids import generate_file_id
from .project_sync import update_game_versions, update_loaders


@dataclass
class DependencyBuilder:
    dependency_type: str
    project_id: int | None = None
    version_id: int | None = None
    file_name: str | None = None

    async def insert(self, version_id: int, executor: Executor) -> None:
        """Store the dependency of ``version_id``, resolving the project from a version."""
        project_id = self.project_id
        if project_id is None and self.version_id is not None:
            row = await executor.fetchrow(
                "SELECT mod_id FROM versions WHERE id = $1", self.version_id
            )
            project_id = None if row is None else row["mod_id"]

        await executor.execute(
            "INSERT INTO dependencies (dependent_id, dependency_type, dependency_id, "
            "mod_dependency_id, dependency_file_name) "
            "VALUES ($1, $2, $3, $4, $5)",
            version_id,
            self.dependency_type,
            project_id,
            self.version_id,
            self.file_name,
        )


@dataclass(frozen=True)
class HashBuilder:
    algorithm: str
    hash: bytes


@dataclass
class VersionFileBuilder:
    url: str
    filename: str
    size: int
    primary: bool = False
    hashes: list[HashBuilder] = field(default_factory=list)
    file_type: str | None = None

    async def insert(self, version_id: int, executor: Executor) -> int:
        """Store the file and its hashes; returns the new file id."""
        file_id = await generate_file_id(executor)
        await executor.execute(
            "INSERT INTO files (id, version_id, url, filename, is_primary, size, file_type) "
            "VALUES ($1, $2, $3, $4, $5, $6, $7)",
            file_id,
            version_id,
            self.url,
            self.filename,
            self.primary,
            self.size,
            self.file_type,
        )
        for file_hash in self.hashes:
            await executor.execute(
                "INSERT INTO hashes (file_id, algorithm, hash) VALUES ($1, $2, $3)",
                file_id,
                file_hash.algorithm,
                file_hash.hash,
            )
        return file_id


@dataclass
class Version:
    id: int
    project_id: int
    author_id: int
    name: str
    version_number: str
    changelog: str
    version_type: str
    status: str
    featured: bool = False
    downloads: int = 0
    requested_status: str | None = None
    changelog_url: str | None = None
    date_published: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    async def insert(self, executor: Executor) -> None:
        await executor.execute(
            "INSERT INTO versions (id, mod_id, author_id, name, version_number, "
            "changelog, date_published, downloads, version_type, featured, status) "
            "VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)",
            self.id,
            self.project_id,
            self.author_id,
            self.name,
            self.version_number,
            self.changelog,
            self.date_published,
            self.downloads,
            self.version_type,
            self.featured,
            self.status,
        )

    @staticmethod
    async def remove_full(
        version_id: int, hidden_statuses: Iterable[str], executor: Executor
    ) -> bool:
        """Delete a version and everything hanging off it.

        Returns ``False`` when the version does not exist.
        """
        hidden = list(hidden_statuses)
        row = await executor.fetchrow(
            "SELECT EXISTS(SELECT 1 FROM versions WHERE id = $1)", version_id
        )
        if row is None or not row["exists"]:
            return False

        await executor.execute("DELETE FROM reports WHERE version_id = $1", version_id)
        await executor.execute(
            "DELETE FROM game_versions_versions gvv WHERE gvv.joining_version_id = $1",
            version_id,
        )
        await executor.execute(
            "DELETE FROM loaders_versions WHERE loaders_versions.version_id = $1", version_id
        )
        await executor.execute(
            "DELETE FROM hashes WHERE EXISTS("
            "SELECT 1 FROM files WHERE (files.version_id = $1) AND (hashes.file_id = files.id))",
            version_id,
        )
        await executor.execute("DELETE FROM files WHERE files.version_id = $1", version_id)

        project_row = await executor.fetchrow(
            "SELECT mod_id FROM versions WHERE id = $1", version_id
        )
        if project_row is None:
            raise DatabaseError(
                "Error while interacting with the database: no rows returned"
            )
        project_id = project_row["mod_id"]

        await executor.execute(
            "UPDATE dependencies SET dependency_id = NULL, mod_dependency_id = $2 "
            "WHERE dependency_id = $1",
            version_id,
            project_id,
        )
        await executor.execute(
            "DELETE FROM dependencies WHERE mod_dependency_id = NULL "
            "AND dependency_id = NULL AND dependency_file_name = NULL"
        )
        await executor.execute("DELETE FROM dependencies WHERE dependent_id = $1", version_id)
        await executor.execute("DELETE FROM versions WHERE id = $1", version_id)

        await update_game_versions(project_id, hidden, executor)
        await update_loaders(project_id, hidden, executor)
        return True


@dataclass
class VersionBuilder:
    version_id: int
    project_id: int
    author_id: int
    name: str
    version_number: str
    changelog: str
    version_type: str
    status: str
    featured: bool = False
    requested_status: str | None = None
    files: list[VersionFileBuilder] = field(default_factory=list)
    dependencies: list[DependencyBuilder] = field(default_factory=list)
    game_versions: list[int] = field(default_factory=list)
    loaders: list[int] = field(default_factory=list)

    async def insert(self, executor: Executor) -> int:
        """Create the version with its files, dependencies, loaders and game versions."""
        await Version(
            id=self.version_id,
            project_id=self.project_id,
            author_id=self.author_id,
            name=self.name,
            version_number=self.version_number,
            changelog=self.changelog,
            version_type=self.version_type,
            status=self.status,
            featured=self.featured,
            requested_status=self.requested_status,
        ).insert(executor)

        await executor.execute("UPDATE mods SET updated = NOW() WHERE id = $1", self.project_id)

        for version_file in self.files:
            await version_file.insert(self.version_id, executor)
        for dependency in self.dependencies:
            await dependency.insert(self.version_id, executor)
        for loader in self.loaders:
            await executor.execute(
                "INSERT INTO loaders_versions (loader_id, version_id) VALUES ($1, $2)",
                loader,
                self.version_id,
            )
        for game_version in self.game_versions:
            await executor.execute(
                "INSERT INTO game_versions_versions (game_version_id, joining_version_id) "
                "VALUES ($1, $2)",
                game_version,
                self.version_id,
            )
        return self.version_id