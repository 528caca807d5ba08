"""Projects with their donation links and gallery images."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .core import Executor
from .project_sync import update_game_versions, update_loaders
from .threads import _parse_timestamp
from .versions import VersionBuilder

PROCESSING = "processing"

_PROJECT_QUERY = (
    "SELECT id, project_type, title, description, downloads, follows, "
    "icon_url, body, published, "
    "updated, approved, queued, status, requested_status, "
    "issues_url, source_url, wiki_url, discord_url, license_url, "
    "team_id, client_side, server_side, license, slug, "
    "moderation_message, moderation_message_body, "
    "webhook_sent, color, loaders, game_versions, thread_id, monetization_status "
    "FROM mods "
    "WHERE id = ANY($1)"
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _color_to_db(color: int | None) -> int | None:
    if color is None:
        return None
    color &= 0xFFFFFFFF
    return color - 2**32 if color >= 2**31 else color


def _color_from_db(color: int | None) -> int | None:
    return None if color is None else color & 0xFFFFFFFF


@dataclass(frozen=True)
class DonationUrl:
    platform_id: int
    platform_short: str
    platform_name: str
    url: str

    @classmethod
    def from_json(cls, data: Any) -> DonationUrl:
        if not isinstance(data, Mapping):
            raise TypeError("a donation link must be a JSON object")
        return cls(
            platform_id=int(data["platform_id"]),
            platform_short=str(data["platform_short"]),
            platform_name=str(data["platform_name"]),
            url=str(data["url"]),
        )

    async def insert(self, project_id: int, executor: Executor) -> None:
        await executor.execute(
            "INSERT INTO mods_donations (joining_mod_id, joining_platform_id, url) "
            "VALUES ($1, $2, $3)",
            project_id,
            self.platform_id,
            self.url,
        )


@dataclass(frozen=True)
class GalleryItem:
    image_url: str
    featured: bool
    ordering: int
    title: str | None = None
    description: str | None = None
    created: datetime = field(default_factory=_now)

    @classmethod
    def from_json(cls, data: Any) -> GalleryItem:
        if not isinstance(data, Mapping):
            raise TypeError("a gallery item must be a JSON object")
        title = data.get("title")
        description = data.get("description")
        return cls(
            image_url=str(data["image_url"]),
            featured=bool(data["featured"]),
            ordering=int(data["ordering"]),
            title=None if title is None else str(title),
            description=None if description is None else str(description),
            created=_parse_timestamp(data["created"]),
        )

    async def insert(self, project_id: int, executor: Executor) -> None:
        await executor.execute(
            "INSERT INTO mods_gallery (mod_id, image_url, featured, title, description, ordering) "
            "VALUES ($1, $2, $3, $4, $5, $6)",
            project_id,
            self.image_url,
            self.featured,
            self.title,
            self.description,
            self.ordering,
        )


@dataclass
class Project:
    id: int
    project_type: int
    team_id: int
    title: str
    description: str
    body: str
    status: str
    client_side: int
    server_side: int
    license: str
    monetization_status: str
    published: datetime = field(default_factory=_now)
    updated: datetime = field(default_factory=_now)
    approved: datetime | None = None
    queued: datetime | None = None
    requested_status: str | None = None
    downloads: int = 0
    follows: int = 0
    icon_url: str | None = None
    issues_url: str | None = None
    source_url: str | None = None
    wiki_url: str | None = None
    license_url: str | None = None
    discord_url: str | None = None
    slug: str | None = None
    moderation_message: str | None = None
    moderation_message_body: str | None = None
    webhook_sent: bool = False
    color: int | None = None
    loaders: list[str] = field(default_factory=list)
    game_versions: list[str] = field(default_factory=list)
    thread_id: int | None = None
    body_url: str | None = None

    @classmethod
    def _from_row(cls, row: Mapping[str, Any]) -> Project:
        return cls(
            id=row["id"],
            project_type=row["project_type"],
            team_id=row["team_id"],
            title=row["title"],
            description=row["description"],
            body=row["body"],
            status=row["status"],
            client_side=row["client_side"],
            server_side=row["server_side"],
            license=row["license"],
            monetization_status=row["monetization_status"],
            published=row["published"],
            updated=row["updated"],
            approved=row["approved"],
            queued=row["queued"],
            requested_status=row["requested_status"],
            downloads=row["downloads"],
            follows=row["follows"],
            icon_url=row["icon_url"],
            issues_url=row["issues_url"],
            source_url=row["source_url"],
            wiki_url=row["wiki_url"],
            license_url=row["license_url"],
            discord_url=row["discord_url"],
            slug=row["slug"],
            moderation_message=row["moderation_message"],
            moderation_message_body=row["moderation_message_body"],
            webhook_sent=row["webhook_sent"],
            color=_color_from_db(row["color"]),
            loaders=list(row["loaders"] or []),
            game_versions=list(row["game_versions"] or []),
            thread_id=row["thread_id"],
        )

    async def insert(self, executor: Executor) -> None:
        await executor.execute(
            "INSERT INTO mods ("
            "id, team_id, title, description, body, "
            "published, downloads, icon_url, issues_url, "
            "source_url, wiki_url, status, requested_status, discord_url, "
            "client_side, server_side, license_url, license, "
            "slug, project_type, color, thread_id, monetization_status"
            ") VALUES ("
            "$1, $2, $3, $4, $5, "
            "$6, $7, $8, $9, "
            "$10, $11, $12, $13, $14, "
            "$15, $16, $17, $18, "
            "LOWER($19), $20, $21, $22, $23)",
            self.id,
            self.team_id,
            self.title,
            self.description,
            self.body,
            self.published,
            self.downloads,
            self.icon_url,
            self.issues_url,
            self.source_url,
            self.wiki_url,
            self.status,
            self.requested_status,
            self.discord_url,
            self.client_side,
            self.server_side,
            self.license_url,
            self.license,
            self.slug,
            self.project_type,
            _color_to_db(self.color),
            self.thread_id,
            self.monetization_status,
        )

    @classmethod
    async def get(cls, project_id: int, executor: Executor) -> Project | None:
        projects = await cls.get_many([project_id], executor)
        return projects[0] if projects else None

    @classmethod
    async def get_many(cls, project_ids: Iterable[int], executor: Executor) -> list[Project]:
        rows = await executor.fetch(_PROJECT_QUERY, list(project_ids))
        return [cls._from_row(row) for row in rows]


@dataclass
class ProjectBuilder:
    project_id: int
    project_type_id: int
    team_id: int
    title: str
    description: str
    body: str
    status: str
    client_side: int
    server_side: int
    license: str
    thread_id: int
    monetization_status: str
    requested_status: str | None = None
    icon_url: str | None = None
    issues_url: str | None = None
    source_url: str | None = None
    wiki_url: str | None = None
    license_url: str | None = None
    discord_url: str | None = None
    slug: str | None = None
    color: int | None = None
    categories: list[int] = field(default_factory=list)
    additional_categories: list[int] = field(default_factory=list)
    initial_versions: list[VersionBuilder] = field(default_factory=list)
    donation_urls: list[DonationUrl] = field(default_factory=list)
    gallery_items: list[GalleryItem] = field(default_factory=list)

    async def insert(self, hidden_statuses: Iterable[str], executor: Executor) -> int:
        """Create the project with its versions, links, gallery and categories."""
        hidden = list(hidden_statuses)
        now = _now()
        await Project(
            id=self.project_id,
            project_type=self.project_type_id,
            team_id=self.team_id,
            title=self.title,
            description=self.description,
            body=self.body,
            status=self.status,
            client_side=self.client_side,
            server_side=self.server_side,
            license=self.license,
            monetization_status=self.monetization_status,
            published=now,
            updated=now,
            queued=now if self.status == PROCESSING else None,
            requested_status=self.requested_status,
            icon_url=self.icon_url,
            issues_url=self.issues_url,
            source_url=self.source_url,
            wiki_url=self.wiki_url,
            license_url=self.license_url,
            discord_url=self.discord_url,
            slug=self.slug,
            color=self.color,
            thread_id=self.thread_id,
        ).insert(executor)

        for version in self.initial_versions:
            await replace(version, project_id=self.project_id).insert(executor)
        for donation in self.donation_urls:
            await donation.insert(self.project_id, executor)
        for item in self.gallery_items:
            await item.insert(self.project_id, executor)
        for category in self.categories:
            await executor.execute(
                "INSERT INTO mods_categories (joining_mod_id, joining_category_id, is_additional) "
                "VALUES ($1, $2, FALSE)",
                self.project_id,
                category,
            )
        for category in self.additional_categories:
            await executor.execute(
                "INSERT INTO mods_categories (joining_mod_id, joining_category_id, is_additional) "
                "VALUES ($1, $2, TRUE)",
                self.project_id,
                category,
            )

        await update_game_versions(self.project_id, hidden, executor)
        await update_loaders(self.project_id, hidden, executor)
        return self.project_id