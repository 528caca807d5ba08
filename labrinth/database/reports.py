"""User reports about projects, versions and users."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .core import Executor
from .threads import Thread

_REPORT_QUERY = (
    "SELECT r.id, rt.name, r.mod_id, r.version_id, r.user_id, r.body, r.reporter, "
    "r.created, r.thread_id, r.closed "
    "FROM reports r "
    "INNER JOIN report_types rt ON rt.id = r.report_type_id "
    "WHERE r.id = ANY($1) "
    "ORDER BY r.created DESC"
)


@dataclass
class QueryReport:
    """A report as read back, with its type resolved to a name."""

    id: int
    report_type: str
    project_id: int | None
    version_id: int | None
    user_id: int | None
    body: str
    reporter: int
    created: datetime
    closed: bool
    thread_id: int | None


@dataclass
class Report:
    id: int
    report_type_id: int
    project_id: int | None
    version_id: int | None
    user_id: int | None
    body: str
    reporter: int
    thread_id: int
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    closed: bool = False

    async def insert(self, executor: Executor) -> None:
        await executor.execute(
            "INSERT INTO reports (id, report_type_id, mod_id, version_id, user_id, "
            "body, reporter, thread_id) "
            "VALUES ($1, $2, $3, $4, $5, $6, $7, $8)",
            self.id,
            self.report_type_id,
            self.project_id,
            self.version_id,
            self.user_id,
            self.body,
            self.reporter,
            self.thread_id,
        )

    @classmethod
    async def get(cls, report_id: int, executor: Executor) -> QueryReport | None:
        reports = await cls.get_many([report_id], executor)
        return reports[0] if reports else None

    @staticmethod
    async def get_many(report_ids: Iterable[int], executor: Executor) -> list[QueryReport]:
        rows = await executor.fetch(_REPORT_QUERY, list(report_ids))
        return [
            QueryReport(
                id=row["id"],
                report_type=row["name"],
                project_id=row["mod_id"],
                version_id=row["version_id"],
                user_id=row["user_id"],
                body=row["body"],
                reporter=row["reporter"],
                created=row["created"],
                closed=row["closed"],
                thread_id=row["thread_id"],
            )
            for row in rows
        ]

    @staticmethod
    async def remove_full(report_id: int, executor: Executor) -> bool:
        """Delete a report and its thread; ``False`` when the report does not exist."""
        row = await executor.fetchrow(
            "SELECT EXISTS(SELECT 1 FROM reports WHERE id = $1)", report_id
        )
        if row is None or not row["exists"]:
            return False

        thread_row = await executor.fetchrow(
            "SELECT thread_id FROM reports WHERE id = $1", report_id
        )
        if thread_row is not None and thread_row["thread_id"] is not None:
            await Thread.remove_full(thread_row["thread_id"], executor)

        await executor.execute("DELETE FROM reports WHERE id = $1", report_id)
        return True