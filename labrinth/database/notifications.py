"""User notifications."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .core import Executor
from .ids import generate_notification_id

LEGACY_MARKDOWN = "legacy_markdown"
UNKNOWN_BODY: dict[str, Any] = {"type": "unknown"}

_SELECT = (
    "SELECT n.id, n.user_id, n.title, n.text, n.link, n.created, n.read, "
    "n.type notification_type, n.body, "
    "JSONB_AGG(DISTINCT jsonb_build_object('id', na.id, 'notification_id', na.notification_id, "
    "'title', na.title, 'action_route_method', na.action_route_method, "
    "'action_route', na.action_route)) filter (where na.id is not null) actions "
    "FROM notifications n "
    "LEFT OUTER JOIN notifications_actions na on n.id = na.notification_id "
)


def _load_json(value: Any) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


@dataclass(frozen=True)
class NotificationAction:
    id: int
    notification_id: int
    title: str
    action_route_method: str
    action_route: str

    @classmethod
    def from_json(cls, data: Any) -> NotificationAction:
        if not isinstance(data, Mapping):
            raise TypeError("a notification action must be a JSON object")
        return cls(
            id=int(data["id"]),
            notification_id=int(data["notification_id"]),
            title=str(data["title"]),
            action_route_method=str(data["action_route_method"]),
            action_route=str(data["action_route"]),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "notification_id": self.notification_id,
            "title": self.title,
            "action_route_method": self.action_route_method,
            "action_route": self.action_route,
        }


def _parse_actions(raw: Any) -> list[NotificationAction]:
    try:
        return [NotificationAction.from_json(item) for item in _load_json(raw) or []]
    except (KeyError, TypeError, ValueError):
        return []


def _body_from_row(row: Mapping[str, Any]) -> dict[str, Any]:
    raw = row["body"]
    if raw is not None:
        try:
            body = _load_json(raw)
        except ValueError:
            body = None
        if isinstance(body, Mapping):
            return dict(body)
    title = row["title"]
    if title is None:
        return dict(UNKNOWN_BODY)
    return {
        "type": LEGACY_MARKDOWN,
        "notification_type": row["notification_type"],
        "title": title,
        "text": row["text"] or "",
        "link": row["link"] or "",
        "actions": [action.to_json() for action in _parse_actions(row["actions"])],
    }


@dataclass
class Notification:
    id: int
    user_id: int
    body: dict[str, Any]
    read: bool = False
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def _from_row(cls, row: Mapping[str, Any]) -> Notification:
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            body=_body_from_row(row),
            read=row["read"],
            created=row["created"],
        )

    async def insert(self, executor: Executor) -> None:
        await executor.execute(
            "INSERT INTO notifications (id, user_id, body) VALUES ($1, $2, $3)",
            self.id,
            self.user_id,
            json.dumps(self.body),
        )

    @classmethod
    async def get(cls, notification_id: int, executor: Executor) -> Notification | None:
        notifications = await cls.get_many([notification_id], executor)
        return notifications[0] if notifications else None

    @classmethod
    async def get_many(
        cls, notification_ids: Iterable[int], executor: Executor
    ) -> list[Notification]:
        rows = await executor.fetch(
            _SELECT + "WHERE n.id = ANY($1) GROUP BY n.id, n.user_id ORDER BY n.created DESC",
            list(notification_ids),
        )
        return [cls._from_row(row) for row in rows]

    @classmethod
    async def get_many_user(cls, user_id: int, executor: Executor) -> list[Notification]:
        rows = await executor.fetch(
            _SELECT + "WHERE n.user_id = $1 GROUP BY n.id, n.user_id", user_id
        )
        return [cls._from_row(row) for row in rows]

    @classmethod
    async def read(cls, notification_id: int, executor: Executor) -> None:
        await cls.read_many([notification_id], executor)

    @staticmethod
    async def read_many(notification_ids: Iterable[int], executor: Executor) -> None:
        await executor.execute(
            "UPDATE notifications SET read = TRUE WHERE id = ANY($1)", list(notification_ids)
        )

    @classmethod
    async def remove(cls, notification_id: int, executor: Executor) -> None:
        await cls.remove_many([notification_id], executor)

    @staticmethod
    async def remove_many(notification_ids: Iterable[int], executor: Executor) -> None:
        ids = list(notification_ids)
        await executor.execute(
            "DELETE FROM notifications_actions WHERE notification_id = ANY($1)", ids
        )
        await executor.execute("DELETE FROM notifications WHERE id = ANY($1)", ids)


@dataclass
class NotificationBuilder:
    body: dict[str, Any]

    async def insert(self, user_id: int, executor: Executor) -> None:
        await self.insert_many([user_id], executor)

    async def insert_many(self, user_ids: Iterable[int], executor: Executor) -> None:
        """Send a copy of the notification to every listed user."""
        for user_id in user_ids:
            notification_id = await generate_notification_id(executor)
            await Notification(
                id=notification_id, user_id=user_id, body=dict(self.body)
            ).insert(executor)