"""Moderation threads and their messages."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .core import Executor
from .ids import generate_thread_id, generate_thread_message_id

DELETED_BODY: dict[str, Any] = {"type": "deleted"}

_FRACTION = re.compile(r"\.(\d+)")

_THREAD_QUERY = (
    "SELECT t.id, t.thread_type, t.show_in_mod_inbox, "
    "ARRAY_AGG(DISTINCT tm.user_id) filter (where tm.user_id is not null) members, "
    "JSONB_AGG(DISTINCT jsonb_build_object('id', tmsg.id, 'author_id', tmsg.author_id, "
    "'thread_id', tmsg.thread_id, 'body', tmsg.body, 'created', tmsg.created)) "
    "filter (where tmsg.id is not null) messages "
    "FROM threads t "
    "LEFT OUTER JOIN threads_messages tmsg ON tmsg.thread_id = t.id "
    "LEFT OUTER JOIN threads_members tm ON tm.thread_id = t.id "
    "WHERE t.id = ANY($1) "
    "GROUP BY t.id"
)

_MESSAGE_QUERY = (
    "SELECT tm.id, tm.author_id, tm.thread_id, tm.body, tm.created "
    "FROM threads_messages tm "
    "WHERE tm.id = ANY($1)"
)


def _load_json(value: Any) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        return json.loads(value)
    return value


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"cannot read a timestamp from {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ThreadMessage:
    id: int
    thread_id: int
    author_id: int | None
    body: dict[str, Any]
    created: datetime

    @classmethod
    def from_json(cls, data: Any) -> ThreadMessage:
        """Build a message from its JSON object form."""
        if not isinstance(data, Mapping):
            raise TypeError("a thread message must be a JSON object")
        body = data["body"]
        if not isinstance(body, Mapping):
            raise TypeError("a thread message body must be a JSON object")
        author = data.get("author_id")
        return cls(
            id=int(data["id"]),
            thread_id=int(data["thread_id"]),
            author_id=None if author is None else int(author),
            body=dict(body),
            created=_parse_timestamp(data["created"]),
        )

    @classmethod
    async def get(cls, message_id: int, executor: Executor) -> ThreadMessage | None:
        messages = await cls.get_many([message_id], executor)
        return messages[0] if messages else None

    @classmethod
    async def get_many(
        cls, message_ids: Iterable[int], executor: Executor
    ) -> list[ThreadMessage]:
        rows = await executor.fetch(_MESSAGE_QUERY, list(message_ids))
        messages = []
        for row in rows:
            try:
                body = _load_json(row["body"])
            except ValueError:
                body = None
            messages.append(
                cls(
                    id=row["id"],
                    thread_id=row["thread_id"],
                    author_id=row["author_id"],
                    body=dict(body) if isinstance(body, Mapping) else dict(DELETED_BODY),
                    created=row["created"],
                )
            )
        return messages

    @staticmethod
    async def remove_full(message_id: int, executor: Executor) -> None:
        """Replace the message body with the deleted marker."""
        await executor.execute(
            "UPDATE threads_messages SET body = $2 WHERE id = $1",
            message_id,
            json.dumps(DELETED_BODY),
        )


def _parse_messages(raw: Any) -> list[ThreadMessage]:
    try:
        messages = [ThreadMessage.from_json(item) for item in _load_json(raw) or []]
    except (KeyError, TypeError, ValueError):
        return []
    return sorted(messages, key=lambda message: message.created)


@dataclass
class Thread:
    id: int
    thread_type: str
    messages: list[ThreadMessage] = field(default_factory=list)
    members: list[int] = field(default_factory=list)
    show_in_mod_inbox: bool = False

    @classmethod
    async def get(cls, thread_id: int, executor: Executor) -> Thread | None:
        threads = await cls.get_many([thread_id], executor)
        return threads[0] if threads else None

    @classmethod
    async def get_many(cls, thread_ids: Iterable[int], executor: Executor) -> list[Thread]:
        rows = await executor.fetch(_THREAD_QUERY, list(thread_ids))
        return [
            cls(
                id=row["id"],
                thread_type=row["thread_type"],
                messages=_parse_messages(row["messages"]),
                members=list(row["members"] or []),
                show_in_mod_inbox=row["show_in_mod_inbox"],
            )
            for row in rows
        ]

    @staticmethod
    async def remove_full(thread_id: int, executor: Executor) -> None:
        """Delete a thread with its messages and members."""
        await executor.execute("DELETE FROM threads_messages WHERE thread_id = $1", thread_id)
        await executor.execute("DELETE FROM threads_members WHERE thread_id = $1", thread_id)
        await executor.execute("DELETE FROM threads WHERE id = $1", thread_id)


@dataclass
class ThreadBuilder:
    thread_type: str
    members: list[int] = field(default_factory=list)

    async def insert(self, executor: Executor) -> int:
        """Create the thread and its member rows; returns the new thread id."""
        thread_id = await generate_thread_id(executor)
        await executor.execute(
            "INSERT INTO threads (id, thread_type) VALUES ($1, $2)",
            thread_id,
            self.thread_type,
        )
        for member in self.members:
            await executor.execute(
                "INSERT INTO threads_members (thread_id, user_id) VALUES ($1, $2)",
                thread_id,
                member,
            )
        return thread_id


@dataclass
class ThreadMessageBuilder:
    author_id: int | None
    body: dict[str, Any]
    thread_id: int

    async def insert(self, executor: Executor) -> int:
        """Store the message; returns the new message id."""
        message_id = await generate_thread_message_id(executor)
        await executor.execute(
            "INSERT INTO threads_messages (id, author_id, body, thread_id) "
            "VALUES ($1, $2, $3, $4)",
            message_id,
            self.author_id,
            json.dumps(self.body),
            self.thread_id,
        )
        return message_id