"""Database errors and the executor interface used by the models."""

from __future__ import annotations

import abc
from collections.abc import Mapping, Sequence
from typing import Any


class DatabaseError(Exception):
    """A database request failed."""

    def __init__(self, message: str = "A database request failed") -> None:
        super().__init__(message)


class RandomIdError(DatabaseError):
    """No unused random id could be found."""

    def __init__(self) -> None:
        super().__init__("Error while trying to generate random ID")


class Executor(abc.ABC):
    """Something that runs SQL statements with positional ``$n`` parameters."""

    @abc.abstractmethod
    async def execute(self, query: str, *args: Any) -> Any:
        """Run a statement that returns no rows."""

    @abc.abstractmethod
    async def fetch(self, query: str, *args: Any) -> Sequence[Mapping[str, Any]]:
        """Run a query and return all its rows."""

    async def fetchrow(self, query: str, *args: Any) -> Mapping[str, Any] | None:
        """Run a query and return its first row, or ``None`` when it has none."""
        rows = await self.fetch(query, *args)
        return rows[0] if rows else None