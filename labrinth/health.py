"""Service health checks."""

from __future__ import annotations

import threading

from .database.core import Executor

_search_ready = threading.Event()


def set_search_ready(ready: bool) -> None:
    """Record whether the search index is ready to serve queries."""
    if ready:
        _search_ready.set()
    else:
        _search_ready.clear()


def is_search_ready() -> bool:
    """Whether the search index has been marked ready."""
    return _search_ready.is_set()


async def check_database(executor: Executor) -> None:
    """Run a trivial query; any database failure propagates."""
    await executor.execute("SELECT 1")