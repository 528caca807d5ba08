"""Base62 identifiers and collision-free random id generation."""

from __future__ import annotations

import random
import re
import secrets
from typing import Callable

from .core import DatabaseError, Executor, RandomIdError

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
ID_RETRY_COUNT = 20
MAX_BASE62_LENGTH = 11
DEFAULT_ID_LENGTH = 8

_U64_MAX = 2**64 - 1
_DIGITS = {char: value for value, char in enumerate(BASE62_ALPHABET)}
_TABLE_NAME = re.compile(r"^[a-z_][a-z0-9_]*$")

# Words that must not appear inside a generated id, matched case-insensitively.
_BLOCKED_WORDS = frozenset(
    {"ass", "cock", "cum", "cunt", "dick", "fag", "fuck", "porn", "sex", "shit", "slut", "tit"}
)


def to_base62(value: int) -> str:
    """Encode a non-negative integer in base62."""
    if value < 0:
        raise ValueError("base62 values must not be negative")
    if value == 0:
        return BASE62_ALPHABET[0]
    digits = []
    while value:
        value, remainder = divmod(value, 62)
        digits.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(digits))


def parse_base62(text: str) -> int:
    """Decode a base62 string into an unsigned 64-bit integer."""
    if not text:
        raise ValueError("empty base62 string")
    if len(text) > MAX_BASE62_LENGTH:
        raise ValueError(f"base62 string is longer than {MAX_BASE62_LENGTH} characters")
    value = 0
    for char in text:
        try:
            digit = _DIGITS[char]
        except KeyError:
            raise ValueError(f"invalid base62 character {char!r}") from None
        value = value * 62 + digit
    if value > _U64_MAX:
        raise ValueError("base62 value does not fit in 64 bits")
    return value


def random_base62(length: int, rng: random.Random | None = None) -> int:
    """Return a random number whose base62 form has exactly ``length`` digits."""
    if not 1 <= length <= MAX_BASE62_LENGTH:
        raise ValueError(f"length must be between 1 and {MAX_BASE62_LENGTH}")
    rng = rng if rng is not None else secrets.SystemRandom()
    low = 62 ** (length - 1)
    high = min(62**length - 1, _U64_MAX)
    return rng.randint(low, high)


def _contains_blocked_word(text: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in _BLOCKED_WORDS)


def _as_signed(value: int) -> int:
    return value - 2**64 if value >= 2**63 else value


async def generate_id(
    executor: Executor,
    table: str,
    length: int = DEFAULT_ID_LENGTH,
    rng: random.Random | None = None,
    is_censored: Callable[[str], bool] | None = None,
) -> int:
    """Pick a random id that is unused in ``table`` and spells no blocked word."""
    if not _TABLE_NAME.match(table):
        raise ValueError(f"invalid table name {table!r}")
    rng = rng if rng is not None else secrets.SystemRandom()
    censored = is_censored if is_censored is not None else _contains_blocked_word
    query = f"SELECT EXISTS(SELECT 1 FROM {table} WHERE id=$1)"

    candidate = random_base62(length, rng)
    retries = 0
    while True:
        row = await executor.fetchrow(query, _as_signed(candidate))
        if row is None:
            raise DatabaseError("Error while interacting with the database: no rows returned")
        exists = row["exists"]
        if exists is None or exists or censored(to_base62(candidate)):
            candidate = random_base62(length, rng)
        else:
            break
        retries += 1
        if retries > ID_RETRY_COUNT:
            raise RandomIdError()
    return _as_signed(candidate)


async def generate_project_id(executor: Executor) -> int:
    return await generate_id(executor, "mods")


async def generate_version_id(executor: Executor) -> int:
    return await generate_id(executor, "versions")


async def generate_team_id(executor: Executor) -> int:
    return await generate_id(executor, "teams")


async def generate_file_id(executor: Executor) -> int:
    return await generate_id(executor, "files")


async def generate_team_member_id(executor: Executor) -> int:
    return await generate_id(executor, "team_members")


async def generate_state_id(executor: Executor) -> int:
    return await generate_id(executor, "states")


async def generate_pat_id(executor: Executor) -> int:
    return await generate_id(executor, "pats")


async def generate_user_id(executor: Executor) -> int:
    return await generate_id(executor, "users")


async def generate_report_id(executor: Executor) -> int:
    return await generate_id(executor, "reports")


async def generate_notification_id(executor: Executor) -> int:
    return await generate_id(executor, "notifications")


async def generate_thread_id(executor: Executor) -> int:
    return await generate_id(executor, "threads")


async def generate_thread_message_id(executor: Executor) -> int:
    return await generate_id(executor, "threads_messages")