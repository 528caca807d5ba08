import random

import pytest

from labrinth.database import ids
from labrinth.database.core import DatabaseError, Executor, RandomIdError


class ExistsExecutor(Executor):
    """Answers EXISTS queries from a list of booleans, repeating the last one."""

    def __init__(self, answers, missing_row=False):
        self.answers = list(answers)
        self.missing_row = missing_row
        self.calls = []

    async def execute(self, query, *args):
        self.calls.append((query, args))

    async def fetch(self, query, *args):
        self.calls.append((query, args))
        if self.missing_row:
            return []
        index = min(len(self.calls) - 1, len(self.answers) - 1)
        return [{"exists": self.answers[index]}]


def test_to_base62_pinned_digits():
    assert ids.to_base62(0) == "0"
    assert ids.to_base62(61) == "z"
    assert ids.to_base62(62) == "10"


@pytest.mark.parametrize("value", [1, 9, 10, 35, 36, 3843, 123456789, 2**63, 2**64 - 1])
def test_base62_round_trip(value):
    assert ids.parse_base62(ids.to_base62(value)) == value


def test_to_base62_rejects_negative():
    with pytest.raises(ValueError):
        ids.to_base62(-1)


@pytest.mark.parametrize("text", ["", "ab-c", "a b", "zzzzzzzzzzzz", "zzzzzzzzzzz"])
def test_parse_base62_rejects_invalid(text):
    with pytest.raises(ValueError):
        ids.parse_base62(text)


@pytest.mark.parametrize("length", range(1, 12))
def test_random_base62_has_requested_length(length):
    rng = random.Random(length)
    for _ in range(20):
        value = ids.random_base62(length, rng)
        assert len(ids.to_base62(value)) == length


@pytest.mark.parametrize("length", [0, 12])
def test_random_base62_rejects_bad_length(length):
    with pytest.raises(ValueError):
        ids.random_base62(length, random.Random(1))


@pytest.mark.asyncio
async def test_generate_id_returns_first_free_id():
    executor = ExistsExecutor([False])
    value = await ids.generate_id(executor, "mods", 8, random.Random(3), lambda _: False)
    assert len(executor.calls) == 1
    query, args = executor.calls[0]
    assert query == "SELECT EXISTS(SELECT 1 FROM mods WHERE id=$1)"
    assert args == (value,)
    assert len(ids.to_base62(value)) == 8


@pytest.mark.asyncio
async def test_generate_id_retries_taken_ids():
    executor = ExistsExecutor([True, True, False])
    value = await ids.generate_id(executor, "users", 8, random.Random(5), lambda _: False)
    assert len(executor.calls) == 3
    assert executor.calls[-1][1] == (value,)
    assert len({args for _, args in executor.calls}) >= 2


@pytest.mark.asyncio
async def test_generate_id_skips_censored_ids():
    seen = []

    def censor(text):
        seen.append(text)
        return len(seen) == 1

    executor = ExistsExecutor([False])
    value = await ids.generate_id(executor, "teams", 8, random.Random(7), censor)
    assert len(executor.calls) == 2
    assert seen[-1] == ids.to_base62(value)


@pytest.mark.asyncio
async def test_generate_id_gives_up():
    executor = ExistsExecutor([True])
    with pytest.raises(RandomIdError):
        await ids.generate_id(executor, "files", 8, random.Random(9), lambda _: False)
    assert len(executor.calls) == ids.ID_RETRY_COUNT + 1


@pytest.mark.asyncio
async def test_generate_id_null_exists_counts_as_taken():
    executor = ExistsExecutor([None, False])
    await ids.generate_id(executor, "pats", 8, random.Random(2), lambda _: False)
    assert len(executor.calls) == 2


@pytest.mark.asyncio
async def test_generate_id_without_row_raises():
    executor = ExistsExecutor([], missing_row=True)
    with pytest.raises(DatabaseError):
        await ids.generate_id(executor, "mods", 8, random.Random(1), lambda _: False)


@pytest.mark.asyncio
async def test_generate_id_rejects_bad_table():
    with pytest.raises(ValueError):
        await ids.generate_id(ExistsExecutor([False]), "mods; DROP", 8)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "generator, table",
    [
        (ids.generate_project_id, "mods"),
        (ids.generate_version_id, "versions"),
        (ids.generate_team_id, "teams"),
        (ids.generate_file_id, "files"),
        (ids.generate_team_member_id, "team_members"),
        (ids.generate_state_id, "states"),
        (ids.generate_pat_id, "pats"),
        (ids.generate_user_id, "users"),
        (ids.generate_report_id, "reports"),
        (ids.generate_notification_id, "notifications"),
        (ids.generate_thread_id, "threads"),
        (ids.generate_thread_message_id, "threads_messages"),
    ],
)
async def test_named_generators_use_their_table(generator, table):
    executor = ExistsExecutor([False])
    value = await generator(executor)
    assert executor.calls[0][0] == f"SELECT EXISTS(SELECT 1 FROM {table} WHERE id=$1)"
    assert len(ids.to_base62(value)) == ids.DEFAULT_ID_LENGTH