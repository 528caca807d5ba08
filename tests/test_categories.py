from datetime import datetime, timedelta, timezone

import pytest

from labrinth.database.categories import (
    Category,
    DonationPlatform,
    GameVersion,
    GameVersionBuilder,
    Loader,
    ProjectType,
    ReportType,
    SideType,
)
from labrinth.database.core import Executor


class FakeExecutor(Executor):
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.calls = []

    async def execute(self, query, *args):
        self.calls.append((query, args))

    async def fetch(self, query, *args):
        self.calls.append((query, args))
        return self.rows


@pytest.mark.asyncio
async def test_category_get_id_found_and_missing():
    executor = FakeExecutor([{"id": 4}])
    assert await Category.get_id("magic", executor) == 4
    assert executor.calls[0][1] == ("magic",)
    assert await Category.get_id("magic", FakeExecutor()) is None


@pytest.mark.asyncio
async def test_category_get_id_project_passes_type():
    executor = FakeExecutor([{"id": 9}])
    assert await Category.get_id_project("magic", 2, executor) == 9
    assert executor.calls[0][1] == ("magic", 2)
    assert "project_type = $2" in executor.calls[0][0]


@pytest.mark.asyncio
async def test_category_list_maps_rows():
    executor = FakeExecutor(
        [
            {
                "id": 1,
                "category": "magic",
                "icon": "<svg/>",
                "category_header": "categories",
                "project_type": "mod",
            }
        ]
    )
    result = await Category.list(executor)
    assert result == [Category(1, "magic", "mod", "<svg/>", "categories")]


@pytest.mark.asyncio
async def test_loader_list_handles_missing_project_types():
    executor = FakeExecutor(
        [
            {"id": 1, "loader": "fabric", "icon": "f", "project_types": ["mod", "modpack"]},
            {"id": 2, "loader": "bare", "icon": "b", "project_types": None},
        ]
    )
    loaders = await Loader.list(executor)
    assert loaders[0].supported_project_types == ("mod", "modpack")
    assert loaders[1].supported_project_types == ()
    assert [loader.loader for loader in loaders] == ["fabric", "bare"]


@pytest.mark.asyncio
async def test_loader_get_id():
    executor = FakeExecutor([{"id": 3}])
    assert await Loader.get_id("fabric", executor) == 3
    assert executor.calls[0][1] == ("fabric",)


def _version_row(id_, version):
    return {
        "id": id_,
        "version_": version,
        "type_": "release",
        "created": datetime(2020, 1, 1, tzinfo=timezone.utc),
        "major": True,
    }


@pytest.mark.asyncio
async def test_game_version_list_maps_rows():
    executor = FakeExecutor([_version_row(1, "1.16"), _version_row(2, "1.15")])
    versions = await GameVersion.list(executor)
    assert [v.version for v in versions] == ["1.16", "1.15"]
    assert versions[0].version_type == "release"
    assert "ORDER BY created DESC" in executor.calls[0][0]


@pytest.mark.asyncio
async def test_list_filter_with_type_and_major():
    executor = FakeExecutor([_version_row(1, "1.16")])
    versions = await GameVersion.list_filter("release", True, executor)
    assert len(versions) == 1
    assert executor.calls[0][1] == (True, "release")


@pytest.mark.asyncio
async def test_list_filter_with_type_only():
    executor = FakeExecutor([])
    assert await GameVersion.list_filter("snapshot", None, executor) == []
    assert executor.calls[0][1] == ("snapshot",)
    assert "WHERE type = $1" in executor.calls[0][0]


@pytest.mark.asyncio
async def test_list_filter_with_major_only():
    executor = FakeExecutor([_version_row(5, "1.12")])
    versions = await GameVersion.list_filter(None, False, executor)
    assert versions[0].id == 5
    assert executor.calls[0][1] == (False,)


@pytest.mark.asyncio
async def test_list_filter_without_filters_skips_query():
    executor = FakeExecutor([_version_row(1, "1.16")])
    assert await GameVersion.list_filter(None, None, executor) == []
    assert executor.calls == []


@pytest.mark.asyncio
async def test_game_version_builder_insert_converts_date_to_naive_utc():
    executor = FakeExecutor([{"id": 11}])
    created = datetime(2021, 6, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    builder = GameVersionBuilder(version="1.17", version_type="release", date=created)
    assert await builder.insert(executor) == 11
    args = executor.calls[0][1]
    assert args[:2] == ("1.17", "release")
    assert args[2].tzinfo is None
    assert args[2].replace(tzinfo=timezone.utc) == created


@pytest.mark.asyncio
async def test_game_version_builder_insert_passes_none_fields():
    executor = FakeExecutor([{"id": 12}])
    assert await GameVersionBuilder(version="1.18").insert(executor) == 12
    assert executor.calls[0][1] == ("1.18", None, None)


@pytest.mark.asyncio
async def test_donation_platform_list_and_get_id():
    executor = FakeExecutor([{"id": 1, "short": "patreon", "name": "Patreon"}])
    assert await DonationPlatform.list(executor) == [DonationPlatform(1, "patreon", "Patreon")]
    lookup = FakeExecutor([{"id": 1}])
    assert await DonationPlatform.get_id("patreon", lookup) == 1
    assert lookup.calls[0][1] == ("patreon",)


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", [ReportType, ProjectType, SideType])
async def test_name_tables_list_names(kind):
    executor = FakeExecutor([{"name": "first"}, {"name": "second"}])
    assert await kind.list(executor) == ["first", "second"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind, table",
    [(ReportType, "report_types"), (ProjectType, "project_types"), (SideType, "side_types")],
)
async def test_name_tables_get_id(kind, table):
    executor = FakeExecutor([{"id": 7}])
    assert await kind.get_id("first", executor) == 7
    assert f"FROM {table}" in executor.calls[0][0]
    assert await kind.get_id("missing", FakeExecutor()) is None