from datetime import datetime, timezone

import pytest

from labrinth.database.core import Executor
from labrinth.database.projects import DonationUrl, GalleryItem, Project, ProjectBuilder
from labrinth.database.versions import VersionBuilder


class FakeExecutor(Executor):
    def __init__(self, responder=None):
        self.calls = []
        self.responder = responder or (lambda query, args: [])

    async def execute(self, query, *args):
        self.calls.append(("execute", query, args))

    async def fetch(self, query, *args):
        self.calls.append(("fetch", query, args))
        return self.responder(query, args)


def make_project(**overrides):
    values = dict(
        id=1,
        project_type=2,
        team_id=3,
        title="Title",
        description="Desc",
        body="Body",
        status="approved",
        client_side=1,
        server_side=2,
        license="MIT",
        monetization_status="monetized",
    )
    values.update(overrides)
    return Project(**values)


def project_row(project, color):
    return {
        "id": project.id,
        "project_type": project.project_type,
        "team_id": project.team_id,
        "title": project.title,
        "description": project.description,
        "body": project.body,
        "status": project.status,
        "client_side": project.client_side,
        "server_side": project.server_side,
        "license": project.license,
        "monetization_status": project.monetization_status,
        "published": project.published,
        "updated": project.updated,
        "approved": None,
        "queued": None,
        "requested_status": None,
        "downloads": 0,
        "follows": 0,
        "icon_url": None,
        "issues_url": None,
        "source_url": None,
        "wiki_url": None,
        "license_url": None,
        "discord_url": None,
        "slug": "slug",
        "moderation_message": None,
        "moderation_message_body": None,
        "webhook_sent": False,
        "color": color,
        "loaders": None,
        "game_versions": ["1.20"],
        "thread_id": 9,
    }


@pytest.mark.asyncio
async def test_donation_url_insert():
    executor = FakeExecutor()
    await DonationUrl(1, "patreon", "Patreon", "https://example.com/d").insert(7, executor)
    _, query, args = executor.calls[0]
    assert "INSERT INTO mods_donations" in query
    assert args == (7, 1, "https://example.com/d")


def test_donation_url_from_json():
    data = {"platform_id": 2, "platform_short": "ko-fi", "platform_name": "Ko-fi", "url": "u"}
    assert DonationUrl.from_json(data) == DonationUrl(2, "ko-fi", "Ko-fi", "u")
    with pytest.raises(KeyError):
        DonationUrl.from_json({"platform_id": 2})


@pytest.mark.asyncio
async def test_gallery_item_insert():
    executor = FakeExecutor()
    item = GalleryItem(image_url="img", featured=True, ordering=4, title="t")
    await item.insert(7, executor)
    _, query, args = executor.calls[0]
    assert "INSERT INTO mods_gallery" in query
    assert args == (7, "img", True, "t", None, 4)


def test_gallery_item_from_json():
    item = GalleryItem.from_json(
        {
            "image_url": "img",
            "featured": False,
            "title": None,
            "description": "d",
            "created": "2023-01-02T03:04:05Z",
            "ordering": 1,
        }
    )
    assert item.created == datetime(2023, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert item.description == "d"


@pytest.mark.asyncio
async def test_project_insert_arguments():
    executor = FakeExecutor()
    project = make_project(slug="MySlug", requested_status=None, thread_id=9)
    await project.insert(executor)
    _, query, args = executor.calls[0]
    assert "LOWER($19)" in query
    assert len(args) == 23
    assert args[0] == 1
    assert args[11] == "approved"
    assert args[12] is None
    assert args[18] == "MySlug"
    assert args[21] == 9
    assert args[22] == "monetized"


@pytest.mark.asyncio
@pytest.mark.parametrize("color", [0, 0x123456, 0xFFFFFFFF, 0x80000000])
async def test_color_round_trip(color):
    executor = FakeExecutor()
    project = make_project(color=color)
    await project.insert(executor)
    stored = executor.calls[0][2][20]
    assert -(2**31) <= stored < 2**31

    reader = FakeExecutor(lambda q, a: [project_row(project, stored)])
    loaded = await Project.get(project.id, reader)
    assert loaded.color == color
    assert loaded.game_versions == ["1.20"]
    assert loaded.loaders == []


@pytest.mark.asyncio
async def test_project_get_missing():
    executor = FakeExecutor()
    assert await Project.get(5, executor) is None
    assert executor.calls[0][2] == ([5],)


@pytest.mark.asyncio
async def test_project_builder_insert_sequence():
    executor = FakeExecutor()
    version = VersionBuilder(
        version_id=10,
        project_id=0,
        author_id=3,
        name="v",
        version_number="1.0",
        changelog="",
        version_type="release",
        status="listed",
    )
    builder = ProjectBuilder(
        project_id=42,
        project_type_id=1,
        team_id=2,
        title="T",
        description="D",
        body="B",
        status="processing",
        client_side=1,
        server_side=1,
        license="MIT",
        thread_id=5,
        monetization_status="monetized",
        categories=[3],
        additional_categories=[4],
        initial_versions=[version],
        donation_urls=[DonationUrl(1, "s", "n", "u")],
    )
    result = await builder.insert(["draft"], executor)
    assert result == 42

    queries = [call[1] for call in executor.calls]
    assert "INSERT INTO mods (" in queries[0]

    version_call = next(c for c in executor.calls if "INSERT INTO versions" in c[1])
    assert version_call[2][0] == 10
    assert version_call[2][1] == 42
    assert version.project_id == 0

    donation_call = next(c for c in executor.calls if "mods_donations" in c[1])
    assert donation_call[2][0] == 42

    category_calls = [c for c in executor.calls if "mods_categories" in c[1]]
    assert [c[2] for c in category_calls] == [(42, 3), (42, 4)]
    assert "FALSE" in category_calls[0][1]
    assert "TRUE" in category_calls[1][1]

    assert "SET game_versions" in executor.calls[-2][1]
    assert "SET loaders" in executor.calls[-1][1]
    assert executor.calls[-1][2] == (42, ["draft"])