import pytest
from sqlalchemy import select

from conftest import twitch_clip
from models.clip import Clip
from models.game import Game
from services.catalog import import_batch, list_clips
from services.errors import ValidationError
from services.importers.normalize import normalize_kick_clip, normalize_twitch_clip


def test_twitch_clip_normalization_rounds_duration_and_defaults_title():
    descriptor = normalize_twitch_clip(
        {"id": "AwkwardHelplessSalamander", "duration": 27.4, "created_at": "2026-01-02T03:04:05Z", "title": " "}
    )
    assert descriptor.duration_seconds == 28
    assert descriptor.title == "Untitled Clip"
    assert descriptor.created_at.isoformat() == "2026-01-02T03:04:05+00:00"
    assert descriptor.game_id is None


def test_kick_clip_normalization_prefixes_category_ids():
    descriptor = normalize_kick_clip(
        {
            "id": "clip_01H",
            "title": "kick moment",
            "duration": 0,
            "views": "42",
            "thumbnail": {"src": "https://kick.example/thumb.webp"},
            "creator": {"username": "viewer1"},
            "category": {"id": 15, "name": "Just Chatting"},
        }
    )
    assert descriptor.platform == "kick"
    assert descriptor.game_id == "kick_15"
    assert descriptor.game_name == "Just Chatting"
    assert descriptor.duration_seconds == 30
    assert descriptor.view_count == 42
    assert descriptor.thumbnail_url == "https://kick.example/thumb.webp"
    assert descriptor.creator_name == "viewer1"


@pytest.mark.asyncio
async def test_reimport_is_a_noop(session_maker):
    raw = [
        twitch_clip("a", "2024-01-01T00:00:00Z", game_id="509658"),
        twitch_clip("b", "2024-01-02T00:00:00Z", game_id="509658"),
        twitch_clip("c", "2024-01-03T00:00:00Z"),
    ]
    async with session_maker() as db:
        first = await import_batch(db, "floppyjimmie", "twitch", raw)
    async with session_maker() as db:
        before = dict((await db.execute(select(Clip.platform_clip_id, Clip.seq))).all())
    async with session_maker() as db:
        second = await import_batch(db, "floppyjimmie", "twitch", raw)
    async with session_maker() as db:
        after = dict((await db.execute(select(Clip.platform_clip_id, Clip.seq))).all())

    assert first["inserted"] == 3
    assert second["inserted"] == 0
    assert second["skipped_existing"] == 3
    assert second["assigned"] == []
    assert second["max_seq"] == 3
    assert before == after


@pytest.mark.asyncio
async def test_overlapping_batch_only_numbers_new_clips(session_maker):
    async with session_maker() as db:
        await import_batch(db, "floppyjimmie", "twitch", [twitch_clip("a", "2024-01-01T00:00:00Z")])
    async with session_maker() as db:
        summary = await import_batch(
            db,
            "floppyjimmie",
            "twitch",
            [
                twitch_clip("a", "2024-01-01T00:00:00Z"),
                twitch_clip("b", "2024-01-05T00:00:00Z"),
                twitch_clip("b", "2024-01-05T00:00:00Z"),
                {"title": "no id"},
                "not a clip",
            ],
        )
    assert summary["inserted"] == 1
    assert summary["assigned"] == [{"clip_id": "b", "seq": 2}]
    assert summary["skipped_existing"] == 2
    assert [error["index"] for error in summary["errors"]] == [3, 4]


@pytest.mark.asyncio
async def test_same_clip_id_is_independent_per_channel(session_maker):
    async with session_maker() as db:
        await import_batch(db, "floppyjimmie", "twitch", [twitch_clip("shared", "2024-01-01T00:00:00Z")])
    async with session_maker() as db:
        other = await import_batch(db, "otherstreamer", "twitch", [twitch_clip("shared", "2024-01-01T00:00:00Z")])
    assert other["assigned"] == [{"clip_id": "shared", "seq": 1}]


@pytest.mark.asyncio
async def test_import_creates_game_rows_lazily(session_maker):
    async with session_maker() as db:
        await import_batch(
            db,
            "floppyjimmie",
            "kick",
            [{"id": "k1", "created_at": "2024-01-01T00:00:00Z", "category": {"id": 7, "name": "Slots"}}],
        )
        await import_batch(
            db,
            "floppyjimmie",
            "twitch",
            [twitch_clip("t1", "2024-01-02T00:00:00Z", game_id="33214")],
        )
    async with session_maker() as db:
        games = {game.game_id: game.name for game in (await db.execute(select(Game))).scalars().all()}
        clips = await list_clips(db, "floppyjimmie")
    assert games == {"kick_7": "Slots", "33214": None}
    assert [clip["game_name"] for clip in clips] == ["Slots", None]


@pytest.mark.asyncio
async def test_unknown_platform_is_rejected(session_maker):
    async with session_maker() as db:
        with pytest.raises(ValidationError):
            await import_batch(db, "floppyjimmie", "youtube", [])


@pytest.mark.asyncio
async def test_clip_stored_after_dedup_check_is_skipped_not_conflicting(session_maker, monkeypatch):
    async with session_maker() as db:
        await import_batch(db, "floppyjimmie", "twitch", [twitch_clip("x", "2024-01-01T00:00:00Z")])

    async def stale_check(db, channel, clip_ids):
        return set()

    # A concurrent importer stored "x" between this batch's dedup check and its allocation.
    monkeypatch.setattr("services.catalog.existing_clip_ids", stale_check)
    async with session_maker() as db:
        summary = await import_batch(
            db,
            "floppyjimmie",
            "twitch",
            [twitch_clip("x", "2024-01-01T00:00:00Z"), twitch_clip("y", "2024-01-02T00:00:00Z")],
        )
    assert summary["inserted"] == 1
    assert summary["skipped_existing"] == 1
    assert summary["assigned"] == [{"clip_id": "y", "seq": 2}]

    async with session_maker() as db:
        clips = await list_clips(db, "floppyjimmie")
    assert [(clip["clip_id"], clip["seq"]) for clip in clips] == [("x", 1), ("y", 2)]


@pytest.mark.asyncio
async def test_non_finite_numbers_fall_back_to_defaults(session_maker):
    raw = [
        {"id": "good", "duration": 20, "created_at": "2024-01-01T00:00:00Z"},
        {"id": "endless", "duration": "inf", "created_at": "2024-01-02T00:00:00Z"},
        {"id": "viral", "duration": "nan", "view_count": "1e999", "created_at": "2024-01-03T00:00:00Z"},
        {"id": "huge", "duration": 1e999, "view_count": float("-inf"), "created_at": "2024-01-04T00:00:00Z"},
    ]
    async with session_maker() as db:
        summary = await import_batch(db, "floppyjimmie", "twitch", raw)
        clips = await list_clips(db, "floppyjimmie")

    assert summary["inserted"] == 4
    assert summary["errors"] == []
    assert [(clip["clip_id"], clip["duration"], clip["view_count"]) for clip in clips] == [
        ("good", 20, 0),
        ("endless", 30, 0),
        ("viral", 30, 0),
        ("huge", 30, 0),
    ]
