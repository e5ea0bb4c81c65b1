import pytest

from conftest import twitch_clip
from services.catalog import get_clip_by_seq, import_batch, list_clips
from services.errors import NotFoundError
from services.moderation import block, blocked_count, list_blocked, unblock


async def _seed(db):
    await import_batch(
        db,
        "floppyjimmie",
        "twitch",
        [
            twitch_clip("a", "2024-01-01T00:00:00Z", title="First clip"),
            twitch_clip("b", "2024-01-02T00:00:00Z", title="Second clip"),
            twitch_clip("c", "2024-01-03T00:00:00Z", title="Third clip"),
        ],
    )


@pytest.mark.asyncio
async def test_block_unblock_round_trip(session_maker):
    async with session_maker() as db:
        await _seed(db)
        before_count = await blocked_count(db, "floppyjimmie")

        removed = await block(db, "floppyjimmie", 2, removed_by="mod_one")
        assert removed == {
            "clip_id": "b",
            "seq": 2,
            "title": "Second clip",
            "already_blocked": False,
            "blocked_count": 1,
        }
        assert [clip["seq"] for clip in await list_clips(db, "floppyjimmie")] == [1, 3]
        with pytest.raises(NotFoundError, match="has been removed"):
            await get_clip_by_seq(db, "floppyjimmie", 2)

        restored = await unblock(db, "floppyjimmie", removed["seq"])
        assert restored["was_blocked"] is True
        assert restored["remaining_count"] == before_count
        visible = await list_clips(db, "floppyjimmie")
        assert [clip["seq"] for clip in visible] == [1, 2, 3]
        assert visible[1]["title"] == "Second clip"
        assert await list_blocked(db, "floppyjimmie") == []


@pytest.mark.asyncio
async def test_reblock_and_unblock_of_visible_clip_are_not_errors(session_maker):
    async with session_maker() as db:
        await _seed(db)
        await block(db, "floppyjimmie", 1)
        again = await block(db, "floppyjimmie", 1)
        assert again["already_blocked"] is True
        assert again["blocked_count"] == 1

        visible = await unblock(db, "floppyjimmie", 3)
        assert visible["was_blocked"] is False
        assert visible["remaining_count"] == 1

        entries = await list_blocked(db, "floppyjimmie")
        assert [(entry["seq"], entry["title"]) for entry in entries] == [(1, "First clip")]


@pytest.mark.asyncio
async def test_missing_seq_reports_valid_range(session_maker):
    async with session_maker() as db:
        await _seed(db)
        with pytest.raises(NotFoundError) as excinfo:
            await unblock(db, "floppyjimmie", 40)
    assert str(excinfo.value) == "Clip #40 not found. Valid range: 1-3"
    assert excinfo.value.max_seq == 3


@pytest.mark.asyncio
async def test_channel_without_clips_is_not_found(session_maker):
    async with session_maker() as db:
        with pytest.raises(NotFoundError, match="No clips found"):
            await block(db, "emptychannel", 1)
