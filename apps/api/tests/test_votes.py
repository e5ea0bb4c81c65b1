import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Delete

from conftest import twitch_clip
from models.clip_vote import ClipVote
from models.vote_ledger import VoteLedger
from services.catalog import import_batch
from services.errors import NotFoundError, ValidationError
from services.moderation import block
from services.votes import cast_vote, retract_vote, top_clips


async def _seed(db):
    await import_batch(
        db,
        "floppyjimmie",
        "twitch",
        [twitch_clip(clip_id, f"2024-01-0{i + 1}T00:00:00Z") for i, clip_id in enumerate("abc")],
    )


@pytest.mark.asyncio
async def test_one_vote_per_user_per_clip(session_maker):
    async with session_maker() as db:
        await _seed(db)
        first = await cast_vote(db, "floppyjimmie", 1, "Alice", "like")
        repeat = await cast_vote(db, "floppyjimmie", 1, "alice", "down")
        other = await cast_vote(db, "floppyjimmie", 1, "bob", "down")

    assert first["recorded"] is True
    assert (first["up_votes"], first["down_votes"]) == (1, 0)
    assert repeat["recorded"] is False
    assert repeat["direction"] == "up"
    assert (repeat["up_votes"], repeat["down_votes"]) == (1, 0)
    assert (other["up_votes"], other["down_votes"]) == (1, 1)


@pytest.mark.asyncio
async def test_retract_decrements_and_removes_ledger_row(session_maker):
    async with session_maker() as db:
        await _seed(db)
        await cast_vote(db, "floppyjimmie", 2, "alice", "up")
        retracted = await retract_vote(db, "floppyjimmie", 2, "alice")
        nothing = await retract_vote(db, "floppyjimmie", 2, "alice")
        ledger = (await db.execute(select(VoteLedger))).scalars().all()

    assert retracted["retracted"] is True
    assert retracted["direction"] == "up"
    assert retracted["up_votes"] == 0
    assert nothing["retracted"] is False
    assert ledger == []


@pytest.mark.asyncio
async def test_failed_retract_leaves_counter_and_ledger_untouched(session_maker, monkeypatch):
    async with session_maker() as db:
        await _seed(db)
        await cast_vote(db, "floppyjimmie", 3, "alice", "up")

    async with session_maker() as db:
        original_execute = db.execute

        async def failing_execute(statement, *args, **kwargs):
            if isinstance(statement, Delete):
                raise OperationalError("DELETE FROM vote_ledger", {}, Exception("disk I/O error"))
            return await original_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", failing_execute)
        with pytest.raises(OperationalError):
            await retract_vote(db, "floppyjimmie", 3, "alice")

    async with session_maker() as db:
        counter = (await db.execute(select(ClipVote))).scalar_one()
        ledger = (await db.execute(select(VoteLedger))).scalars().all()
    assert counter.up_votes == 1
    assert [entry.username for entry in ledger] == ["alice"]


@pytest.mark.asyncio
async def test_top_clips_orders_by_net_then_up_and_skips_blocked(session_maker):
    async with session_maker() as db:
        await _seed(db)
        for user in ("u1", "u2", "u3"):
            await cast_vote(db, "floppyjimmie", 1, user, "up")
        await cast_vote(db, "floppyjimmie", 1, "u4", "down")
        for user in ("u1", "u2"):
            await cast_vote(db, "floppyjimmie", 2, user, "up")
        await cast_vote(db, "floppyjimmie", 3, "u1", "up")
        await cast_vote(db, "floppyjimmie", 3, "u2", "up")
        await cast_vote(db, "floppyjimmie", 3, "u3", "up")

        ranked = await top_clips(db, "floppyjimmie", 10)
        assert [(clip["seq"], clip["net"]) for clip in ranked] == [(3, 3), (1, 2), (2, 2)]

        await block(db, "floppyjimmie", 3)
        assert [clip["seq"] for clip in await top_clips(db, "floppyjimmie", 10)] == [1, 2]
        assert [clip["seq"] for clip in await top_clips(db, "floppyjimmie", 1)] == [1]


@pytest.mark.asyncio
async def test_invalid_votes_are_rejected(session_maker):
    async with session_maker() as db:
        await _seed(db)
        with pytest.raises(ValidationError):
            await cast_vote(db, "floppyjimmie", 1, "alice", "sideways")
        with pytest.raises(ValidationError):
            await cast_vote(db, "floppyjimmie", 1, "  ", "up")
        await block(db, "floppyjimmie", 1)
        with pytest.raises(NotFoundError):
            await cast_vote(db, "floppyjimmie", 1, "alice", "up")
