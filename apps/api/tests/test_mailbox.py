import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from conftest import at, twitch_clip
from models.clip import Clip
from models.command_request import CommandRequest
from services.catalog import import_batch
from services.commands import clamp_top_count, poll_command, request_force_play, request_simple, request_top_clips
from services.errors import NotFoundError, ValidationError
from services.mailbox import CommandKind, issue, parse_kind, poll_and_consume
from services.moderation import block
from services.state import FileStateBackend, SqlStateBackend
from services.votes import cast_vote


async def _poll_with_own_session(session_maker, channel, kind, now):
    async with session_maker() as db:
        return await poll_and_consume(SqlStateBackend(db), channel, kind, now=now)


@pytest.mark.asyncio
async def test_concurrent_pollers_see_a_command_at_most_once(session_maker):
    async with session_maker() as db:
        issued = await issue(SqlStateBackend(db), "floppyjimmie", CommandKind.SKIP, window_seconds=5, now=at(0))

    results = await asyncio.gather(
        *(_poll_with_own_session(session_maker, "floppyjimmie", CommandKind.SKIP, at(0.1)) for _ in range(3))
    )
    delivered = [result for result in results if result is not None]
    assert len(delivered) == 1
    assert delivered[0].nonce == issued.nonce
    assert delivered[0].to_poll_response()["skip"] is True


def test_file_backend_concurrent_takers_have_one_winner(tmp_path):
    backend = FileStateBackend(str(tmp_path / "runtime"))
    asyncio.run(issue(backend, "floppyjimmie", CommandKind.SHUFFLE, window_seconds=30, now=at(0)))

    def _take():
        return asyncio.run(poll_and_consume(backend, "floppyjimmie", CommandKind.SHUFFLE, now=at(1)))

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: _take(), range(8)))
    assert sum(1 for result in results if result is not None) == 1
    assert list((tmp_path / "runtime" / "commands").iterdir()) == []


@pytest.mark.asyncio
async def test_expired_command_is_never_delivered_and_is_removed(session_maker):
    async with session_maker() as db:
        backend = SqlStateBackend(db)
        await issue(backend, "floppyjimmie", CommandKind.SKIP, window_seconds=5, now=at(0))
        assert await poll_and_consume(backend, "floppyjimmie", CommandKind.SKIP, now=at(6)) is None
        assert await poll_and_consume(backend, "floppyjimmie", CommandKind.SKIP, now=at(6.5)) is None

    async with session_maker() as db:
        remaining = await db.execute(select(func.count()).select_from(CommandRequest))
    assert remaining.scalar() == 0


@pytest.mark.asyncio
async def test_command_at_window_edge_is_still_delivered(tmp_path):
    backend = FileStateBackend(str(tmp_path / "runtime"))
    await issue(backend, "floppyjimmie", CommandKind.PREV, window_seconds=5, now=at(0))
    delivered = await poll_and_consume(backend, "floppyjimmie", CommandKind.PREV, now=at(5))
    assert delivered is not None
    assert delivered.issued_at == at(0)


@pytest.mark.asyncio
async def test_reissue_overwrites_pending_command(session_maker):
    async with session_maker() as db:
        backend = SqlStateBackend(db)
        first = await issue(backend, "floppyjimmie", CommandKind.SKIP, window_seconds=5, now=at(0))
        second = await issue(backend, "floppyjimmie", CommandKind.SKIP, window_seconds=5, now=at(1))
        assert first.nonce != second.nonce

        delivered = await poll_and_consume(backend, "floppyjimmie", CommandKind.SKIP, now=at(2))
        assert delivered.nonce == second.nonce
        assert await poll_and_consume(backend, "floppyjimmie", CommandKind.SKIP, now=at(2)) is None


@pytest.mark.asyncio
async def test_kinds_and_channels_do_not_share_slots(session_maker):
    async with session_maker() as db:
        backend = SqlStateBackend(db)
        await request_simple(backend, "floppyjimmie", CommandKind.SKIP, now=at(0))
        assert await poll_and_consume(backend, "floppyjimmie", CommandKind.PREV, now=at(1)) is None
        assert await poll_and_consume(backend, "otherstreamer", CommandKind.SKIP, now=at(1)) is None
        assert await poll_and_consume(backend, "floppyjimmie", CommandKind.SKIP, now=at(1)) is not None


@pytest.mark.asyncio
async def test_force_play_payload_is_snapshotted_at_issue(session_maker):
    async with session_maker() as db:
        await import_batch(db, "floppyjimmie", "twitch", [twitch_clip("a", "2024-01-01T00:00:00Z", title="Original")])
        outcome = await request_force_play(db, SqlStateBackend(db), "floppyjimmie", 1, requested_by="mod", now=at(0))
    assert outcome["reply"] == "Playing Clip #1: Original"

    async with session_maker() as db:
        clip = (await db.execute(select(Clip))).scalar_one()
        clip.title = "Renamed later"
        await db.commit()

    async with session_maker() as db:
        response = await poll_command(db, SqlStateBackend(db), "floppyjimmie", CommandKind.FORCE_PLAY, now=at(3))
    assert response["force_play"] is True
    assert response["payload"]["title"] == "Original"
    assert response["payload"]["seq"] == 1
    assert response["payload"]["duration"] == 30
    assert response["payload"]["requested_by"] == "mod"


@pytest.mark.asyncio
async def test_force_play_rejects_removed_and_out_of_range_clips(session_maker):
    async with session_maker() as db:
        await import_batch(db, "floppyjimmie", "twitch", [twitch_clip("a", "2024-01-01T00:00:00Z")])
        await block(db, "floppyjimmie", 1)
        backend = SqlStateBackend(db)
        with pytest.raises(NotFoundError, match="Clip #1 has been removed."):
            await request_force_play(db, backend, "floppyjimmie", 1)
        with pytest.raises(NotFoundError, match=r"Valid range: 1-1"):
            await request_force_play(db, backend, "floppyjimmie", 9)
        with pytest.raises(ValidationError):
            await request_force_play(db, backend, "floppyjimmie", 0)


@pytest.mark.asyncio
async def test_poll_without_command_returns_inactive_shape(session_maker):
    async with session_maker() as db:
        response = await poll_command(db, SqlStateBackend(db), "floppyjimmie", CommandKind.SHUFFLE, now=at(0))
    assert response == {"shuffle": False, "active": False, "nonce": None, "issued_at": None, "payload": {}}


@pytest.mark.asyncio
async def test_top_clips_needs_votes_and_reports_list_at_poll_time(session_maker):
    async with session_maker() as db:
        await import_batch(
            db,
            "floppyjimmie",
            "twitch",
            [twitch_clip(clip_id, f"2024-01-0{i + 1}T00:00:00Z") for i, clip_id in enumerate("abcd")],
        )
        backend = SqlStateBackend(db)
        refused = await request_top_clips(db, backend, "floppyjimmie", 5, now=at(0))
        assert refused == {"issued": False, "kind": "top_clips", "nonce": None, "reply": "No voted clips found."}

        await cast_vote(db, "floppyjimmie", 2, "alice", "up")
        await cast_vote(db, "floppyjimmie", 2, "bob", "up")
        await cast_vote(db, "floppyjimmie", 3, "alice", "up")
        await cast_vote(db, "floppyjimmie", 4, "alice", "down")
        issued = await request_top_clips(db, backend, "floppyjimmie", 99, now=at(0))
        assert issued["reply"] == "Showing top 10 clips..."

        response = await poll_command(db, backend, "floppyjimmie", CommandKind.TOP_CLIPS, now=at(10))
    assert response["active"] is True
    assert response["payload"]["count"] == 10
    assert [clip["seq"] for clip in response["payload"]["clips"]] == [2, 3]


def test_top_count_is_clamped():
    assert clamp_top_count(1) == 3
    assert clamp_top_count(50) == 10
    assert clamp_top_count("7") == 7
    assert clamp_top_count("many") == 10


def test_parse_kind_accepts_dashes_and_rejects_unknown():
    assert parse_kind("force-play") is CommandKind.FORCE_PLAY
    with pytest.raises(ValidationError):
        parse_kind("rewind")


@pytest.mark.asyncio
async def test_top_clips_poll_uses_injected_clamp(session_maker, test_settings):
    narrow = test_settings.model_copy(update={"TOP_CLIPS_MIN": 1, "TOP_CLIPS_MAX": 2})
    async with session_maker() as db:
        await import_batch(
            db,
            "floppyjimmie",
            "twitch",
            [twitch_clip(clip_id, f"2024-01-0{i + 1}T00:00:00Z") for i, clip_id in enumerate("abc")],
        )
        for seq in (1, 2, 3):
            await cast_vote(db, "floppyjimmie", seq, "alice", "up")
        backend = SqlStateBackend(db)
        # Stored count above the narrow maximum must still be clamped when the poll runs.
        await issue(backend, "floppyjimmie", CommandKind.TOP_CLIPS, {"count": 10}, window_seconds=30, now=at(0))

        response = await poll_command(
            db, backend, "floppyjimmie", CommandKind.TOP_CLIPS, app_settings=narrow, now=at(1)
        )
    assert response["payload"]["count"] == 2
    assert len(response["payload"]["clips"]) == 2


@pytest.mark.asyncio
async def test_file_backend_disk_access_runs_off_the_event_loop_thread(tmp_path, monkeypatch):
    backend = FileStateBackend(str(tmp_path / "runtime"))
    loop_thread = threading.get_ident()
    seen = []
    real_write = FileStateBackend._write

    def recording_write(self, path, record):
        seen.append(threading.get_ident())
        return real_write(self, path, record)

    monkeypatch.setattr(FileStateBackend, "_write", recording_write)
    await issue(backend, "floppyjimmie", CommandKind.SKIP, window_seconds=5, now=at(0))
    delivered = await poll_and_consume(backend, "floppyjimmie", CommandKind.SKIP, now=at(1))

    assert delivered is not None
    assert seen and all(ident != loop_thread for ident in seen)
