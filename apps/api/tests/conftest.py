from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config import Settings
from database import Base
from main import app
from routers import rate_limit


ADMIN_KEY = "test-admin-key-0123"
T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


def twitch_clip(clip_id: str, created_at: str, *, title: str = None, game_id: str = None, duration=30.0, views=0):
    return {
        "id": clip_id,
        "title": title or f"clip {clip_id}",
        "created_at": created_at,
        "duration": duration,
        "view_count": views,
        "game_id": game_id or "",
        "creator_name": "someone",
        "thumbnail_url": f"https://clips-media-assets2.twitch.tv/{clip_id}-preview-480x272.jpg",
    }


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    previous = getattr(app.state, "disable_rate_limits", False)
    app.state.disable_rate_limits = True
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
    app.state.disable_rate_limits = previous


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        ADMIN_KEY=ADMIN_KEY,
        STATE_BACKEND="database",
        RUNTIME_DIR=str(tmp_path / "runtime"),
    )


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    db_path = tmp_path / "catalog.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield maker

    await engine.dispose()
