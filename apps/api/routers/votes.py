"""
Router for viewer votes relayed by the chat bot.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from database import get_db
from routers.dependencies import ModeratorContext, channel_scope, get_state_backend, require_admin_key
from routers.rate_limit import rate_limit
from services.commands import clamp_top_count
from services.errors import CatalogError, StoreUnavailableError
from services.now_playing import get_now_playing
from services.state import RuntimeStateBackend
from services.votes import cast_vote, retract_vote, top_clips

router = APIRouter()

vote_rate_limit = rate_limit("votes", limit=120, window_seconds=60)


class VoteRequest(BaseModel):
    username: str
    direction: str = "up"
    seq: Optional[int] = Field(default=None, ge=1)


class RetractRequest(BaseModel):
    username: str
    seq: Optional[int] = Field(default=None, ge=1)


async def _target_seq(seq: Optional[int], backend: RuntimeStateBackend, channel: str) -> Optional[int]:
    if seq is not None:
        return seq
    current = await get_now_playing(backend, channel)
    return current["seq"] if current["has_state"] else None


@router.post("/{channel}", dependencies=[Depends(vote_rate_limit)])
async def vote(
    request: VoteRequest,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    db: AsyncSession = Depends(get_db),
):
    """Vote for a clip number, or for whatever is playing when no number is given."""
    seq = await _target_seq(request.seq, backend, channel)
    if seq is None:
        return PlainTextResponse("No clip currently playing. Include a clip number.")
    try:
        outcome = await cast_vote(db, channel, seq, request.username, request.direction)
    except StoreUnavailableError:
        raise
    except CatalogError as exc:
        return PlainTextResponse(str(exc))
    tally = f"👍{outcome['up_votes']} 👎{outcome['down_votes']}"
    if not outcome["recorded"]:
        return PlainTextResponse(f"Already voted for Clip #{outcome['seq']}. {tally}")
    return PlainTextResponse(f"Voted {outcome['direction']} for Clip #{outcome['seq']}. {tally}")


@router.delete("/{channel}", dependencies=[Depends(vote_rate_limit)])
async def retract(
    request: RetractRequest,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    db: AsyncSession = Depends(get_db),
):
    seq = await _target_seq(request.seq, backend, channel)
    if seq is None:
        return PlainTextResponse("")
    try:
        outcome = await retract_vote(db, channel, seq, request.username)
    except StoreUnavailableError:
        raise
    except CatalogError as exc:
        return PlainTextResponse(str(exc))
    if not outcome["retracted"]:
        return PlainTextResponse("")
    vote_type = "like" if outcome["direction"] == "up" else "dislike"
    return PlainTextResponse(
        f"Cleared {vote_type} on Clip #{outcome['seq']}. 👍{outcome['up_votes']} 👎{outcome['down_votes']}"
    )


@router.get("/{channel}/top")
async def top(
    count: int = 10,
    channel: str = Depends(channel_scope),
    app_settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    limit = clamp_top_count(count, app_settings)
    clips = await top_clips(db, channel, limit)
    return {"channel": channel, "count": len(clips), "clips": clips}
