"""
Router for the moderation blocklist (remove / restore by clip number).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.dependencies import ModeratorContext, channel_scope, require_admin_key
from routers.rate_limit import rate_limit
from services.errors import CatalogError, StoreUnavailableError
from services.moderation import block, list_blocked, unblock

router = APIRouter()

moderation_rate_limit = rate_limit("moderation", limit=30, window_seconds=60)


@router.post("/{channel}/remove/{seq}", dependencies=[Depends(moderation_rate_limit)])
async def remove_clip(
    seq: int,
    channel: str = Depends(channel_scope),
    moderator: ModeratorContext = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
):
    try:
        outcome = await block(db, channel, seq, removed_by=moderator.moderator)
    except StoreUnavailableError:
        raise
    except CatalogError as exc:
        return PlainTextResponse(str(exc))
    if outcome["already_blocked"]:
        return PlainTextResponse(f"Clip #{outcome['seq']} already removed: {outcome['title']}")
    return PlainTextResponse(
        f"Removed Clip #{outcome['seq']}: {outcome['title']} ({outcome['blocked_count']} total blocked)"
    )


@router.post("/{channel}/restore/{seq}", dependencies=[Depends(moderation_rate_limit)])
async def restore_clip(
    seq: int,
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
):
    try:
        outcome = await unblock(db, channel, seq)
    except StoreUnavailableError:
        raise
    except CatalogError as exc:
        return PlainTextResponse(str(exc))
    if not outcome["was_blocked"]:
        return PlainTextResponse(f"Clip #{outcome['seq']} is not blocked: {outcome['title']}")
    return PlainTextResponse(
        f"Restored Clip #{outcome['seq']}: {outcome['title']} ({outcome['remaining_count']} still blocked)"
    )


@router.get("/{channel}/blocked")
async def blocked_clips(
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    db: AsyncSession = Depends(get_db),
):
    entries = await list_blocked(db, channel)
    return {"channel": channel, "count": len(entries), "blocked": entries}
