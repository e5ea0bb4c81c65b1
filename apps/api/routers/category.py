"""
Router for the per-channel category filter.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.dependencies import ModeratorContext, channel_scope, get_state_backend, require_admin_key
from routers.rate_limit import rate_limit
from services.category_filter import clear_filter, get_filter, is_clear_keyword, set_filter
from services.errors import CatalogError, StoreUnavailableError
from services.state import RuntimeStateBackend

router = APIRouter()

AVAILABLE_SHOWN = 10


@router.post("/{channel}", dependencies=[Depends(rate_limit("category", limit=30, window_seconds=60))])
async def set_category(
    q: str = "",
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    db: AsyncSession = Depends(get_db),
):
    """`q` matches every game whose name contains it; off/clear/all/exit/reset/none clears."""
    if is_clear_keyword(q):
        await clear_filter(backend, channel)
        return PlainTextResponse("Category filter cleared - playing all games")
    try:
        outcome = await set_filter(db, backend, channel, q)
    except StoreUnavailableError:
        raise
    except CatalogError as exc:
        return PlainTextResponse(str(exc))

    if not outcome["matched"]:
        names = [game["name"] for game in outcome["available_games"]]
        if not names:
            return PlainTextResponse(f"Game '{outcome['query']}' not found.")
        shown = ", ".join(names[:AVAILABLE_SHOWN])
        suffix = "..." if len(names) > AVAILABLE_SHOWN else ""
        return PlainTextResponse(f"Game not found. Available: {shown}{suffix}")
    return PlainTextResponse(f"Category set to {outcome['display_name']} ({outcome['clip_count']} clips)")


@router.delete("/{channel}")
async def clear_category(
    channel: str = Depends(channel_scope),
    _: ModeratorContext = Depends(require_admin_key),
    backend: RuntimeStateBackend = Depends(get_state_backend),
):
    return await clear_filter(backend, channel)


@router.get("/{channel}")
async def read_category(
    channel: str = Depends(channel_scope),
    backend: RuntimeStateBackend = Depends(get_state_backend),
    db: AsyncSession = Depends(get_db),
):
    """Player view of the filter; clip_ids are in seq order."""
    return await get_filter(db, backend, channel)
