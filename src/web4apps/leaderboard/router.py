"""Leaderboard router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.context import AppContext, get_context
from web4apps.database import get_session
from web4apps.leaderboard.service import leaderboard

router = APIRouter(tags=["Leaderboard"])


class LeaderboardEntry(BaseModel):
    address: str
    count: int


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
async def get_leaderboard(
    limit: int | None = Query(None, ge=1, le=1000),
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> list[LeaderboardEntry]:
    """Owners ranked by moderated, non-deleted app count."""
    rows = await leaderboard(db, ctx.settings, limit)
    return [LeaderboardEntry(address=r.address, count=r.count) for r in rows]
