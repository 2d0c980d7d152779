"""Leaderboard of app creators.

Counts only moderated, non-deleted apps. Snapshots of the per-owner counts
are cached in Redis for at most ``leaderboard_cache_ttl_seconds`` (never more
than a minute) when Redis is configured.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import structlog
from redis.exceptions import RedisError

from web4apps.auth.address_validation import addresses_equal, trim_address
from web4apps.db.repository import LeaderboardRow, Repository
from web4apps.redis_client import get_optional_redis

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from web4apps.config import Settings

logger = structlog.get_logger()

CACHE_KEY = "leaderboard:owner_counts"


async def _owner_counts(db: AsyncSession, settings: Settings) -> list[LeaderboardRow]:
    """Every non-excluded owner with at least one public app, ranked."""
    ttl = settings.leaderboard_cache_ttl_seconds
    redis = get_optional_redis() if ttl > 0 else None

    if redis is not None:
        try:
            cached = await redis.get(CACHE_KEY)
        except RedisError as e:
            logger.warning("leaderboard_cache_unavailable", error=str(e))
            redis = None
        else:
            if cached:
                return [LeaderboardRow(**row) for row in json.loads(cached)]

    rows = await Repository(db).count_apps_by_owner(settings.leaderboard_excluded_addresses)

    if redis is not None:
        try:
            await redis.set(CACHE_KEY, json.dumps([asdict(r) for r in rows]), ex=ttl)
        except RedisError as e:
            logger.warning("leaderboard_cache_unavailable", error=str(e))
    return rows


async def invalidate_cache() -> None:
    redis = get_optional_redis()
    if redis is None:
        return
    try:
        await redis.delete(CACHE_KEY)
    except RedisError as e:
        logger.warning("leaderboard_cache_unavailable", error=str(e))


async def leaderboard(
    db: AsyncSession,
    settings: Settings,
    limit: int | None = None,
    excluded: list[str] | None = None,
) -> list[LeaderboardRow]:
    """
    Top owners by app count, count desc then address asc.

    ``excluded`` overrides the configured deny-list and bypasses the cache.
    """
    limit = limit or settings.leaderboard_limit
    if excluded is not None:
        return await Repository(db).leaderboard(limit, excluded)
    return (await _owner_counts(db, settings))[:limit]


async def leaderboard_with_user(
    db: AsyncSession,
    settings: Settings,
    address: str | None = None,
) -> dict[str, Any]:
    """Public leaderboard with display addresses, plus the caller's own rank if they have one."""
    rows = await _owner_counts(db, settings)

    users = [
        {
            "trimmed_address": trim_address(row.address),
            "app_count": row.count,
            "is_user": addresses_equal(row.address, address),
        }
        for row in rows[: settings.leaderboard_limit]
    ]

    user_record = None
    if address:
        for rank, row in enumerate(rows, start=1):
            if addresses_equal(row.address, address):
                user_record = {
                    "trimmed_address": trim_address(row.address),
                    "app_count": row.count,
                    "is_user": True,
                    "rank": rank,
                }
                break

    return {"users": users, "user_record": user_record}


async def winners(db: AsyncSession) -> list[dict[str, Any]]:
    """Users flagged as tier winners with their public app counts."""
    repo = Repository(db)
    counts = {row.address: row.count for row in await repo.count_apps_by_owner()}
    return [
        {
            "address": user.address,
            "app_count": counts.get(user.address.lower(), 0),
            "tier_1_winner": user.tier_1_winner,
            "tier_2_winner": user.tier_2_winner,
        }
        for user in await repo.list_winners()
    ]
