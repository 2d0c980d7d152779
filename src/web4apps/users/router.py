"""User router: registration, registration check and creator rankings."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.context import AppContext, get_context
from web4apps.database import get_session
from web4apps.leaderboard.service import leaderboard_with_user, winners
from web4apps.users.schemas import (
    CheckResponse,
    RegisterRequest,
    RegisterResponse,
    UsersWithAppCountsResponse,
    WinnersResponse,
)
from web4apps.users.service import check_registration, register_user

router = APIRouter(tags=["Users"])


@router.post("/register", response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> RegisterResponse:
    """Register (or re-register) a wallet address."""
    address = await register_user(db, body.address, body.signature, message=body.message)
    await db.commit()
    return RegisterResponse(address=address)


@router.get("/check/{address}", response_model=CheckResponse)
async def check(
    address: str,
    db: AsyncSession = Depends(get_session),
) -> CheckResponse:
    """Whether an address has registered."""
    registered = await check_registration(db, address)
    return CheckResponse(isRegistered=registered, address=address.lower())


@router.get("/users/with-app-counts", response_model=UsersWithAppCountsResponse)
async def users_with_app_counts(
    address: str | None = None,
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> UsersWithAppCountsResponse:
    """Creator leaderboard; ``address`` marks the caller's entry and adds their rank."""
    data = await leaderboard_with_user(db, ctx.settings, address)
    return UsersWithAppCountsResponse.model_validate(data)


@router.get("/users/winners", response_model=WinnersResponse)
async def list_winners(
    db: AsyncSession = Depends(get_session),
) -> WinnersResponse:
    return WinnersResponse.model_validate({"winners": await winners(db)})
