"""GitHub router: OAuth code exchange and account (un)linking."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.auth.dependencies import get_wallet_address
from web4apps.context import AppContext, get_context
from web4apps.database import get_session
from web4apps.github.schemas import CodeRequest, ConnectResponse, DisconnectRequest, TokenResponse
from web4apps.github.service import connect_github, disconnect_github, exchange_code

router = APIRouter(prefix="/github", tags=["GitHub"])


@router.post("/exchange", response_model=TokenResponse)
async def exchange(
    body: CodeRequest,
    ctx: AppContext = Depends(get_context),
) -> TokenResponse:
    token = await exchange_code(ctx.github, body.code)
    return TokenResponse(**token.to_dict())


@router.post("/connect", response_model=ConnectResponse)
async def connect(
    body: CodeRequest,
    address: str = Depends(get_wallet_address),
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> ConnectResponse:
    profile = await connect_github(db, ctx.github, address, body.code)
    await db.commit()
    return ConnectResponse(username=profile.login, email=profile.email, name=profile.name)


@router.post("/disconnect", status_code=204)
async def disconnect(
    body: DisconnectRequest,
    db: AsyncSession = Depends(get_session),
) -> Response:
    await disconnect_github(db, body.address, body.signature)
    await db.commit()
    return Response(status_code=204)
