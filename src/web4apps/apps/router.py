"""App router: create, list, view and soft-delete apps."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.apps.schemas import AppPage, AppResponse, CreateAppRequest, DeleteAppRequest
from web4apps.apps.service import app_by_id, apps_by_owner, create_app, delete_app, public_apps_page
from web4apps.auth.dependencies import get_optional_wallet_address, get_wallet_address
from web4apps.context import AppContext, get_context
from web4apps.database import get_session
from web4apps.moderation.service import announce_app

router = APIRouter(tags=["Apps"])


@router.post("/apps", response_model=AppResponse, status_code=201)
async def create(
    body: CreateAppRequest,
    address: str | None = Depends(get_optional_wallet_address),
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> AppResponse:
    """Create an app from a template. The caller is identified by ``X-Wallet-Address``."""
    app = await create_app(
        db,
        ctx.settings,
        address=address,
        signature=body.signature,
        name=body.name,
        template_id=body.template_id,
        json_data=body.json_data,
        description=body.description,
    )
    await db.commit()
    await announce_app(db, ctx.notifier, app)
    return AppResponse.model_validate(app)


@router.get("/apps", response_model=AppPage)
async def list_public(
    page: str | None = None,
    limit: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> AppPage:
    rows, pagination = await public_apps_page(db, page, limit)
    return AppPage(data=[AppResponse.model_validate(a) for a in rows], pagination=pagination)


@router.get("/apps/{app_id}", response_model=AppResponse)
async def get_one(
    app_id: str,
    db: AsyncSession = Depends(get_session),
) -> AppResponse:
    return AppResponse.model_validate(await app_by_id(db, app_id))


@router.get("/my-apps", response_model=list[AppResponse])
async def list_mine(
    address: str = Depends(get_wallet_address),
    db: AsyncSession = Depends(get_session),
) -> list[AppResponse]:
    """The caller's apps, moderated or not, newest first."""
    return [AppResponse.model_validate(a) for a in await apps_by_owner(db, address)]


@router.delete("/apps/{app_id}", status_code=204)
async def delete(
    app_id: str,
    body: DeleteAppRequest,
    address: str = Depends(get_wallet_address),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_app(db, app_id, address, body.signature)
    await db.commit()
    return Response(status_code=204)
