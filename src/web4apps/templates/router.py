"""Template router: publish, list, view and soft-delete templates."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.auth.dependencies import get_optional_wallet_address
from web4apps.context import AppContext, get_context
from web4apps.database import get_session
from web4apps.moderation.service import announce_template
from web4apps.templates.schemas import (
    CreateTemplateRequest,
    DeleteTemplateRequest,
    TemplatePage,
    TemplateResponse,
)
from web4apps.templates.service import (
    create_template,
    delete_template,
    public_templates_page,
    template_by_id,
    templates_by_owner,
)

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.post("", response_model=TemplateResponse, status_code=201)
async def create(
    body: CreateTemplateRequest,
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> TemplateResponse:
    """Publish a template. New templates await moderation before they are listed."""
    template = await create_template(
        db,
        ctx.settings,
        address=body.address,
        signature=body.signature,
        title=body.title,
        url=body.url,
        json_data=body.json_data,
        description=body.description,
    )
    await db.commit()
    await announce_template(db, ctx.notifier, template)
    return TemplateResponse.model_validate(template)


@router.get("/my", response_model=list[TemplateResponse])
async def list_mine(
    address: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> list[TemplateResponse]:
    templates = await templates_by_owner(db, address)
    return [TemplateResponse.model_validate(t) for t in templates]


@router.get("", response_model=TemplatePage)
async def list_public(
    page: str | None = None,
    limit: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> TemplatePage:
    """Moderated, non-deleted templates, newest first."""
    rows, pagination = await public_templates_page(db, page, limit)
    return TemplatePage(data=[TemplateResponse.model_validate(t) for t in rows], pagination=pagination)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_one(
    template_id: str,
    db: AsyncSession = Depends(get_session),
) -> TemplateResponse:
    return TemplateResponse.model_validate(await template_by_id(db, template_id))


@router.delete("/{template_id}", status_code=204)
async def delete(
    template_id: str,
    body: DeleteTemplateRequest,
    header_address: str | None = Depends(get_optional_wallet_address),
    db: AsyncSession = Depends(get_session),
) -> Response:
    await delete_template(db, template_id, body.address or header_address, body.signature)
    await db.commit()
    return Response(status_code=204)
