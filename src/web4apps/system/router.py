"""System status endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from web4apps.context import AppContext, get_context

router = APIRouter(prefix="/system", tags=["System"])


class SubmissionsStatus(BaseModel):
    areSubmissionsEnabled: bool  # noqa: N815
    message: str


@router.get("/submissions-status", response_model=SubmissionsStatus)
async def submissions_status(ctx: AppContext = Depends(get_context)) -> SubmissionsStatus:
    enabled = ctx.settings.submissions_enabled
    return SubmissionsStatus(
        areSubmissionsEnabled=enabled,
        message="Submissions are currently enabled" if enabled else "Submissions are currently disabled",
    )
