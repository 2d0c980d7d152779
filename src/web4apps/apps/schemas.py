"""Request/response schemas for app endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from web4apps.pagination import Pagination


class CreateAppRequest(BaseModel):
    name: str
    description: str | None = None
    template_id: int
    json_data: str
    signature: str


class DeleteAppRequest(BaseModel):
    signature: str


class AppResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    owner_address: str
    template_id: int
    json_data: str
    moderated: bool
    created_at: datetime
    updated_at: datetime


class AppPage(BaseModel):
    data: list[AppResponse]
    pagination: Pagination
