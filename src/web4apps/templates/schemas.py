"""Request/response schemas for template endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from web4apps.pagination import Pagination


class CreateTemplateRequest(BaseModel):
    title: str
    description: str | None = None
    url: str
    json_data: str
    address: str
    signature: str


class DeleteTemplateRequest(BaseModel):
    """``address`` may instead come from the ``X-Wallet-Address`` header."""

    signature: str
    address: str | None = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None = None
    url: str
    json_data: str
    owner_address: str
    moderated: bool
    created_at: datetime
    updated_at: datetime


class TemplatePage(BaseModel):
    data: list[TemplateResponse]
    pagination: Pagination
