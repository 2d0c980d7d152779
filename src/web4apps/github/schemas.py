"""Request/response schemas for GitHub linkage endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class CodeRequest(BaseModel):
    code: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    scope: str


class ConnectResponse(BaseModel):
    username: str
    email: str | None = None
    name: str | None = None


class DisconnectRequest(BaseModel):
    address: str
    signature: str
