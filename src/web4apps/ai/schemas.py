"""Request/response schemas for AI endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ChallengeData(BaseModel):
    challenge: str
    remaining_attempts: int
    max_attempts: int
    reset_date: datetime


class ChallengeResponse(BaseModel):
    success: bool = True
    data: ChallengeData


class VerifyChallengeRequest(BaseModel):
    address: str
    challenge: str
    signature: str


class QuotaData(BaseModel):
    remaining_attempts: int
    max_attempts: int


class VerifyChallengeResponse(BaseModel):
    success: bool = True
    data: QuotaData


class ProcessPromptRequest(BaseModel):
    """``address`` is optional when the challenge was bound through verify-challenge."""

    templateId: int  # noqa: N815
    prompt: str
    challenge: str
    signature: str
    address: str | None = None


class PromptData(BaseModel):
    result: Any
    requiredValidation: bool  # noqa: N815
    validationErrors: list[str] | None = None  # noqa: N815
    raw: str
    tokens: int
    remaining_attempts: int
    max_attempts: int


class ProcessPromptResponse(BaseModel):
    success: bool = True
    data: PromptData
