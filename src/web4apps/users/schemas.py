"""Request/response schemas for user endpoints."""

from __future__ import annotations

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    """Signed registration. ``message``, when sent, must equal the registration literal."""

    address: str
    signature: str
    message: str | None = None


class RegisterResponse(BaseModel):
    address: str


class CheckResponse(BaseModel):
    isRegistered: bool  # noqa: N815
    address: str


class LeaderboardUser(BaseModel):
    trimmed_address: str
    app_count: int
    is_user: bool


class LeaderboardUserRecord(LeaderboardUser):
    rank: int


class UsersWithAppCountsResponse(BaseModel):
    users: list[LeaderboardUser]
    user_record: LeaderboardUserRecord | None = None


class Winner(BaseModel):
    address: str
    app_count: int
    tier_1_winner: bool
    tier_2_winner: bool


class WinnersResponse(BaseModel):
    winners: list[Winner]
