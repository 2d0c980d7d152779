"""ORM models for users, templates, apps and the AI challenge/quota ledgers.

Column types stay dialect-neutral so the same models run on PostgreSQL in
production and SQLite in tests.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from web4apps.db.base import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_BigId = BigInteger().with_variant(Integer(), "sqlite")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A wallet-identified account. Keyed by the lowercased address."""

    __tablename__ = "users"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # --- Moderation tiers ---
    tier_1_winner: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())
    tier_2_winner: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false())

    # --- GitHub linkage ---
    github_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    github_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    github_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    github_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    github_connected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Templates & apps
# ---------------------------------------------------------------------------


class Template(Base):
    """A reusable JSON schema published by a user."""

    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    json_data: Mapped[str] = mapped_column(Text, nullable=False)
    owner_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    moderated: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    apps: Mapped[list[App]] = relationship("App", back_populates="template")


class App(Base):
    """An instance of a template: a payload that satisfies the template schema."""

    __tablename__ = "apps"

    id: Mapped[int] = mapped_column(_BigId, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    owner_address: Mapped[str] = mapped_column(String(42), nullable=False, index=True)
    template_id: Mapped[int] = mapped_column(
        _BigId, ForeignKey("templates.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    json_data: Mapped[str] = mapped_column(Text, nullable=False)
    moderated: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    template: Mapped[Template] = relationship("Template", back_populates="apps")


# ---------------------------------------------------------------------------
# AI generation
# ---------------------------------------------------------------------------


class AiChallenge(Base):
    """Single-use token that authorizes one AI prompt once signed."""

    __tablename__ = "ai_challenges"

    challenge: Mapped[str] = mapped_column(String(36), primary_key=True)
    address: Mapped[str | None] = mapped_column(String(42), nullable=True, index=True)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    consumed: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AiQuota(Base):
    """Per-address, per-UTC-day count of successful AI prompts."""

    __tablename__ = "ai_quotas"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    used: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    max: Mapped[int] = mapped_column(Integer, nullable=False)
