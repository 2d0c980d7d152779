"""Initial schema: users, templates, apps, AI challenges and quota ledger.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("address", sa.String(42), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("tier_1_winner", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("tier_2_winner", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("github_token", sa.String(255), nullable=True),
        sa.Column("github_username", sa.String(255), nullable=True),
        sa.Column("github_email", sa.String(255), nullable=True),
        sa.Column("github_name", sa.String(255), nullable=True),
        sa.Column("github_connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("address", name="pk_users"),
    )

    # --- templates ---
    op.create_table(
        "templates",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("json_data", sa.Text(), nullable=False),
        sa.Column("owner_address", sa.String(42), nullable=False),
        sa.Column("moderated", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_templates"),
    )
    op.create_index("ix_templates_owner_address", "templates", ["owner_address"])
    op.create_index("ix_templates_deleted_at", "templates", ["deleted_at"])

    # --- apps ---
    op.create_table(
        "apps",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("owner_address", sa.String(42), nullable=False),
        sa.Column("template_id", sa.BigInteger(), nullable=False),
        sa.Column("json_data", sa.Text(), nullable=False),
        sa.Column("moderated", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_apps"),
        sa.ForeignKeyConstraint(
            ["template_id"],
            ["templates.id"],
            name="fk_apps_template_id_templates",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_apps_owner_address", "apps", ["owner_address"])
    op.create_index("ix_apps_template_id", "apps", ["template_id"])
    op.create_index("ix_apps_deleted_at", "apps", ["deleted_at"])
    # Leaderboard groups public apps by lowercased owner
    op.create_index(
        "ix_apps_public_owner_lower",
        "apps",
        [sa.text("lower(owner_address)")],
        postgresql_where=sa.text("moderated AND deleted_at IS NULL"),
    )

    # --- ai_challenges ---
    op.create_table(
        "ai_challenges",
        sa.Column("challenge", sa.String(36), nullable=False),
        sa.Column("address", sa.String(42), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("consumed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("challenge", name="pk_ai_challenges"),
    )
    op.create_index("ix_ai_challenges_address", "ai_challenges", ["address"])
    op.create_index("ix_ai_challenges_expires_at", "ai_challenges", ["expires_at"])

    # --- ai_quotas ---
    op.create_table(
        "ai_quotas",
        sa.Column("address", sa.String(42), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("used", sa.Integer(), server_default="0", nullable=False),
        sa.Column("max", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("address", "day", name="pk_ai_quotas"),
        sa.CheckConstraint("used >= 0 AND used <= max", name="ck_ai_quotas_used_within_max"),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("ai_quotas")
    op.drop_index("ix_ai_challenges_expires_at", table_name="ai_challenges")
    op.drop_index("ix_ai_challenges_address", table_name="ai_challenges")
    op.drop_table("ai_challenges")
    op.drop_index("ix_apps_public_owner_lower", table_name="apps")
    op.drop_index("ix_apps_deleted_at", table_name="apps")
    op.drop_index("ix_apps_template_id", table_name="apps")
    op.drop_index("ix_apps_owner_address", table_name="apps")
    op.drop_table("apps")
    op.drop_index("ix_templates_deleted_at", table_name="templates")
    op.drop_index("ix_templates_owner_address", table_name="templates")
    op.drop_table("templates")
    op.drop_table("users")
