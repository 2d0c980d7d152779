"""
Typed persistence operations.

No business rules live here: callers decide what is allowed, the repository
only knows how rows are stored, filtered and ordered. All address filters are
case-insensitive. Public listings show ``moderated AND deleted_at IS NULL``
rows ordered by ``created_at DESC, id DESC``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy import ColumnElement, Select, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from web4apps.db.models import AiChallenge, AiQuota, App, Template, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LeaderboardRow:
    address: str
    count: int


class Repository:
    """Persistence facade over one ``AsyncSession`` (one logical transaction)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def get_user(self, address: str) -> User | None:
        result = await self.session.execute(select(User).where(User.address == address.lower()))
        return result.scalar_one_or_none()

    async def upsert_user(self, address: str) -> User:
        """Create the user row if missing. Safe under concurrent registration."""
        now = utcnow()
        await self._insert_ignore(
            User,
            {"address": address.lower(), "created_at": now, "updated_at": now},
        )
        user = await self.get_user(address)
        if user is None:  # pragma: no cover - insert-ignore guarantees the row
            msg = f"User row missing after upsert: {address}"
            raise RuntimeError(msg)
        return user

    async def set_github_link(
        self,
        address: str,
        token: str,
        username: str | None,
        email: str | None,
        name: str | None,
    ) -> None:
        now = utcnow()
        await self.session.execute(
            update(User)
            .where(User.address == address.lower())
            .values(
                github_token=token,
                github_username=username,
                github_email=email,
                github_name=name,
                github_connected_at=now,
                updated_at=now,
            )
        )

    async def clear_github_link(self, address: str) -> bool:
        result = await self.session.execute(
            update(User)
            .where(User.address == address.lower(), User.github_token.is_not(None))
            .values(
                github_token=None,
                github_username=None,
                github_email=None,
                github_name=None,
                github_connected_at=None,
                updated_at=utcnow(),
            )
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def insert_template(
        self,
        title: str,
        description: str | None,
        url: str,
        json_data: str,
        owner_address: str,
    ) -> Template:
        now = utcnow()
        template = Template(
            title=title,
            description=description,
            url=url,
            json_data=json_data,
            owner_address=owner_address,
            moderated=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(template)
        await self.session.flush()
        return template

    async def get_template_by_id(
        self,
        template_id: int,
        include_deleted: bool = False,
        for_update: bool = False,
    ) -> Template | None:
        query = select(Template).where(Template.id == template_id)
        if not include_deleted:
            query = query.where(Template.deleted_at.is_(None))
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def soft_delete_template(self, template_id: int) -> bool:
        """Mark a template deleted. Returns False if it was missing or already deleted."""
        return await self._soft_delete(Template, template_id)

    async def list_public_templates(self, page: int, limit: int) -> tuple[list[Template], int]:
        return await self._paginate(Template, self._public_filter(Template), page, limit)

    async def list_templates_by_owner(self, address: str) -> list[Template]:
        result = await self.session.execute(
            select(Template)
            .where(func.lower(Template.owner_address) == address.lower(), Template.deleted_at.is_(None))
            .order_by(Template.id.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Apps
    # ------------------------------------------------------------------

    async def insert_app(
        self,
        name: str,
        description: str | None,
        owner_address: str,
        template_id: int,
        json_data: str,
    ) -> App:
        now = utcnow()
        app = App(
            name=name,
            description=description,
            owner_address=owner_address,
            template_id=template_id,
            json_data=json_data,
            moderated=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(app)
        await self.session.flush()
        return app

    async def get_app_by_id(self, app_id: int, include_deleted: bool = False) -> App | None:
        query = select(App).where(App.id == app_id)
        if not include_deleted:
            query = query.where(App.deleted_at.is_(None))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def soft_delete_app(self, app_id: int) -> bool:
        """Mark an app deleted. Returns False if it was missing or already deleted."""
        return await self._soft_delete(App, app_id)

    async def list_public_apps(self, page: int, limit: int) -> tuple[list[App], int]:
        return await self._paginate(App, self._public_filter(App), page, limit)

    async def list_apps_by_owner(self, address: str) -> list[App]:
        result = await self.session.execute(
            select(App)
            .where(func.lower(App.owner_address) == address.lower(), App.deleted_at.is_(None))
            .order_by(App.id.desc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    async def set_moderated(self, model: type[Template] | type[App], ids: list[int], moderated: bool) -> int:
        """Set the moderation flag on non-deleted rows. Returns how many rows matched."""
        if not ids:
            return 0
        result = await self.session.execute(
            update(model)
            .where(model.id.in_(ids), model.deleted_at.is_(None))
            .values(moderated=moderated)
            .returning(model.id)
        )
        return len(result.scalars().all())

    async def count_live(self, model: type[Template] | type[App]) -> int:
        """Number of non-deleted rows, moderated or not."""
        result = await self.session.execute(select(func.count(model.id)).where(model.deleted_at.is_(None)))
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------

    async def count_apps_by_owner(self, excluded: list[str] | None = None) -> list[LeaderboardRow]:
        """App counts for every owner with at least one public app."""
        return await self.leaderboard(None, excluded)

    async def leaderboard(self, limit: int | None, excluded: list[str] | None = None) -> list[LeaderboardRow]:
        """
        Top owners by number of moderated, non-deleted apps.

        Owners are grouped case-insensitively; equal counts are ordered by
        address ascending so the ranking is stable.
        """
        owner = func.lower(App.owner_address)
        app_count = func.count(App.id)
        query = (
            select(owner.label("address"), app_count.label("count"))
            .where(*self._public_filter(App))
            .group_by(owner)
            .order_by(app_count.desc(), owner.asc())
        )
        lowered = [a.lower() for a in excluded or []]
        if lowered:
            query = query.where(owner.not_in(lowered))
        if limit is not None:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return [LeaderboardRow(address=row.address, count=int(row.count)) for row in result]

    async def list_winners(self) -> list[User]:
        result = await self.session.execute(
            select(User)
            .where(or_(User.tier_1_winner.is_(True), User.tier_2_winner.is_(True)))
            .order_by(User.tier_1_winner.desc(), User.address.asc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # AI challenges
    # ------------------------------------------------------------------

    async def insert_challenge(self, challenge: str, issued_at: datetime, expires_at: datetime) -> AiChallenge:
        row = AiChallenge(challenge=challenge, issued_at=issued_at, expires_at=expires_at, consumed=False)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_challenge(self, challenge: str) -> AiChallenge | None:
        result = await self.session.execute(select(AiChallenge).where(AiChallenge.challenge == challenge))
        return result.scalar_one_or_none()

    async def bind_challenge(self, challenge: str, address: str, now: datetime) -> bool:
        """Bind a live challenge to an address. False if unusable or bound to someone else."""
        result = await self.session.execute(
            update(AiChallenge)
            .where(*self._usable_challenge(challenge, address, now))
            .values(address=address.lower())
            .returning(AiChallenge.challenge)
        )
        return result.scalar_one_or_none() is not None

    async def consume_challenge(self, challenge: str, address: str, now: datetime) -> bool:
        """
        Atomically mark a challenge consumed.

        One conditional UPDATE: of two concurrent callers only one sees a row.
        """
        result = await self.session.execute(
            update(AiChallenge)
            .where(*self._usable_challenge(challenge, address, now))
            .values(address=address.lower(), consumed=True, consumed_at=now)
            .returning(AiChallenge.challenge)
        )
        return result.scalar_one_or_none() is not None

    async def prune_challenges(self, before: datetime) -> int:
        result = await self.session.execute(delete(AiChallenge).where(AiChallenge.expires_at < before))
        return result.rowcount or 0  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # AI quota ledger
    # ------------------------------------------------------------------

    async def get_quota(self, address: str, day: date) -> AiQuota | None:
        result = await self.session.execute(
            select(AiQuota).where(AiQuota.address == address.lower(), AiQuota.day == day)
        )
        return result.scalar_one_or_none()

    async def ensure_quota(self, address: str, day: date, max_per_day: int) -> None:
        await self._insert_ignore(AiQuota, {"address": address.lower(), "day": day, "used": 0, "max": max_per_day})

    async def increment_quota(self, address: str, day: date) -> int | None:
        """
        Charge one prompt to ``(address, day)``.

        Returns the new ``used`` value, or None when the ledger is already at
        its maximum (nothing is charged in that case).
        """
        result = await self.session.execute(
            update(AiQuota)
            .where(
                AiQuota.address == address.lower(),
                AiQuota.day == day,
                AiQuota.used < AiQuota.max,
            )
            .values(used=AiQuota.used + 1)
            .returning(AiQuota.used)
        )
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _public_filter(model: type[Template] | type[App]) -> list[ColumnElement[bool]]:
        return [model.moderated.is_(True), model.deleted_at.is_(None)]

    @staticmethod
    def _usable_challenge(challenge: str, address: str, now: datetime) -> list[ColumnElement[bool]]:
        return [
            AiChallenge.challenge == challenge,
            AiChallenge.consumed.is_(False),
            AiChallenge.expires_at > now,
            or_(AiChallenge.address.is_(None), AiChallenge.address == address.lower()),
        ]

    async def _soft_delete(self, model: type[Template] | type[App], row_id: int) -> bool:
        now = utcnow()
        result = await self.session.execute(
            update(model)
            .where(model.id == row_id, model.deleted_at.is_(None))
            .values(deleted_at=now, updated_at=now)
        )
        return result.rowcount > 0  # type: ignore[attr-defined]

    async def _paginate(
        self,
        model: type[Template] | type[App],
        filters: list[ColumnElement[bool]],
        page: int,
        limit: int,
    ) -> tuple[list[Any], int]:
        query: Select[Any] = (
            select(model)
            .where(*filters)
            .order_by(model.created_at.desc(), model.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = list((await self.session.execute(query)).scalars().all())
        total = await self.session.scalar(select(func.count()).select_from(model).where(*filters))
        return rows, int(total or 0)

    async def _insert_ignore(self, model: type[User] | type[AiQuota], values: dict[str, Any]) -> None:
        """INSERT ... ON CONFLICT DO NOTHING on the dialects we run on."""
        dialect = self.session.get_bind().dialect.name
        insert = sqlite_insert if dialect == "sqlite" else pg_insert
        await self.session.execute(insert(model).values(**values).on_conflict_do_nothing())

