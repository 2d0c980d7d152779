"""App authoring and lookup.

An app is a payload that satisfies its template's schema at the moment it is
inserted. The template row is read with ``FOR UPDATE`` in the same transaction
as the insert so it cannot be soft-deleted in between.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError

from web4apps.auth.address_validation import addresses_equal, validate_address
from web4apps.auth.ethereum import verify_signature
from web4apps.auth.messages import create_app_message, delete_app_message
from web4apps.db.repository import Repository
from web4apps.errors import Forbidden, InvalidSignature, NotFound, Unauthenticated
from web4apps.leaderboard.service import invalidate_cache
from web4apps.pagination import Pagination, build_pagination, parse_limit, parse_page
from web4apps.templates.service import SUBMISSIONS_DISABLED, TEMPLATE_NOT_FOUND
from web4apps.validation.fields import (
    parse_id,
    validate_app_payload,
    validate_description,
    validate_json_text,
    validate_name,
)
from web4apps.validation.schema import check_document, parse_schema

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from web4apps.config import Settings
    from web4apps.db.models import App

logger = structlog.get_logger()

APP_NOT_FOUND = "App not found"
INVALID_APP_ID = "Invalid app ID"


async def create_app(
    db: AsyncSession,
    settings: Settings,
    address: str | None,
    signature: str,
    name: str,
    template_id: int,
    json_data: str,
    description: str | None = None,
) -> App:
    """
    Create an app signed with ``Create app: <name>``.

    ``name`` is trimmed first; the trimmed name is what must be signed and
    what gets stored.

    Raises:
        Unauthenticated: If no wallet address was supplied.
        ValidationFailed: On field problems or when ``json_data`` does not
            satisfy the template schema (``schema_errors`` lists every failure).
        InvalidSignature: If the signature does not recover ``address``.
        NotFound: If the template is missing or soft-deleted.
    """
    if not settings.submissions_enabled:
        raise Forbidden(SUBMISSIONS_DISABLED)
    if not address:
        raise Unauthenticated
    validate_address(address)

    name = validate_name(name)
    description = validate_description(description)
    document = validate_app_payload(validate_json_text(json_data))

    if not verify_signature(create_app_message(name), signature, address):
        logger.warning("signature_rejected", operation="create_app", address=address)
        raise InvalidSignature

    repo = Repository(db)
    template = await repo.get_template_by_id(template_id, for_update=True)
    if template is None:
        raise NotFound(TEMPLATE_NOT_FOUND)

    check_document(document, parse_schema(template.json_data))

    try:
        await repo.upsert_user(address)
        app = await repo.insert_app(
            name=name,
            description=description,
            owner_address=address,
            template_id=template_id,
            json_data=json_data,
        )
    except IntegrityError as e:
        await db.rollback()
        raise NotFound(TEMPLATE_NOT_FOUND) from e

    logger.info("app_created", app_id=app.id, template_id=template_id, owner=address.lower())
    return app


async def delete_app(
    db: AsyncSession,
    app_id: str | int,
    address: str | None,
    signature: str,
) -> None:
    """
    Soft-delete an app signed with ``Delete application #<id>``.

    Checks run in order: existence (404), ownership (403), signature (401).
    """
    app_id = parse_id(app_id, INVALID_APP_ID)
    if not address:
        raise Unauthenticated
    validate_address(address)

    repo = Repository(db)
    app = await repo.get_app_by_id(app_id)
    if app is None:
        raise NotFound(APP_NOT_FOUND)
    if not addresses_equal(app.owner_address, address):
        raise Forbidden("Not authorized to delete this app")
    if not verify_signature(delete_app_message(app_id), signature, address):
        logger.warning("signature_rejected", operation="delete_app", address=address)
        raise InvalidSignature

    if not await repo.soft_delete_app(app_id):
        raise NotFound(APP_NOT_FOUND)
    if app.moderated:
        await invalidate_cache()
    logger.info("app_deleted", app_id=app_id, owner=address.lower())


async def app_by_id(db: AsyncSession, app_id: str | int) -> App:
    app_id = parse_id(app_id, INVALID_APP_ID)
    app = await Repository(db).get_app_by_id(app_id)
    if app is None:
        raise NotFound(APP_NOT_FOUND)
    return app


async def apps_by_owner(db: AsyncSession, address: str | None) -> list[App]:
    if not address:
        raise Unauthenticated
    return await Repository(db).list_apps_by_owner(address)


async def public_apps_page(
    db: AsyncSession,
    page: str | None,
    limit: str | None,
) -> tuple[list[App], Pagination]:
    page_number = parse_page(page)
    page_size = parse_limit(limit)
    rows, total = await Repository(db).list_public_apps(page_number, page_size)
    return rows, build_pagination(total, page_number, page_size)
