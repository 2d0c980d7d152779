"""Template authoring and lookup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from web4apps.ai.options import split_ai_options
from web4apps.auth.address_validation import addresses_equal, validate_address
from web4apps.auth.ethereum import verify_signature
from web4apps.auth.messages import create_template_message, delete_template_message
from web4apps.db.repository import Repository
from web4apps.errors import Forbidden, InvalidSignature, NotFound, Unauthenticated, ValidationFailed
from web4apps.pagination import Pagination, build_pagination, parse_limit, parse_page
from web4apps.validation.fields import (
    parse_id,
    validate_description,
    validate_json_text,
    validate_title,
    validate_url,
)
from web4apps.validation.schema import check_schema

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from web4apps.config import Settings
    from web4apps.db.models import Template

logger = structlog.get_logger()

TEMPLATE_NOT_FOUND = "Template not found"
INVALID_TEMPLATE_ID = "Invalid template ID"
SUBMISSIONS_DISABLED = "Submissions are currently disabled"


async def create_template(
    db: AsyncSession,
    settings: Settings,
    address: str,
    signature: str,
    title: str,
    url: str,
    json_data: str,
    description: str | None = None,
) -> Template:
    """
    Publish a template signed with ``Create template: <title>``.

    Fields are validated before the signature so that malformed submissions
    get a precise 400 regardless of who signed them. The schema must be
    well-formed, including any ``x-ai`` generation options.

    Raises:
        ValidationFailed: On any field, JSON or schema problem.
        InvalidSignature: If the signature does not recover ``address``.
        Forbidden: If submissions are disabled.
    """
    if not settings.submissions_enabled:
        raise Forbidden(SUBMISSIONS_DISABLED)

    validate_address(address)
    title = validate_title(title)
    description = validate_description(description)
    url = validate_url(url)
    schema = check_schema(validate_json_text(json_data))
    split_ai_options(schema)

    if not verify_signature(create_template_message(title), signature, address):
        logger.warning("signature_rejected", operation="create_template", address=address)
        raise InvalidSignature

    repo = Repository(db)
    await repo.upsert_user(address)
    template = await repo.insert_template(
        title=title,
        description=description,
        url=url,
        json_data=json_data,
        owner_address=address,
    )
    logger.info("template_created", template_id=template.id, owner=address.lower())
    return template


async def delete_template(
    db: AsyncSession,
    template_id: str | int,
    address: str | None,
    signature: str,
) -> None:
    """
    Soft-delete a template signed with ``Delete template #<id>``.

    Checks run in order: existence (404), ownership (403), signature (401).
    A second delete of the same id is a 404.
    """
    template_id = parse_id(template_id, INVALID_TEMPLATE_ID)
    if not address:
        raise Unauthenticated
    validate_address(address)

    repo = Repository(db)
    template = await repo.get_template_by_id(template_id, for_update=True)
    if template is None:
        raise NotFound(TEMPLATE_NOT_FOUND)
    if not addresses_equal(template.owner_address, address):
        raise Forbidden("Not authorized to delete this template")
    if not verify_signature(delete_template_message(template_id), signature, address):
        logger.warning("signature_rejected", operation="delete_template", address=address)
        raise InvalidSignature

    if not await repo.soft_delete_template(template_id):
        raise NotFound(TEMPLATE_NOT_FOUND)
    logger.info("template_deleted", template_id=template_id, owner=address.lower())


async def template_by_id(db: AsyncSession, template_id: str | int) -> Template:
    template_id = parse_id(template_id, INVALID_TEMPLATE_ID)
    template = await Repository(db).get_template_by_id(template_id)
    if template is None:
        raise NotFound(TEMPLATE_NOT_FOUND)
    return template


async def templates_by_owner(db: AsyncSession, address: str | None) -> list[Template]:
    """All non-deleted templates of an owner, moderated or not, newest first."""
    if not address:
        raise ValidationFailed("Address parameter is required", field="address")
    return await Repository(db).list_templates_by_owner(address)


async def public_templates_page(
    db: AsyncSession,
    page: str | None,
    limit: str | None,
) -> tuple[list[Template], Pagination]:
    page_number = parse_page(page)
    page_size = parse_limit(limit)
    rows, total = await Repository(db).list_public_templates(page_number, page_size)
    return rows, build_pagination(total, page_number, page_size)
