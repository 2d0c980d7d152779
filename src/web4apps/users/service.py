"""User registration business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from web4apps.auth.address_validation import validate_address
from web4apps.auth.ethereum import verify_signature
from web4apps.auth.messages import REGISTRATION_MESSAGE
from web4apps.db.repository import Repository
from web4apps.errors import InvalidSignature

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def register_user(
    db: AsyncSession,
    address: str,
    signature: str,
    message: str | None = None,
) -> str:
    """
    Register a wallet by its signature over the registration literal.

    Registering twice is an upsert: the second call succeeds without changes.

    Returns:
        The lowercased address.

    Raises:
        ValidationFailed: If the address is malformed.
        InvalidSignature: If ``message`` differs from the literal or the
            signature does not recover ``address``.
    """
    validate_address(address)

    if message is not None and message != REGISTRATION_MESSAGE:
        raise InvalidSignature("Invalid registration message")

    if not verify_signature(REGISTRATION_MESSAGE, signature, address):
        logger.warning("signature_rejected", operation="register", address=address)
        raise InvalidSignature

    user = await Repository(db).upsert_user(address)
    logger.info("user_registered", address=user.address)
    return user.address


async def check_registration(db: AsyncSession, address: str) -> bool:
    validate_address(address)
    return await Repository(db).get_user(address) is not None
