"""GitHub account linkage for wallet users."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from web4apps.auth.address_validation import validate_address
from web4apps.auth.ethereum import verify_signature
from web4apps.auth.messages import DISCONNECT_GITHUB_MESSAGE
from web4apps.db.repository import Repository
from web4apps.errors import InvalidSignature, NotFound, ServiceUnavailable, ValidationFailed

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from web4apps.github.client import GitHubClient, GitHubProfile, GitHubToken

logger = structlog.get_logger()

NOT_CONFIGURED = "GitHub client credentials are not configured"


def _require(github: GitHubClient | None, code: str | None) -> GitHubClient:
    if not code:
        raise ValidationFailed("Authorization code is required", field="code")
    if github is None:
        raise ServiceUnavailable(NOT_CONFIGURED)
    return github


async def exchange_code(github: GitHubClient | None, code: str | None) -> GitHubToken:
    """Trade an OAuth code for a token without storing anything."""
    return await _require(github, code).exchange_code(code)  # type: ignore[arg-type]


async def connect_github(
    db: AsyncSession,
    github: GitHubClient | None,
    address: str,
    code: str | None,
) -> GitHubProfile:
    """Exchange ``code`` and store the token and profile on a registered user."""
    client = _require(github, code)
    validate_address(address)

    repo = Repository(db)
    if await repo.get_user(address) is None:
        raise NotFound("User not found")

    token = await client.exchange_code(code)  # type: ignore[arg-type]
    profile = await client.fetch_user(token.access_token)
    await repo.set_github_link(address, token.access_token, profile.login, profile.email, profile.name)
    logger.info("github_connected", address=address.lower(), github_username=profile.login)
    return profile


async def disconnect_github(db: AsyncSession, address: str, signature: str) -> None:
    """Clear the GitHub linkage. Requires a signature over ``Disconnect GitHub account``."""
    validate_address(address)
    if not verify_signature(DISCONNECT_GITHUB_MESSAGE, signature, address):
        logger.warning("signature_rejected", operation="disconnect_github", address=address)
        raise InvalidSignature

    repo = Repository(db)
    if await repo.get_user(address) is None:
        raise NotFound("User not found")
    if not await repo.clear_github_link(address):
        raise NotFound("GitHub account not connected")
    logger.info("github_disconnected", address=address.lower())
