"""FastAPI wallet-identity dependencies."""

from __future__ import annotations

from fastapi import Header

from web4apps.errors import Unauthenticated


async def get_wallet_address(
    x_wallet_address: str | None = Header(default=None),
) -> str:
    """
    Return the caller's claimed wallet address from ``X-Wallet-Address``.

    The header only identifies the caller; every mutation still proves
    ownership with a signature checked in the service layer.
    """
    if not x_wallet_address:
        raise Unauthenticated
    return x_wallet_address


async def get_optional_wallet_address(
    x_wallet_address: str | None = Header(default=None),
) -> str | None:
    """Same as get_wallet_address but anonymous callers are allowed."""
    return x_wallet_address or None
