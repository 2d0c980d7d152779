"""
Account address format helpers.

Addresses are 20-byte identifiers rendered as ``0x`` + 40 hex characters.
Stored values keep the casing they were received with; every comparison goes
through the lowercased form.
"""

from __future__ import annotations

import re

from web4apps.errors import ValidationFailed

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

INVALID_ADDRESS_MESSAGE = "Invalid Ethereum address format"


def is_valid_address(address: object) -> bool:
    """Return True for a syntactically valid ``0x``-prefixed address."""
    return isinstance(address, str) and len(address) == 42 and bool(_ADDRESS_RE.match(address))


def validate_address(address: object) -> str:
    """
    Validate an address and return it unchanged.

    Raises:
        ValidationFailed: If the address is missing or malformed.
    """
    if not is_valid_address(address):
        raise ValidationFailed(INVALID_ADDRESS_MESSAGE, field="address")
    return address  # type: ignore[return-value]


def normalize_address(address: str) -> str:
    """Lowercased comparison form."""
    return address.lower()


def addresses_equal(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    return a.lower() == b.lower()


def trim_address(address: str) -> str:
    """Short display form: first 7 and last 5 characters."""
    if len(address) <= 12:
        return address
    return f"{address[:7]}...{address[-5:]}"
