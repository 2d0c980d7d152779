"""Offset pagination for public listings.

Query values arrive as raw strings so that malformed input produces the
listing-specific error messages instead of a generic request error.
"""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel

from web4apps.errors import ValidationFailed

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 12
MAX_LIMIT = 50

INVALID_PAGE = "Invalid page parameter"
INVALID_LIMIT = f"Invalid limit parameter. Must be between 1 and {MAX_LIMIT}"

T = TypeVar("T")


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int  # noqa: N815
    hasNextPage: bool  # noqa: N815
    hasPrevPage: bool  # noqa: N815


class Page(BaseModel, Generic[T]):
    data: list[T]
    pagination: Pagination


def _parse_int(raw: str) -> int | None:
    raw = raw.strip()
    if not raw or not raw.isascii() or not raw.lstrip("-").isdigit():
        return None
    return int(raw)


def parse_page(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_PAGE
    page = _parse_int(raw)
    if page is None or page < 1:
        raise ValidationFailed(INVALID_PAGE, field="page")
    return page


def parse_limit(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_LIMIT
    limit = _parse_int(raw)
    if limit is None or not 1 <= limit <= MAX_LIMIT:
        raise ValidationFailed(INVALID_LIMIT, field="limit")
    return limit


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    total_pages = math.ceil(total / limit) if total else 0
    return Pagination(
        total=total,
        page=page,
        limit=limit,
        totalPages=total_pages,
        hasNextPage=page < total_pages,
        hasPrevPage=page > 1,
    )
