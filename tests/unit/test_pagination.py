"""Tests for listing pagination parameters."""

import pytest

from web4apps.errors import ValidationFailed
from web4apps.pagination import (
    DEFAULT_LIMIT,
    INVALID_LIMIT,
    INVALID_PAGE,
    build_pagination,
    parse_limit,
    parse_page,
)


class TestParse:
    def test_defaults(self):
        assert parse_page(None) == 1
        assert parse_limit(None) == DEFAULT_LIMIT == 12

    def test_valid(self):
        assert parse_page("3") == 3
        assert parse_limit("50") == 50
        assert parse_limit("1") == 1

    @pytest.mark.parametrize("raw", ["0", "-1", "abc", "", "2.5"])
    def test_bad_page(self, raw):
        with pytest.raises(ValidationFailed) as exc_info:
            parse_page(raw)
        assert exc_info.value.message == INVALID_PAGE

    @pytest.mark.parametrize("raw", ["0", "51", "abc", "-5"])
    def test_bad_limit(self, raw):
        with pytest.raises(ValidationFailed) as exc_info:
            parse_limit(raw)
        assert exc_info.value.message == INVALID_LIMIT == "Invalid limit parameter. Must be between 1 and 50"


class TestBuild:
    def test_middle_page(self):
        p = build_pagination(total=25, page=2, limit=10)
        assert p.totalPages == 3
        assert p.hasNextPage is True
        assert p.hasPrevPage is True

    def test_last_page(self):
        p = build_pagination(total=20, page=2, limit=10)
        assert p.totalPages == 2
        assert p.hasNextPage is False

    def test_empty(self):
        p = build_pagination(total=0, page=1, limit=12)
        assert p.totalPages == 0
        assert p.hasNextPage is False
        assert p.hasPrevPage is False

    def test_page_past_end(self):
        p = build_pagination(total=5, page=4, limit=12)
        assert p.hasNextPage is False
        assert p.hasPrevPage is True
