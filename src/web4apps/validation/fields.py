"""Field-level validators for template and app submissions.

Each validator returns the cleaned value or raises ``ValidationFailed`` with
the literal message clients match on.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import urlparse

from web4apps.errors import ValidationFailed

MAX_TITLE_LENGTH = 255
MAX_NAME_LENGTH = 255
MIN_NAME_LENGTH = 3
MAX_DESCRIPTION_LENGTH = 1000
MAX_URL_LENGTH = 2048
MAX_JSON_LENGTH = 10000

INVALID_URL = "Invalid URL format"
INVALID_JSON = "Invalid JSON format"
JSON_TOO_LONG = f"JSON data must be less than {MAX_JSON_LENGTH} characters"


def _reject_constant(name: str) -> Any:  # noqa: ANN401
    msg = f"Non-standard JSON constant: {name}"
    raise ValueError(msg)


def loads_strict(text: str) -> Any:  # noqa: ANN401
    """``json.loads`` that rejects NaN and Infinity, which are not JSON."""
    return json.loads(text, parse_constant=_reject_constant)


def is_absolute_url(value: str) -> bool:
    """True for URLs with a scheme and a network location, e.g. ``https://example.com``."""
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.scheme.isascii() and parsed.scheme.isalpha() and parsed.netloc)


def validate_title(title: str | None) -> str:
    if title is None or not title.strip():
        raise ValidationFailed("Title is required", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationFailed(f"Title must be less than {MAX_TITLE_LENGTH} characters", field="title")
    return title


def validate_name(name: str | None) -> str:
    """Trim and validate an app name. The trimmed form is what gets signed and stored."""
    if name is None or not name.strip():
        raise ValidationFailed("Name is required", field="name")
    trimmed = name.strip()
    if len(trimmed) < MIN_NAME_LENGTH:
        raise ValidationFailed(f"Name must be at least {MIN_NAME_LENGTH} characters", field="name")
    if len(trimmed) > MAX_NAME_LENGTH:
        raise ValidationFailed(f"Name must be less than {MAX_NAME_LENGTH} characters", field="name")
    return trimmed


def validate_description(description: str | None) -> str | None:
    if not description:
        return None
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationFailed(
            f"Description must be less than {MAX_DESCRIPTION_LENGTH} characters",
            field="description",
        )
    return description


def validate_url(url: str | None) -> str:
    if not url:
        raise ValidationFailed("URL is required", field="url")
    if len(url) > MAX_URL_LENGTH:
        raise ValidationFailed(f"URL must be less than {MAX_URL_LENGTH} characters", field="url")
    if not is_absolute_url(url):
        raise ValidationFailed(INVALID_URL, field="url")
    return url


def validate_json_text(text: str | None) -> Any:  # noqa: ANN401
    """Check size and syntax of a ``json_data`` field and return the parsed value."""
    if not text:
        raise ValidationFailed("JSON data is required", field="json_data")
    if len(text) > MAX_JSON_LENGTH:
        raise ValidationFailed(JSON_TOO_LONG, field="json_data")
    try:
        return loads_strict(text)
    except ValueError as e:
        raise ValidationFailed(INVALID_JSON, field="json_data") from e


def validate_app_payload(document: Any) -> dict[str, Any] | list[Any]:  # noqa: ANN401
    """App payloads must be a non-empty object or array."""
    if not isinstance(document, (dict, list)):
        raise ValidationFailed("Invalid JSON: must be an object or array", field="json_data")
    if not document:
        raise ValidationFailed("Empty JSON objects/arrays are not allowed", field="json_data")
    return document


def parse_id(raw: str | int, message: str) -> int:
    """Parse a positive integer row id from a path segment."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        value = raw
    elif isinstance(raw, str) and raw.strip().isascii() and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise ValidationFailed(message, field="id")
    if value < 1:
        raise ValidationFailed(message, field="id")
    return value
