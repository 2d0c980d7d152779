"""Error taxonomy shared by services and the HTTP layer.

Services raise these; the global handlers in ``web4apps.middleware.error_handler``
render them as ``{"error": ..., "details": ...}`` with the class status code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from web4apps.validation.schema import SchemaError


class Web4AppsError(Exception):
    """Base class for all expected service errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, details: str | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailed(Web4AppsError):
    """Malformed input: bad field, oversized payload, schema violation, page/limit."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        details: str | None = None,
        field: str | None = None,
        schema_errors: list[SchemaError] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field
        self.schema_errors = schema_errors or []


class InvalidChallenge(ValidationFailed):
    """AI challenge is unknown, expired, consumed or bound to another address."""

    default_message = "Invalid or expired challenge"


class Unauthenticated(Web4AppsError):
    status_code = 401
    default_message = "Unauthorized - Wallet address required"


class InvalidSignature(Unauthenticated):
    default_message = "Invalid signature"


class Forbidden(Web4AppsError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(Web4AppsError):
    status_code = 404
    default_message = "Not found"


class Conflict(Web4AppsError):
    status_code = 409
    default_message = "Conflict"


class QuotaExceeded(Web4AppsError):
    status_code = 429
    default_message = "Daily AI request limit reached"


class UpstreamFailure(Web4AppsError):
    """The language model or the OAuth provider failed."""

    status_code = 502
    default_message = "Upstream service failed"


class ServiceUnavailable(Web4AppsError):
    status_code = 503
    default_message = "Service unavailable"
