"""AI-assisted payload generation: challenges, daily quota and prompt processing.

A prompt is authorized by a single-use challenge signed by the caller's
wallet. Every successful prompt is charged to the ``(address, UTC day)``
ledger, which never exceeds its maximum: the charge is a conditional
``UPDATE ... WHERE used < max``.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog

from web4apps.ai.completion import CompletionRequest
from web4apps.ai.options import split_ai_options
from web4apps.auth.address_validation import addresses_equal, validate_address
from web4apps.auth.ethereum import verify_signature
from web4apps.db.repository import Repository
from web4apps.errors import (
    InvalidChallenge,
    InvalidSignature,
    NotFound,
    QuotaExceeded,
    ServiceUnavailable,
    Unauthenticated,
    ValidationFailed,
)
from web4apps.templates.service import TEMPLATE_NOT_FOUND
from web4apps.validation.fields import loads_strict
from web4apps.validation.schema import validate_document

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from web4apps.ai.completion import CompletionClient
    from web4apps.config import Settings

logger = structlog.get_logger()

NOT_JSON = "not JSON"
AI_UNAVAILABLE = "AI service is not available"


@dataclass(frozen=True)
class QuotaSnapshot:
    remaining: int
    max: int
    reset_at: datetime


@dataclass
class PromptOutcome:
    """Result of one processed prompt.

    ``result`` is the parsed model output, or None when it was not JSON.
    ``validation_errors`` is empty when the output satisfied the schema.
    """

    result: Any
    raw: str
    tokens: int
    quota: QuotaSnapshot
    validation_errors: list[str] = field(default_factory=list)

    @property
    def requires_validation(self) -> bool:
        return bool(self.validation_errors)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes for timezone-aware columns
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def utc_day(now: datetime) -> date:
    return now.astimezone(timezone.utc).date()


def next_reset(now: datetime) -> datetime:
    """Next UTC midnight after ``now``."""
    return datetime.combine(utc_day(now) + timedelta(days=1), time.min, tzinfo=timezone.utc)


async def quota_snapshot(
    db: AsyncSession,
    settings: Settings,
    address: str | None = None,
    now: datetime | None = None,
) -> QuotaSnapshot:
    """Remaining prompts for ``address`` today; a full allowance for anonymous callers."""
    now = now or _utcnow()
    limit = settings.ai_max_requests_per_day
    used = 0
    if address:
        ledger = await Repository(db).get_quota(address, utc_day(now))
        if ledger is not None:
            used, limit = ledger.used, ledger.max
    return QuotaSnapshot(remaining=max(0, limit - used), max=limit, reset_at=next_reset(now))


async def issue_challenge(
    db: AsyncSession,
    settings: Settings,
    address: str | None = None,
) -> tuple[str, QuotaSnapshot]:
    """
    Mint a fresh challenge valid for ``ai_challenge_ttl_seconds``.

    Also prunes challenges that expired more than ``ai_challenge_gc_seconds`` ago.
    """
    if address:
        validate_address(address)

    now = _utcnow()
    repo = Repository(db)
    pruned = await repo.prune_challenges(now - timedelta(seconds=settings.ai_challenge_gc_seconds))
    challenge = str(uuid.uuid4())
    await repo.insert_challenge(
        challenge,
        issued_at=now,
        expires_at=now + timedelta(seconds=settings.ai_challenge_ttl_seconds),
    )
    snapshot = await quota_snapshot(db, settings, address, now)
    logger.info("ai_challenge_issued", address=address.lower() if address else None, pruned=pruned)
    return challenge, snapshot


async def verify_challenge(
    db: AsyncSession,
    settings: Settings,
    address: str,
    challenge: str,
    signature: str,
) -> QuotaSnapshot:
    """
    Bind a challenge to ``address`` after checking the signature over it.

    Raises:
        InvalidChallenge: Unknown, expired, consumed or bound to another address.
        InvalidSignature: The signature does not recover ``address``.
    """
    validate_address(address)
    repo = Repository(db)
    if await repo.get_challenge(challenge) is None:
        raise InvalidChallenge

    if not verify_signature(challenge, signature, address):
        logger.warning("signature_rejected", operation="verify_challenge", address=address)
        raise InvalidSignature

    now = _utcnow()
    if not await repo.bind_challenge(challenge, address, now):
        raise InvalidChallenge
    logger.info("ai_challenge_verified", address=address.lower())
    return await quota_snapshot(db, settings, address, now)


async def process_prompt(  # noqa: PLR0913
    db: AsyncSession,
    settings: Settings,
    completion: CompletionClient | None,
    template_id: int,
    prompt: str,
    challenge: str,
    signature: str,
    address: str | None = None,
) -> PromptOutcome:
    """
    Spend one challenge and one unit of quota on a model completion.

    The caller is ``address`` if given, else the address the challenge was
    bound to by ``verify_challenge``. The challenge is consumed and committed
    before the model is called, so it cannot be replayed even if the call
    fails. The quota is charged only once the model has answered, whether or
    not the answer parses.

    Raises:
        ServiceUnavailable: No completion client is configured.
        Unauthenticated: No address given and the challenge is unbound.
        InvalidChallenge: Unknown, expired, consumed or bound elsewhere.
        InvalidSignature: Bad signature over the challenge.
        NotFound: Template missing or soft-deleted.
        QuotaExceeded: Daily allowance used up.
        UpstreamFailure: The model call failed.
    """
    if completion is None:
        raise ServiceUnavailable(AI_UNAVAILABLE)
    if not prompt or not prompt.strip():
        raise ValidationFailed("Prompt is required", field="prompt")

    repo = Repository(db)
    now = _utcnow()
    row = await repo.get_challenge(challenge)
    if row is None or row.consumed or _as_utc(row.expires_at) <= now:
        raise InvalidChallenge
    address = address or row.address
    if not address:
        raise Unauthenticated
    validate_address(address)
    if row.address and not addresses_equal(row.address, address):
        raise InvalidChallenge

    if not verify_signature(challenge, signature, address):
        logger.warning("signature_rejected", operation="process_prompt", address=address)
        raise InvalidSignature

    template = await repo.get_template_by_id(template_id)
    if template is None:
        raise NotFound(TEMPLATE_NOT_FOUND)

    day = utc_day(now)
    await repo.ensure_quota(address, day, settings.ai_max_requests_per_day)
    ledger = await repo.get_quota(address, day)
    if ledger is not None and ledger.used >= ledger.max:
        raise QuotaExceeded

    if not await repo.consume_challenge(challenge, address, now):
        raise InvalidChallenge
    await db.commit()

    schema, options = split_ai_options(json.loads(template.json_data))
    result = await completion.complete(
        CompletionRequest(
            prompt=prompt,
            system_prompt=options.system_prompt or settings.ai_system_prompt,
            schema=schema,
            temperature=options.temperature if options.temperature is not None else settings.openai_temperature,
            max_tokens=options.max_tokens or settings.openai_max_tokens,
        )
    )

    parsed: Any = None
    try:
        parsed = loads_strict(result.text)
    except ValueError:
        errors = [NOT_JSON]
    else:
        errors = [str(e) for e in validate_document(parsed, schema)]

    used = await repo.increment_quota(address, day)
    if used is None:
        await db.rollback()
        raise QuotaExceeded
    await db.commit()

    snapshot = await quota_snapshot(db, settings, address, now)
    logger.info(
        "ai_prompt_processed",
        address=address.lower(),
        template_id=template_id,
        tokens=result.tokens,
        valid=not errors,
        remaining=snapshot.remaining,
    )
    return PromptOutcome(
        result=parsed,
        raw=result.text,
        tokens=result.tokens,
        quota=snapshot,
        validation_errors=errors,
    )
