"""AI router: challenges and prompt processing."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from web4apps.ai.schemas import (
    ChallengeData,
    ChallengeResponse,
    ProcessPromptRequest,
    ProcessPromptResponse,
    PromptData,
    QuotaData,
    VerifyChallengeRequest,
    VerifyChallengeResponse,
)
from web4apps.ai.service import PromptOutcome, issue_challenge, process_prompt, verify_challenge
from web4apps.auth.dependencies import get_optional_wallet_address
from web4apps.context import AppContext, get_context
from web4apps.database import get_session

router = APIRouter(prefix="/ai", tags=["AI"])

UNPARSEABLE_MESSAGE = "AI response could not be parsed as valid JSON."


def _prompt_data(outcome: PromptOutcome) -> PromptData:
    result = outcome.result
    if result is None:
        # Model output was not JSON: hand the raw text back for manual editing
        result = {
            "rawText": outcome.raw,
            "message": UNPARSEABLE_MESSAGE,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    return PromptData(
        result=result,
        requiredValidation=outcome.requires_validation,
        validationErrors=outcome.validation_errors or None,
        raw=outcome.raw,
        tokens=outcome.tokens,
        remaining_attempts=outcome.quota.remaining,
        max_attempts=outcome.quota.max,
    )


@router.get("/challenge", response_model=ChallengeResponse)
async def challenge(
    address: str | None = None,
    header_address: str | None = Depends(get_optional_wallet_address),
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> ChallengeResponse:
    """Issue a single-use challenge plus the caller's quota snapshot."""
    token, snapshot = await issue_challenge(db, ctx.settings, header_address or address)
    await db.commit()
    return ChallengeResponse(
        data=ChallengeData(
            challenge=token,
            remaining_attempts=snapshot.remaining,
            max_attempts=snapshot.max,
            reset_date=snapshot.reset_at,
        )
    )


@router.post("/verify-challenge", response_model=VerifyChallengeResponse)
async def verify(
    body: VerifyChallengeRequest,
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> VerifyChallengeResponse:
    snapshot = await verify_challenge(db, ctx.settings, body.address, body.challenge, body.signature)
    await db.commit()
    return VerifyChallengeResponse(data=QuotaData(remaining_attempts=snapshot.remaining, max_attempts=snapshot.max))


@router.post("/process-prompt", response_model=ProcessPromptResponse)
async def prompt(
    body: ProcessPromptRequest,
    header_address: str | None = Depends(get_optional_wallet_address),
    db: AsyncSession = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> ProcessPromptResponse:
    """Generate a template payload from a natural-language prompt."""
    outcome = await process_prompt(
        db,
        ctx.settings,
        ctx.completion,
        template_id=body.templateId,
        prompt=body.prompt,
        challenge=body.challenge,
        signature=body.signature,
        address=header_address or body.address,
    )
    return ProcessPromptResponse(data=_prompt_data(outcome))
