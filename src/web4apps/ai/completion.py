"""Language-model completion client.

A single structured-output chat completion per prompt. No retries: an upstream
failure is surfaced to the caller as ``UpstreamFailure``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

import structlog
from openai import AsyncOpenAI, OpenAIError, Timeout

from web4apps.errors import UpstreamFailure

logger = structlog.get_logger()


@dataclass(frozen=True)
class CompletionRequest:
    prompt: str
    system_prompt: str
    schema: dict[str, Any]
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class CompletionResult:
    text: str
    tokens: int


class CompletionClient(Protocol):
    """Anything that can turn a prompt plus schema into raw model text."""

    async def complete(self, request: CompletionRequest) -> CompletionResult: ...

    async def aclose(self) -> None: ...


def build_system_prompt(base_prompt: str, schema: dict[str, Any]) -> str:
    """Append the schema contract to a template or default system prompt."""
    return (
        f"{base_prompt}\n\n"
        "You MUST format your response as a valid JSON value that conforms to the following schema:\n"
        f"{json.dumps(schema, indent=2)}\n\n"
        "Ensure your response is ONLY the JSON value with no additional text or formatting."
    )


def _response_format(schema: dict[str, Any]) -> dict[str, Any] | None:
    # Structured outputs only accept an object at the root
    if schema.get("type") != "object":
        return None
    return {
        "type": "json_schema",
        "json_schema": {"name": "template_payload", "schema": schema, "strict": False},
    }


class OpenAICompletionClient:
    """``CompletionClient`` backed by the OpenAI chat completions API."""

    def __init__(self, api_key: str, model: str, timeout_seconds: float) -> None:
        self.model = model
        self.client = AsyncOpenAI(
            api_key=api_key,
            timeout=Timeout(timeout_seconds, connect=10.0),
            max_retries=0,
        )

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        kwargs: dict[str, Any] = {}
        response_format = _response_format(request.schema)
        if response_format is not None:
            kwargs["response_format"] = response_format

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": build_system_prompt(request.system_prompt, request.schema)},
                    {"role": "user", "content": request.prompt},
                ],
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                **kwargs,
            )
        except OpenAIError as e:
            logger.warning("completion_failed", model=self.model, error=str(e))
            raise UpstreamFailure("AI service request failed", details=str(e)) from e

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else 0
        logger.debug("completion_received", model=self.model, tokens=tokens, length=len(text))
        return CompletionResult(text=text, tokens=tokens)

    async def aclose(self) -> None:
        await self.client.close()
