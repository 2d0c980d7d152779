"""Per-template AI generation options.

A template schema may carry a top-level ``"x-ai"`` object::

    {"type": "object", "x-ai": {"systemPrompt": "...", "temperature": 0.2, "maxTokens": 800}, ...}

The schema validator ignores it; it is removed before the schema is sent to
the model as the output constraint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from web4apps.errors import ValidationFailed

AI_OPTIONS_KEY = "x-ai"


class TemplateAiOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    system_prompt: str | None = Field(None, alias="systemPrompt", min_length=1, max_length=4000)
    temperature: float | None = Field(None, ge=0, le=2)
    max_tokens: int | None = Field(None, alias="maxTokens", ge=1)


def split_ai_options(schema: dict[str, Any]) -> tuple[dict[str, Any], TemplateAiOptions]:
    """Return ``(schema without x-ai, parsed options)``.

    Raises:
        ValidationFailed: If ``x-ai`` is present but malformed.
    """
    if AI_OPTIONS_KEY not in schema:
        return schema, TemplateAiOptions()

    raw = schema[AI_OPTIONS_KEY]
    stripped = {k: v for k, v in schema.items() if k != AI_OPTIONS_KEY}
    if not isinstance(raw, dict):
        raise ValidationFailed("Invalid AI options", details=f"{AI_OPTIONS_KEY} must be an object", field="json_data")
    try:
        options = TemplateAiOptions.model_validate(raw)
    except ValidationError as e:
        details = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise ValidationFailed("Invalid AI options", details=details, field="json_data") from e
    return stripped, options
