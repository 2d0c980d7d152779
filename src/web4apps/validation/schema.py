"""Validator for the constrained JSON-Schema dialect used by templates.

Recognized keywords:

- ``type``: string, number, integer, boolean, array, object
- strings: ``minLength``, ``maxLength``, ``pattern``, ``format``, ``enum``
- numbers: ``minimum``, ``maximum``
- arrays: ``items``, ``minItems``, ``maxItems``
- objects: ``properties``, ``required``

Anything else is ignored so that templates written for richer dialects keep
working. Keywords only constrain values of the matching JSON type. String
lengths count code points. ``pattern`` is an ECMA-262 regular expression
evaluated with ``regress`` and is searched, not fully matched: anchors must
be written explicitly.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Any

from jsonschema import Draft7Validator, FormatChecker, ValidationError, validators
from regress import Regex, RegressError

from web4apps.errors import ValidationFailed
from web4apps.validation.fields import INVALID_JSON, is_absolute_url, loads_strict

TYPES = ("string", "number", "integer", "boolean", "array", "object")
FORMATS = ("email", "url", "date", "date-time")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)
_DATE_TIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})$",
    re.ASCII,
)

_NON_NEGATIVE_INT = {"type": "integer", "minimum": 0}

# Draft 7 is only used to check templates against this meta-schema
DIALECT_META_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "properties": {
        "type": {"enum": list(TYPES)},
        "minLength": _NON_NEGATIVE_INT,
        "maxLength": _NON_NEGATIVE_INT,
        "pattern": {"type": "string", "format": "regex"},
        "format": {"enum": list(FORMATS)},
        "enum": {"type": "array", "minItems": 1, "items": {"type": "string"}},
        "minimum": {"type": "number"},
        "maximum": {"type": "number"},
        "items": {"$ref": "#"},
        "minItems": _NON_NEGATIVE_INT,
        "maxItems": _NON_NEGATIVE_INT,
        "properties": {"type": "object", "additionalProperties": {"$ref": "#"}},
        "required": {"type": "array", "items": {"type": "string"}},
    },
}


@dataclass(frozen=True)
class SchemaError:
    """One validation failure. ``path`` is JSONPath-like: ``$``, ``$.name``, ``$.tags[0]``."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}

    @classmethod
    def from_validation_error(cls, error: ValidationError) -> SchemaError:
        message = error.message
        if error.cause is not None:
            message = f"{message}: {error.cause}"
        return cls(error.json_path, message)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Regex:
    """Compile an ECMA-262 pattern. Raises ``RegressError`` if it is not valid syntax."""
    return Regex(pattern)


# ---------------------------------------------------------------------------
# Format checkers
# ---------------------------------------------------------------------------

META_FORMATS = FormatChecker(formats=())
DOCUMENT_FORMATS = FormatChecker(formats=())


@META_FORMATS.checks("regex", raises=RegressError)
def _is_ecma_regex(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    compile_pattern(instance)
    return True


@DOCUMENT_FORMATS.checks("email")
def _is_email(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    return bool(_EMAIL_RE.match(instance))


@DOCUMENT_FORMATS.checks("url")
def _is_url(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    return is_absolute_url(instance)


@DOCUMENT_FORMATS.checks("date", raises=ValueError)
def _is_date(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    if not _DATE_RE.match(instance):
        return False
    date.fromisoformat(instance)
    return True


@DOCUMENT_FORMATS.checks("date-time", raises=ValueError)
def _is_date_time(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    if not _DATE_TIME_RE.match(instance):
        return False
    datetime.fromisoformat(instance.replace("Z", "+00:00").replace("z", "+00:00"))
    return True


# ---------------------------------------------------------------------------
# Dialect keywords
# ---------------------------------------------------------------------------

_DRAFT7 = Draft7Validator.VALIDATORS


def _pattern(
    validator: Any,  # noqa: ANN401
    pattern: Any,  # noqa: ANN401
    instance: Any,  # noqa: ANN401
    schema: dict[str, Any],
) -> Iterator[ValidationError]:
    if not validator.is_type(instance, "string") or not isinstance(pattern, str):
        return
    try:
        regex = compile_pattern(pattern)
    except RegressError as e:
        yield ValidationError(f"invalid pattern {pattern!r}", cause=e)
        return
    if regex.find(instance) is None:
        yield ValidationError(f"{instance!r} does not match {pattern!r}")


def _enum(
    validator: Any,  # noqa: ANN401
    enums: Any,  # noqa: ANN401
    instance: Any,  # noqa: ANN401
    schema: dict[str, Any],
) -> Iterator[ValidationError]:
    if validator.is_type(instance, "string"):
        yield from _DRAFT7["enum"](validator, enums, instance, schema)


def _required(
    validator: Any,  # noqa: ANN401
    required: Any,  # noqa: ANN401
    instance: Any,  # noqa: ANN401
    schema: dict[str, Any],
) -> Iterator[ValidationError]:
    # Reported at the missing property's own path, not the enclosing object
    if not validator.is_type(instance, "object") or not isinstance(required, list):
        return
    for name in required:
        if isinstance(name, str) and name not in instance:
            yield ValidationError(f"{name!r} is a required property", path=[name])


DialectValidator = validators.create(
    meta_schema=DIALECT_META_SCHEMA,
    validators={
        **{
            keyword: _DRAFT7[keyword]
            for keyword in (
                "type",
                "minLength",
                "maxLength",
                "format",
                "minimum",
                "maximum",
                "items",
                "minItems",
                "maxItems",
                "properties",
            )
        },
        "pattern": _pattern,
        "enum": _enum,
        "required": _required,
    },
    type_checker=Draft7Validator.TYPE_CHECKER,
)

_META_VALIDATOR = Draft7Validator(DIALECT_META_SCHEMA, format_checker=META_FORMATS)


# ---------------------------------------------------------------------------
# Schema well-formedness
# ---------------------------------------------------------------------------


def validate_schema_definition(schema: Any) -> list[SchemaError]:  # noqa: ANN401
    """Check that ``schema`` is a structurally valid schema of the dialect."""
    return [SchemaError.from_validation_error(e) for e in _META_VALIDATOR.iter_errors(schema)]


def parse_schema(text: str) -> dict[str, Any]:
    """Parse a schema string and check it is well-formed.

    Raises:
        ValidationFailed: If the text is not JSON or not a valid schema.
    """
    try:
        schema = loads_strict(text)
    except ValueError as e:
        raise ValidationFailed(INVALID_JSON, field="json_data") from e
    return check_schema(schema)


def check_schema(schema: Any) -> dict[str, Any]:  # noqa: ANN401
    """Return an already-parsed schema if it is well-formed, else raise ``ValidationFailed``."""
    errors = validate_schema_definition(schema)
    if errors:
        raise ValidationFailed(
            "Invalid JSON schema",
            details="; ".join(str(e) for e in errors),
            field="json_data",
            schema_errors=errors,
        )
    return schema


# ---------------------------------------------------------------------------
# Document against schema
# ---------------------------------------------------------------------------


def validate_document(document: Any, schema: dict[str, Any]) -> list[SchemaError]:  # noqa: ANN401
    """Validate a parsed JSON value against a schema. Returns every failure found."""
    validator = DialectValidator(schema, format_checker=DOCUMENT_FORMATS)
    return [SchemaError.from_validation_error(e) for e in validator.iter_errors(document)]


def check_document(document: Any, schema: dict[str, Any]) -> Any:  # noqa: ANN401
    """Return ``document`` if it satisfies ``schema``.

    Raises:
        ValidationFailed: ``Invalid JSON data`` with every failure in ``schema_errors``.
    """
    errors = validate_document(document, schema)
    if errors:
        raise ValidationFailed(
            "Invalid JSON data",
            details="; ".join(str(e) for e in errors),
            field="json_data",
            schema_errors=errors,
        )
    return document
