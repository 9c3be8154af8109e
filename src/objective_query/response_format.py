"""Resolve user response-format choices into an immutable ResponseFormat."""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from typing import Any, assert_never

from pydantic import ValidationError

from objective_query.errors import ConfigError
from objective_query.types import (
    JsonObjectFormat,
    JsonSchemaFormat,
    JsonSchemaSpec,
    ResponseFormat,
    ResponseFormatOptions,
    TextFormat,
)

DEFAULT_SCHEMA_NAME = "Response"

_FALLBACK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "response": {"type": "string"},
    },
    "required": ["response"],
    "additionalProperties": False,
}


def fallback_schema() -> dict[str, Any]:
    """Return a fresh copy of the schema used when none is supplied."""
    return copy.deepcopy(_FALLBACK_SCHEMA)


def load_schema(text: str) -> dict[str, Any]:
    """Parse a JSON-Schema document from its serialized form."""
    try:
        schema = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Schema is not valid JSON: {exc}", field="schema") from exc
    if not isinstance(schema, dict):
        raise ConfigError("Schema must be a JSON object.", field="schema")
    return schema


def resolve_response_format(
    options: ResponseFormatOptions | Mapping[str, Any] | None,
) -> ResponseFormat:
    """Map user-chosen options onto a ResponseFormat variant.

    An absent kind means plain text. For ``json_schema`` the name falls back
    to ``"Response"``, an empty description is treated as no description,
    a missing schema is replaced by a single ``response`` string field and
    ``strict`` is always set.
    """

    opts = _coerce_options(options)
    kind = opts.kind or "text"

    if kind == "text":
        return TextFormat()
    if kind == "json_object":
        return JsonObjectFormat()
    if kind == "json_schema":
        return JsonSchemaFormat(
            json_schema=JsonSchemaSpec(
                name=opts.name or DEFAULT_SCHEMA_NAME,
                description=opts.description or None,
                schema=_resolve_schema(opts.schema_),
                strict=True,
            )
        )
    raise ConfigError(f"Unknown response format '{kind}'.", field="kind")


def serialize_response_format(fmt: ResponseFormat) -> dict[str, Any]:
    """Render a ResponseFormat as the ``response_format`` request field."""

    if isinstance(fmt, TextFormat):
        return {"type": "text"}
    if isinstance(fmt, JsonObjectFormat):
        return {"type": "json_object"}
    if isinstance(fmt, JsonSchemaFormat):
        spec = fmt.json_schema
        json_schema: dict[str, Any] = {"name": spec.name}
        if spec.description is not None:
            json_schema["description"] = spec.description
        json_schema["strict"] = spec.strict
        json_schema["schema"] = copy.deepcopy(spec.schema_)
        return {"type": "json_schema", "json_schema": json_schema}
    assert_never(fmt)


def _coerce_options(
    options: ResponseFormatOptions | Mapping[str, Any] | None,
) -> ResponseFormatOptions:
    if options is None:
        return ResponseFormatOptions()
    if isinstance(options, ResponseFormatOptions):
        return options
    try:
        return ResponseFormatOptions.model_validate(dict(options))
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or None
        raise ConfigError(first["msg"], field=field) from exc


def _resolve_schema(schema: dict[str, Any] | str | None) -> dict[str, Any]:
    if schema is None:
        return fallback_schema()
    if isinstance(schema, str):
        if not schema.strip():
            return fallback_schema()
        return load_schema(schema)
    return copy.deepcopy(schema)
