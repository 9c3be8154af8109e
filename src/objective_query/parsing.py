"""Turn completion text back into values of the declared response format."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, assert_never

from objective_query.client import QueryModel
from objective_query.errors import ConfigError, ParseError
from objective_query.types import (
    JsonObjectFormat,
    JsonSchemaFormat,
    ParseFailure,
    ParseResult,
    ParseSuccess,
    ResponseFormat,
    TextFormat,
)
from objective_query.validation import ENVELOPE_KEY, JsonSchemaValidator, SchemaValidator

logger = logging.getLogger(__name__)

Parser = Callable[[str], Awaitable[ParseResult]]

JSON_OBJECT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {},
    "additionalProperties": True,
}


def make_parser(fmt: ResponseFormat, validator: SchemaValidator) -> Parser:
    """Return an async parser accepting exactly what ``fmt`` declares.

    The returned callable holds no state between calls and may be shared by
    concurrent responses.
    """

    if isinstance(fmt, TextFormat):
        return _parse_text
    if isinstance(fmt, JsonObjectFormat):
        return _json_parser(JSON_OBJECT_SCHEMA, validator)
    if isinstance(fmt, JsonSchemaFormat):
        return _json_parser(fmt.json_schema.schema_, validator)
    assert_never(fmt)


async def _parse_text(text: str) -> ParseResult:
    return ParseSuccess(value=text, raw_text=text)


def _json_parser(schema: dict[str, Any], validator: SchemaValidator) -> Parser:
    async def parse(text: str) -> ParseResult:
        try:
            validated = await validator.validate(schema, _envelope_input(text))
        except Exception as exc:
            logger.debug("Validator rejected model output: %s", exc)
            error = ParseError(text, exc)
            error.__cause__ = exc
            return ParseFailure(raw_text=text, error=error)
        return ParseSuccess(value=_unwrap(validated), raw_text=text)

    return parse


def _envelope_input(text: str) -> str:
    """Pre-wrap well-formed JSON under the envelope key.

    Text that is not JSON is passed through so the validator may still
    recover a document from it.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return text
    return json.dumps({ENVELOPE_KEY: parsed})


def _unwrap(validated: Any) -> Any:
    if isinstance(validated, dict) and ENVELOPE_KEY in validated:
        return validated[ENVELOPE_KEY]
    return validated


class OutputParser:
    """Parser handed to the host alongside a query model."""

    def __init__(self, fmt: ResponseFormat, validator: SchemaValidator) -> None:
        self.response_format = fmt
        self._parse = make_parser(fmt, validator)

    async def parse_result(self, text: str) -> ParseResult:
        """Parse ``text`` without raising on validation failure."""
        return await self._parse(text)

    async def parse(self, text: str) -> Any:
        """Parse ``text``, raising ParseError when it does not validate."""
        result = await self._parse(text)
        return result.unwrap()

    def format_instructions(self) -> str:
        """Describe the expected output for inclusion in a prompt."""
        fmt = self.response_format
        if isinstance(fmt, TextFormat):
            return ""
        if isinstance(fmt, JsonObjectFormat):
            return "Respond with a single JSON object and nothing else."
        if isinstance(fmt, JsonSchemaFormat):
            schema = json.dumps(fmt.json_schema.schema_, indent=2)
            return (
                "Respond with a single JSON value that adheres to the following "
                f"JSON schema and nothing else:\n{schema}"
            )
        assert_never(fmt)


def build_output_parser(model: object, validator: SchemaValidator | None = None) -> OutputParser:
    """Create the output parser matching a connected query model."""

    if not isinstance(model, QueryModel):
        raise ConfigError("The input model must be an Objective AI query model.", field="model")
    return OutputParser(model.response_format, validator or JsonSchemaValidator())
