"""Schema validation capability used by the output parsers.

Validators follow an envelope calling convention: the document to check is
expected under a single top-level ``output`` key, and ``schema`` describes
that inner value only. ``JsonSchemaValidator`` also tries to recover JSON
from replies that wrap it in prose or markdown code fences.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Protocol

from jsonschema.exceptions import ValidationError as _SchemaValidationError
from jsonschema.validators import validator_for

from objective_query.errors import SchemaValidationError

logger = logging.getLogger(__name__)

ENVELOPE_KEY = "output"

_CODE_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


class SchemaValidator(Protocol):
    """Validates completion text against a JSON schema."""

    async def validate(self, schema: dict[str, Any], text: str) -> Any:
        """Return the validated document or raise on irrecoverable mismatch."""
        ...


def envelope_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Wrap ``schema`` as the single required ``output`` property."""
    return {
        "type": "object",
        "properties": {ENVELOPE_KEY: schema},
        "required": [ENVELOPE_KEY],
        "additionalProperties": False,
    }


class JsonSchemaValidator:
    """Default validator backed by ``jsonschema``."""

    async def validate(self, schema: dict[str, Any], text: str) -> Any:
        document, recovered = self._decode(text)

        if isinstance(document, dict) and ENVELOPE_KEY in document:
            try:
                self._check(document, envelope_schema(schema))
            except SchemaValidationError:
                # a recovered fragment may be a bare value whose schema declares "output"
                if not recovered:
                    raise
                logger.debug("Envelope check failed, retrying fragment against inner schema")
                self._check(document, schema)
                # re-wrap so unwrapping yields the fragment itself
                return {ENVELOPE_KEY: document}
            return document

        # Repaired fragments rarely carry the envelope; check the bare value.
        logger.debug("Validating document without %r envelope", ENVELOPE_KEY)
        self._check(document, schema)
        return document

    def _decode(self, text: str) -> tuple[Any, bool]:
        try:
            return json.loads(text), False
        except json.JSONDecodeError:
            pass

        for match in _CODE_FENCE.findall(text):
            try:
                document = json.loads(match.strip())
            except json.JSONDecodeError:
                continue
            logger.debug("Recovered JSON document from code fence")
            return document, True

        decoder = json.JSONDecoder()
        for index, char in enumerate(text):
            if char not in "{[":
                continue
            try:
                document, _ = decoder.raw_decode(text, index)
            except json.JSONDecodeError:
                continue
            logger.debug("Recovered JSON fragment at offset %d", index)
            return document, True

        raise SchemaValidationError("No JSON document found in model output.")

    @staticmethod
    def _check(document: Any, schema: dict[str, Any]) -> None:
        validator_cls = validator_for(schema)
        validator = validator_cls(schema)
        try:
            validator.validate(document)
        except _SchemaValidationError as exc:
            raise SchemaValidationError(exc.message, path=exc.json_path) from exc
