"""Request, response-format and parse-result models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from objective_query.errors import ParseError

ResponseFormatKind = Literal["text", "json_object", "json_schema"]


class TextFormat(BaseModel):
    """Free text completion, no structure expected."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"


class JsonObjectFormat(BaseModel):
    """Any syntactically valid JSON object."""

    model_config = ConfigDict(frozen=True)

    type: Literal["json_object"] = "json_object"


class JsonSchemaSpec(BaseModel):
    """Named JSON-Schema document the completion must adhere to."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    description: str | None = None
    # "schema" would shadow BaseModel.schema()
    schema_: dict[str, Any] = Field(alias="schema")
    strict: bool = True


class JsonSchemaFormat(BaseModel):
    """JSON constrained by a user-declared schema."""

    model_config = ConfigDict(frozen=True)

    type: Literal["json_schema"] = "json_schema"
    json_schema: JsonSchemaSpec


ResponseFormat = Annotated[
    Union[TextFormat, JsonObjectFormat, JsonSchemaFormat],
    Field(discriminator="type"),
]


def _reject_bool(value: Any) -> Any:
    # bool is an int subclass; True would silently become n=1 or seed=1
    if isinstance(value, bool):
        raise ValueError("must be an integer, not a boolean")
    return value


class ResponseFormatOptions(BaseModel):
    """Response format as chosen by a user, before resolution.

    ``schema`` may be structured data or its JSON text, as hosts often
    hand over the raw contents of a form field.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    kind: ResponseFormatKind | None = None
    name: str | None = None
    description: str | None = None
    schema_: dict[str, Any] | str | None = Field(default=None, alias="schema")


class RequestOptions(BaseModel):
    """User-facing request options, validated by the request builder."""

    model_config = ConfigDict(extra="forbid")

    n: int = 1
    seed: int | None = None
    max_retries: int = 2
    timeout_ms: int = 300_000
    response_format: ResponseFormat | ResponseFormatOptions | None = None

    @field_validator("n", "seed", "max_retries", "timeout_ms", mode="before")
    @classmethod
    def check_not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)


class ChatCompletionRequestConfig(BaseModel):
    """Fully resolved request configuration handed to the transport layer."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(min_length=1)
    n: int = Field(default=1, ge=1)
    seed: int | None = Field(default=None, ge=0)
    response_format: ResponseFormat = Field(default_factory=TextFormat)
    max_retries: int = Field(default=2, ge=0)
    timeout_ms: int = Field(default=300_000, ge=0)

    @field_validator("n", "seed", "max_retries", "timeout_ms", mode="before")
    @classmethod
    def check_not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)


class Message(BaseModel):
    """Single chat message."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatResponse(BaseModel):
    """Simplified chat completion response."""

    model: str
    text: str
    # one entry per returned choice
    texts: list[str] = Field(default_factory=list)
    # provider-specific payload kept for debugging or advanced use
    raw: dict[str, Any]


@dataclass(frozen=True)
class ParseSuccess:
    """Validated value produced from a completion."""

    value: Any
    raw_text: str

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ParseFailure:
    """Completion rejected by the validator."""

    raw_text: str
    error: ParseError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> Any:
        raise self.error


ParseResult = Union[ParseSuccess, ParseFailure]
