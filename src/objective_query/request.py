"""Build and serialize outbound chat completion request configs."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from objective_query.errors import ConfigError
from objective_query.response_format import resolve_response_format, serialize_response_format
from objective_query.types import (
    ChatCompletionRequestConfig,
    RequestOptions,
    ResponseFormat,
    ResponseFormatOptions,
    TextFormat,
)

logger = logging.getLogger(__name__)


def build_request_config(
    model_id: str,
    options: RequestOptions | Mapping[str, Any] | None = None,
) -> ChatCompletionRequestConfig:
    """Validate user options and assemble a fully resolved request config.

    Ranges are checked here even when a host form already enforced them, so
    an inconsistent config never reaches the transport layer.
    """

    if not isinstance(model_id, str) or not model_id.strip():
        raise ConfigError("A model identifier is required.", field="model")

    opts = _coerce_options(options)
    try:
        config = ChatCompletionRequestConfig(
            model=model_id,
            n=opts.n,
            seed=opts.seed,
            response_format=_resolve_format(opts.response_format),
            max_retries=opts.max_retries,
            timeout_ms=opts.timeout_ms,
        )
    except ValidationError as exc:
        raise _config_error(exc) from exc
    logger.debug("Built request config: %s", config)
    return config


def to_request_payload(config: ChatCompletionRequestConfig) -> dict[str, Any]:
    """Return the ``{model, n, seed?, response_format}`` request body."""

    payload: dict[str, Any] = {"model": config.model, "n": config.n}
    # the API treats a missing seed differently from seed=0
    if config.seed is not None:
        payload["seed"] = config.seed
    payload["response_format"] = serialize_response_format(config.response_format)
    return payload


def validate_request_config(config: ChatCompletionRequestConfig) -> ChatCompletionRequestConfig:
    """Re-check a config that may have bypassed validation, e.g. via ``model_copy``."""
    try:
        return ChatCompletionRequestConfig.model_validate(dict(config))
    except ValidationError as exc:
        raise _config_error(exc) from exc


def _coerce_options(options: RequestOptions | Mapping[str, Any] | None) -> RequestOptions:
    if options is None:
        return RequestOptions()
    if isinstance(options, RequestOptions):
        return options
    try:
        return RequestOptions.model_validate(dict(options))
    except ValidationError as exc:
        raise _config_error(exc) from exc


def _config_error(exc: ValidationError) -> ConfigError:
    first = exc.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else None
    return ConfigError(first["msg"], field=field)


def _resolve_format(
    response_format: ResponseFormat | ResponseFormatOptions | None,
) -> ResponseFormat:
    if response_format is None:
        return TextFormat()
    if isinstance(response_format, ResponseFormatOptions):
        return resolve_response_format(response_format)
    return response_format
