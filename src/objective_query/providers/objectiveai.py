"""Objective AI provider implementation."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, cast

import httpx

from objective_query.errors import ProviderError
from objective_query.providers.base import BaseProvider
from objective_query.request import to_request_payload, validate_request_config
from objective_query.settings import Credentials
from objective_query.types import ChatCompletionRequestConfig, ChatResponse, Message

_CHAT_PATH = "/chat/completions"
_MODELS_PATH = "/query_models"
_CREDITS_PATH = "/auth/credits"
_RETRYABLE_STATUS = frozenset({408, 429})


class ObjectiveAIProvider(BaseProvider):
    """Minimal async wrapper for Objective AI query completions."""

    name = "objectiveai"
    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        credentials: Credentials,
        *,
        backoff_s: float = 0.5,
        max_backoff_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=credentials.base_url, transport=transport)
        self._headers = {
            "Authorization": f"Bearer {credentials.api_key}",
            "Content-Type": "application/json",
        }
        self._backoff_s = backoff_s
        self._max_backoff_s = max_backoff_s

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> ObjectiveAIProvider:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def list_query_models(self) -> list[str]:
        """Fetch the selectable query model identifiers."""
        response = await self._client.get(_MODELS_PATH, headers=self._headers)
        data = self._json_or_error(response)
        return [str(model) for model in data.get("data", [])]

    async def check_credentials(self) -> dict[str, Any]:
        """Verify the API key by reading the account's credits."""
        response = await self._client.get(_CREDITS_PATH, headers=self._headers)
        return self._json_or_error(response)

    async def chat(
        self,
        config: ChatCompletionRequestConfig,
        messages: list[Message],
    ) -> ChatResponse:
        """Send a completion request, retrying transient failures."""
        config = validate_request_config(config)
        payload = to_request_payload(config)
        payload["messages"] = [self._serialize_message(m) for m in messages]
        # httpx reads a zero timeout as "fail immediately"
        timeout = config.timeout_ms / 1000 if config.timeout_ms else None

        delay = self._backoff_s
        for attempt in range(config.max_retries + 1):
            last_attempt = attempt == config.max_retries
            try:
                response = await self._client.post(
                    _CHAT_PATH,
                    headers=self._headers,
                    json=payload,
                    timeout=timeout,
                )
            except httpx.TransportError as exc:
                if last_attempt:
                    raise ProviderError(self.name, f"transport error: {exc}") from exc
                self._logger.warning(
                    "Transport error on attempt %d/%d: %s",
                    attempt + 1,
                    config.max_retries + 1,
                    exc,
                )
            else:
                if not self._is_retryable(response) or last_attempt:
                    data = self._json_or_error(response)
                    return self._to_chat_response(config.model, data)
                self._logger.warning(
                    "Retryable status %d on attempt %d/%d",
                    response.status_code,
                    attempt + 1,
                    config.max_retries + 1,
                )

            await asyncio.sleep(min(self._max_backoff_s, delay) * (0.7 + random.random() * 0.6))
            delay *= 2

        raise RuntimeError("retry loop exited without a response")

    @staticmethod
    def _is_retryable(response: httpx.Response) -> bool:
        return response.status_code in _RETRYABLE_STATUS or response.status_code >= 500

    @staticmethod
    def _serialize_message(message: Message) -> dict[str, Any]:
        return {"role": message.role, "content": message.content}

    @staticmethod
    def _to_chat_response(model: str, data: dict[str, Any]) -> ChatResponse:
        texts = [
            (choice.get("message") or {}).get("content") or ""
            for choice in data.get("choices", [])
        ]
        return ChatResponse(
            model=data.get("model") or model,
            text=texts[0] if texts else "",
            texts=texts,
            raw=data,
        )

    @staticmethod
    def _json_or_error(response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise ProviderError(
                "objectiveai",
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())
