"""Query model handed to a host chain."""

from __future__ import annotations

from objective_query.providers.base import BaseProvider
from objective_query.types import (
    ChatCompletionRequestConfig,
    ChatResponse,
    Message,
    ResponseFormat,
)


class QueryModel:
    """Binds a resolved request config to the provider that executes it."""

    def __init__(self, config: ChatCompletionRequestConfig, provider: BaseProvider) -> None:
        self._config = config
        self._provider = provider

    @property
    def config(self) -> ChatCompletionRequestConfig:
        return self._config

    @property
    def response_format(self) -> ResponseFormat:
        """Format declared to the API, shared with the output parser."""
        return self._config.response_format

    async def invoke(self, messages: list[Message]) -> ChatResponse:
        """Execute the configured completion request."""
        return await self._provider.chat(self._config, messages)
