"""Provider-agnostic transport interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from objective_query.types import ChatCompletionRequestConfig, ChatResponse, Message


class BaseProvider(ABC):
    """Abstract base class for chat completion transports."""

    name: str

    @abstractmethod
    async def chat(
        self,
        config: ChatCompletionRequestConfig,
        messages: list[Message],
    ) -> ChatResponse:
        """Execute an async chat completion request."""
        raise NotImplementedError

    @abstractmethod
    async def list_query_models(self) -> list[str]:
        """Return the model identifiers a request may target."""
        raise NotImplementedError
