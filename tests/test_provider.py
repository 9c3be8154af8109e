import asyncio
import json
import os
import unittest
from unittest import mock

import httpx

from objective_query.client import QueryModel
from objective_query.errors import ConfigError, ProviderError
from objective_query.providers.objectiveai import ObjectiveAIProvider
from objective_query.request import build_request_config
from objective_query.settings import DEFAULT_BASE_URL, Credentials
from objective_query.types import Message

CREDENTIALS = Credentials(api_key="test-key", base_url="https://api.test")


def _completion(*contents: str) -> dict:
    return {
        "model": "query-model-1",
        "choices": [{"index": i, "message": {"role": "assistant", "content": c}} for i, c in enumerate(contents)],
    }


class RecordingHandler:
    def __init__(self, responses: list[httpx.Response | Exception]) -> None:
        self.requests: list[httpx.Request] = []
        self._responses = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _provider(handler: RecordingHandler) -> ObjectiveAIProvider:
    return ObjectiveAIProvider(CREDENTIALS, backoff_s=0.0, transport=httpx.MockTransport(handler))


async def _chat(provider: ObjectiveAIProvider, **options):
    config = build_request_config("query-model-1", options)
    async with provider:
        return await provider.chat(config, [Message(role="user", content="hi")])


class ObjectiveAIProviderTests(unittest.TestCase):
    def test_chat_sends_payload_without_seed(self) -> None:
        handler = RecordingHandler([httpx.Response(200, json=_completion("a", "b"))])
        response = asyncio.run(_chat(_provider(handler), n=2))

        request = handler.requests[0]
        self.assertEqual(request.url, "https://api.test/chat/completions")
        self.assertEqual(request.headers["Authorization"], "Bearer test-key")
        body = json.loads(request.content)
        self.assertNotIn("seed", body)
        self.assertEqual(body["n"], 2)
        self.assertEqual(body["response_format"], {"type": "text"})
        self.assertEqual(body["messages"], [{"role": "user", "content": "hi"}])
        self.assertEqual(response.text, "a")
        self.assertEqual(response.texts, ["a", "b"])

    def test_chat_sends_seed_when_given(self) -> None:
        handler = RecordingHandler([httpx.Response(200, json=_completion("a"))])
        asyncio.run(_chat(_provider(handler), seed=7))
        self.assertEqual(json.loads(handler.requests[0].content)["seed"], 7)

    def test_chat_retries_server_errors(self) -> None:
        handler = RecordingHandler(
            [
                httpx.Response(503, text="busy"),
                httpx.ConnectError("reset"),
                httpx.Response(200, json=_completion("ok")),
            ]
        )
        response = asyncio.run(_chat(_provider(handler), max_retries=2))
        self.assertEqual(response.text, "ok")
        self.assertEqual(len(handler.requests), 3)

    def test_chat_gives_up_after_max_retries(self) -> None:
        handler = RecordingHandler([httpx.Response(500, text="boom"), httpx.Response(500, text="boom")])
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(_chat(_provider(handler), max_retries=1))
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(len(handler.requests), 2)

    def test_chat_does_not_retry_client_errors(self) -> None:
        handler = RecordingHandler([httpx.Response(400, text="bad request")])
        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(_chat(_provider(handler), max_retries=3))
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(len(handler.requests), 1)

    def test_chat_retries_timeout_and_rate_limit_statuses(self) -> None:
        for status in (408, 429):
            with self.subTest(status=status):
                handler = RecordingHandler(
                    [httpx.Response(status, text="later"), httpx.Response(200, json=_completion("ok"))]
                )
                response = asyncio.run(_chat(_provider(handler), max_retries=1))
                self.assertEqual(response.text, "ok")
                self.assertEqual(len(handler.requests), 2)

    def test_chat_applies_timeout_in_seconds(self) -> None:
        handler = RecordingHandler([httpx.Response(200, json=_completion("a"))])
        asyncio.run(_chat(_provider(handler), timeout_ms=1500))
        self.assertEqual(handler.requests[0].extensions["timeout"]["read"], 1.5)
        self.assertEqual(handler.requests[0].extensions["timeout"]["connect"], 1.5)

    def test_zero_timeout_disables_timeout(self) -> None:
        handler = RecordingHandler([httpx.Response(200, json=_completion("a"))])
        asyncio.run(_chat(_provider(handler), timeout_ms=0))
        self.assertIsNone(handler.requests[0].extensions["timeout"]["read"])

    def test_chat_rejects_config_that_bypassed_validation(self) -> None:
        handler = RecordingHandler([])
        config = build_request_config("query-model-1").model_copy(update={"max_retries": -3})

        async def run():
            async with _provider(handler) as provider:
                return await provider.chat(config, [Message(role="user", content="hi")])

        with self.assertRaises(ConfigError) as ctx:
            asyncio.run(run())
        self.assertEqual(ctx.exception.field, "max_retries")
        self.assertEqual(handler.requests, [])

    def test_transport_error_surfaces_as_provider_error(self) -> None:
        handler = RecordingHandler([httpx.ConnectError("down")])
        with self.assertRaises(ProviderError):
            asyncio.run(_chat(_provider(handler), max_retries=0))

    def test_list_query_models(self) -> None:
        handler = RecordingHandler([httpx.Response(200, json={"data": ["alpha", "beta"]})])

        async def run() -> list[str]:
            async with _provider(handler) as provider:
                return await provider.list_query_models()

        self.assertEqual(asyncio.run(run()), ["alpha", "beta"])
        self.assertEqual(handler.requests[0].url.path, "/query_models")

    def test_check_credentials_rejects_bad_key(self) -> None:
        handler = RecordingHandler([httpx.Response(401, text="unauthorized")])

        async def run() -> dict:
            async with _provider(handler) as provider:
                return await provider.check_credentials()

        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(run())
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(handler.requests[0].url.path, "/auth/credits")

    def test_query_model_invokes_provider(self) -> None:
        handler = RecordingHandler([httpx.Response(200, json=_completion('{"response": "hi"}'))])
        config = build_request_config("query-model-1", {"response_format": {"kind": "json_schema"}})

        async def run():
            async with _provider(handler) as provider:
                return await QueryModel(config, provider).invoke([Message(role="user", content="hi")])

        response = asyncio.run(run())
        self.assertEqual(response.text, '{"response": "hi"}')
        body = json.loads(handler.requests[0].content)
        self.assertEqual(body["response_format"]["type"], "json_schema")


class CredentialsTests(unittest.TestCase):
    def test_from_env(self) -> None:
        with mock.patch.dict(os.environ, {"OBJECTIVEAI_API_KEY": "k"}, clear=True):
            credentials = Credentials.from_env()
        self.assertEqual(credentials.api_key, "k")
        self.assertEqual(credentials.base_url, DEFAULT_BASE_URL)

    def test_from_env_requires_key(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigError) as ctx:
                Credentials.from_env()
        self.assertEqual(ctx.exception.field, "api_key")

    def test_api_key_hidden_from_repr(self) -> None:
        self.assertNotIn("test-key", repr(CREDENTIALS))


if __name__ == "__main__":
    unittest.main()
