"""Tests for the Gemini text-generation adapter.

HTTP traffic is served by ``httpx.MockTransport``; no network access.
"""

import asyncio
import json

import httpx
import pytest

from wound_intake.adapters.llm.gemini_client import GeminiClient, extract_primary_text
from wound_intake.domain.ports import (
    ChatMessage,
    GenerationRequest,
    OperationCancelledError,
    TextGenerationError,
)
from wound_intake.infrastructure.config_manager import LlmConfig


def make_client(handler, safety_setting=None) -> GeminiClient:
    transport = httpx.MockTransport(handler)
    return GeminiClient(
        LlmConfig(api_key="test-key", model="models/test-model", api_base_url="https://llm.test/v1beta/"),
        safety_setting=safety_setting,
        client=httpx.AsyncClient(transport=transport),
    )


def candidate_response(*texts: str) -> httpx.Response:
    return httpx.Response(200, json={
        "candidates": [{"content": {"parts": [{"text": text} for text in texts]}}],
    })


class TestExtractPrimaryText:
    """Test suite for response text extraction."""

    def test_joins_first_candidate_parts(self):
        payload = {"candidates": [
            {"content": {"parts": [{"text": " Hello"}, {"inlineData": {}}, {"text": " world "}]}},
            {"content": {"parts": [{"text": "ignored"}]}},
        ]}
        assert extract_primary_text(payload) == "Hello world"

    @pytest.mark.parametrize("payload", [None, [], {}, {"candidates": []}, {"candidates": [{"content": "x"}]}])
    def test_malformed_payloads(self, payload):
        assert extract_primary_text(payload) == ""


class TestGeminiClient:
    """Test suite for GeminiClient."""

    def test_requires_api_key(self):
        """Construction fails without an API key."""
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiClient(LlmConfig())

    def test_rejects_unknown_safety_setting(self):
        with pytest.raises(ValueError):
            GeminiClient(LlmConfig(api_key="k"), safety_setting="BLOCK_EVERYTHING")

    def test_build_body(self):
        """Messages, input, system prompt and safety settings map to the REST body."""
        client = make_client(lambda request: candidate_response("x"), safety_setting="BLOCK_ONLY_HIGH")
        body = client.build_body(GenerationRequest(
            system_prompt=" Be brief. ",
            messages=(ChatMessage(role="model", content="Hi"),),
            input=" Extract this ",
            temperature=0.0,
            stop_sequences=("END",),
        ))

        assert body["contents"] == [
            {"role": "model", "parts": [{"text": "Hi"}]},
            {"role": "user", "parts": [{"text": "Extract this"}]},
        ]
        assert body["generationConfig"] == {
            "temperature": 0.0,
            "maxOutputTokens": 1024,
            "topP": 0.8,
            "topK": 40,
            "stopSequences": ["END"],
        }
        assert body["systemInstruction"]["parts"] == [{"text": "Be brief."}]
        assert {setting["threshold"] for setting in body["safetySettings"]} == {"BLOCK_ONLY_HIGH"}

    def test_build_body_requires_content(self):
        client = make_client(lambda request: candidate_response("x"))
        with pytest.raises(TextGenerationError):
            client.build_body(GenerationRequest(input="   "))

    @pytest.mark.asyncio
    async def test_generate_success(self):
        """The request hits the model endpoint with the key as a query parameter."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = request.url
            seen["body"] = json.loads(request.content)
            return candidate_response("Ada ", "Lovelace")

        result = await make_client(handler).generate(GenerationRequest(input="Who?"))

        assert result.text == "Ada Lovelace"
        assert seen["url"].path == "/v1beta/models/test-model:generateContent"
        assert seen["url"].params["key"] == "test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "Who?"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_status(self):
        client = make_client(lambda request: httpx.Response(503, json={"error": "unavailable"}))
        with pytest.raises(TextGenerationError) as exc_info:
            await client.generate(GenerationRequest(input="Who?"))
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self):
        client = make_client(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(TextGenerationError, match="not valid JSON"):
            await client.generate(GenerationRequest(input="Who?"))

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TextGenerationError, match="ConnectError"):
            await make_client(handler).generate(GenerationRequest(input="Who?"))

    @pytest.mark.asyncio
    async def test_already_aborted_never_sends(self):
        calls = []
        client = make_client(lambda request: calls.append(request) or candidate_response("x"))
        signal = asyncio.Event()
        signal.set()

        with pytest.raises(OperationCancelledError):
            await client.generate(GenerationRequest(input="Who?", signal=signal))
        assert calls == []

    @pytest.mark.asyncio
    async def test_abort_during_request(self):
        """Setting the signal mid-request abandons it."""
        signal = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            signal.set()
            await asyncio.sleep(5)
            return candidate_response("too late")

        with pytest.raises(OperationCancelledError):
            await make_client(handler).generate(GenerationRequest(input="Who?", signal=signal))

    @pytest.mark.asyncio
    async def test_outer_cancellation_cancels_request(self):
        """Cancelling the caller's task also cancels the in-flight request."""
        started = asyncio.Event()
        request_cancelled = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                request_cancelled.set()
                raise
            return candidate_response("too late")

        client = make_client(handler)
        task = asyncio.ensure_future(client.generate(GenerationRequest(input="Who?", signal=asyncio.Event())))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert request_cancelled.is_set()
