"""Gemini Text-Generation Adapter.

This adapter implements TextGenerationPort against the Gemini
``generateContent`` REST endpoint using httpx.

Security Impact:
    - The API key is unwrapped from its SecretStr only to build the request
      URL and is never logged
    - Prompt and response text are never logged; only status and counts

Architecture:
    - Implements TextGenerationPort (Hexagonal Architecture)
    - A cancellation signal races the HTTP request; when it fires first the
      request is abandoned and ``OperationCancelledError`` is raised
    - Non-2xx responses raise ``TextGenerationError`` carrying the status code
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from wound_intake.domain.ports import (
    GenerationRequest,
    GenerationResult,
    OperationCancelledError,
    TextGenerationError,
    TextGenerationPort,
    raise_if_aborted,
)
from wound_intake.infrastructure.config_manager import LlmConfig

logger = logging.getLogger(__name__)

SAFETY_THRESHOLDS = {"BLOCK_NONE", "BLOCK_ONLY_HIGH", "BLOCK_MEDIUM_AND_ABOVE", "BLOCK_LOW_AND_ABOVE"}
SAFETY_CATEGORIES = ("HARM_CATEGORY_DEROGATORY", "HARM_CATEGORY_MEDICAL", "HARM_CATEGORY_MEDICAL_ADVICE")


def extract_primary_text(payload: Any) -> str:
    """Join the text parts of the first candidate ("" when there are none)."""
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    primary = candidates[0]
    if not isinstance(primary, dict):
        return ""
    content = primary.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [part.get("text") for part in parts if isinstance(part, dict)]
    return "".join(text for text in texts if isinstance(text, str)).strip()


class GeminiClient(TextGenerationPort):
    """Text generator backed by the Gemini REST API.

    Parameters:
        config: LlmConfig with API key, model and default generation settings
        safety_setting: Optional threshold applied to the medical safety categories
        client: Optional shared ``httpx.AsyncClient`` (a fresh one is used per
            request when omitted)

    Raises:
        ValueError: If no API key is configured

    Example Usage:
        ```python
        generator = GeminiClient(config_manager.llm)
        result = await generator.generate(GenerationRequest(input="Hello"))
        print(result.text)
        ```
    """

    def __init__(
        self,
        config: LlmConfig,
        safety_setting: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not config.enabled:
            raise ValueError("Gemini API key is required. Set GEMINI_API_KEY.")
        if safety_setting is not None and safety_setting not in SAFETY_THRESHOLDS:
            raise ValueError(f"Unsupported safety setting: {safety_setting}")
        self.config = config
        self.safety_setting = safety_setting
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.config.api_base_url.rstrip('/')}/{self.config.model}:generateContent"

    def build_body(self, request: GenerationRequest) -> dict:
        """Build the ``generateContent`` request body.

        Raises:
            TextGenerationError: If the request has neither messages nor input
        """
        messages = [{"role": message.role, "content": message.content} for message in request.messages]
        if request.input and request.input.strip():
            messages.append({"role": "user", "content": request.input.strip()})
        if not messages:
            raise TextGenerationError("Text generation requires at least one message or input text")

        generation_config: dict[str, Any] = {
            "temperature": request.temperature if request.temperature is not None else self.config.temperature,
            "maxOutputTokens": request.max_output_tokens or self.config.max_output_tokens,
            "topP": self.config.top_p,
            "topK": self.config.top_k,
        }
        if request.stop_sequences:
            generation_config["stopSequences"] = list(request.stop_sequences)

        body: dict[str, Any] = {
            "contents": [
                {"role": message["role"], "parts": [{"text": message["content"]}]}
                for message in messages
            ],
            "generationConfig": generation_config,
        }

        system_instruction = (request.system_prompt or "").strip()
        if system_instruction:
            body["systemInstruction"] = {"role": "system", "parts": [{"text": system_instruction}]}

        if self.safety_setting:
            body["safetySettings"] = [
                {"category": category, "threshold": self.safety_setting} for category in SAFETY_CATEGORIES
            ]
        return body

    async def _post(self, body: dict) -> httpx.Response:
        params = {"key": self.config.api_key.get_secret_value()}
        if self._client is not None:
            return await self._client.post(self.endpoint, params=params, json=body)
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.post(self.endpoint, params=params, json=body)

    async def _post_with_signal(self, body: dict, signal: Optional[asyncio.Event]) -> httpx.Response:
        if signal is None:
            return await self._post(body)

        request_task = asyncio.ensure_future(self._post(body))
        abort_task = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            abort_task.cancel()
            if not request_task.done():
                request_task.cancel()
                # Outer cancellation lands here too; the request must not outlive it
                await asyncio.gather(request_task, return_exceptions=True)
                logger.info("Gemini request abandoned after cancellation")
        if request_task.cancelled():
            raise OperationCancelledError()
        return request_task.result()

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        raise_if_aborted(request.signal)
        body = self.build_body(request)

        try:
            response = await self._post_with_signal(body, request.signal)
        except httpx.HTTPError as e:
            logger.error(f"Gemini request failed: {type(e).__name__}")
            raise TextGenerationError(f"Gemini request failed: {type(e).__name__}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"Gemini request failed with status {response.status_code}")
            raise TextGenerationError(
                f"Gemini request failed with status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TextGenerationError("Gemini response was not valid JSON", status_code=response.status_code) from e

        text = extract_primary_text(payload)
        candidates = payload.get("candidates") if isinstance(payload, dict) else None
        logger.info(
            f"Gemini response received (has_text={bool(text)}, "
            f"candidates={len(candidates) if isinstance(candidates, list) else 0})"
        )
        return GenerationResult(text=text, raw=payload)
