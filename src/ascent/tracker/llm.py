"""Gemini text-completion client and JSON extraction from model output."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from ascent.tracker.errors import (
    InvalidApiKeyError,
    InvalidResponseError,
    LLMError,
    RateLimitError,
    SafetyBlockedError,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
API_KEY_PREFIX = "AIza"

SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]

_FENCE_START = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_END = re.compile(r"\n?```\s*$")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 0.7
    max_output_tokens: int = 2048


def is_valid_api_key(key: str) -> bool:
    key = key.strip()
    return len(key) > 0 and key.startswith(API_KEY_PREFIX)


def clean_json_response(text: str) -> str:
    """Strip code fences and surrounding prose from a model reply."""
    json_text = text.strip()
    if "```" in json_text:
        json_text = _FENCE_START.sub("", json_text)
        json_text = _FENCE_END.sub("", json_text)
    json_text = json_text.strip()

    if not json_text.startswith("{"):
        match = _JSON_OBJECT.search(json_text)
        if match:
            json_text = match.group(0)
    return json_text


def parse_json_response(text: str) -> Any:  # noqa: ANN401
    try:
        return json.loads(clean_json_response(text))
    except ValueError as exc:
        raise InvalidResponseError("Model reply was not valid JSON") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        error = response.json().get("error") or {}
        message = error.get("message") or error.get("status") or ""
    except (ValueError, AttributeError):
        return ""
    return f" - {message}" if message else ""


class GeminiClient:
    """Calls ``models/<model>:generateContent`` with a user-supplied API key."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise InvalidApiKeyError("No Gemini API key configured. Run `ascent set-key <key>` first.")
        self.api_key = api_key.strip()
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def generate(self, prompt: str, config: GenerationConfig | None = None) -> str:
        """Return the reply text. Raises an ``LLMError`` subclass on failure."""
        config = config or GenerationConfig()
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": config.max_output_tokens,
            },
            "safetySettings": SAFETY_SETTINGS,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/models/{self.model}:generateContent",
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as exc:
            raise LLMError(f"Could not reach Gemini: {exc}") from exc

        if response.status_code >= 400:
            self._raise_for_status(response)

        try:
            data = response.json()
            candidate = (data.get("candidates") or [{}])[0]
            parts = (candidate.get("content") or {}).get("parts") or [{}]
            text = parts[0].get("text")
        except (ValueError, AttributeError, IndexError, TypeError, KeyError) as exc:
            logger.warning("Gemini returned an unreadable body (HTTP %d)", response.status_code)
            raise InvalidResponseError("Unexpected response from Gemini. Please try again.") from exc
        if text is not None and not isinstance(text, str):
            raise InvalidResponseError("Unexpected response from Gemini. Please try again.")
        if not text:
            if candidate.get("finishReason") == "SAFETY":
                raise SafetyBlockedError("Response blocked by safety filters. Please try again.")
            raise LLMError("No response from Gemini. Please try again.")

        logger.debug("Gemini replied with %d chars", len(text))
        return text

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        detail = _error_detail(response)
        logger.warning("Gemini request failed with HTTP %d%s", status, detail)

        if status == 400:
            raise LLMError(f"Invalid request{detail}")
        if status in (401, 403):
            raise InvalidApiKeyError("Invalid API key. Please check your Gemini API key.")
        if status == 429:
            raise RateLimitError(f"Rate limit exceeded. Please wait a minute before trying again.{detail}")
        if status == 404:
            raise LLMError(f"Model not found{detail}. Ensure '{self.model}' is available.")
        raise LLMError(f"API error ({status}){detail}")
