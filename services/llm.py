# services/llm.py
"""
JSON-constrained chat completions against Gemini.

Everything above this module talks to the `LLMClient` protocol, so the
pipeline can be driven by `GeminiClient` in production and by a
scripted double in tests.

Failure mapping:
    no API key              → ConfigurationError (raised before any I/O)
    provider / network fail → TransportError
    reply not a JSON object → ParseError
"""
from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from typing import Any, Dict, Protocol

import httpx
from google import genai
from google.genai import errors as gerrors
from google.genai import types

from config import settings
from core.errors import ConfigurationError, ParseError, TransportError

_LOG = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


class LLMClient(Protocol):
    def ensure_configured(self) -> None: ...

    async def complete_json(
        self,
        *,
        system: str,
        prompt: str,
        temperature: float = 0.3,
        max_output_tokens: int = 2500,
    ) -> Dict[str, Any]: ...


def extract_json(raw: str | dict | None) -> Dict[str, Any]:
    """Parse a model reply into a JSON object, tolerating ``` fences."""
    if isinstance(raw, dict):
        return raw
    if not raw or not raw.strip():
        raise ParseError("empty LLM response")
    text = _FENCE.sub("", raw.strip()).strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"LLM response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"expected a JSON object, got {type(data).__name__}")
    return data


def _is_rate_limited(exc: gerrors.APIError) -> bool:
    return getattr(exc, "code", None) == 429 or getattr(exc, "status", None) == "RESOURCE_EXHAUSTED"


# ───────────── Gemini implementation ─────────────
class GeminiClient:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_retries: int | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.gemini_api_key
        self._model = model or settings.llm_chat_model
        self._max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self._client: genai.Client | None = None

    def ensure_configured(self) -> None:
        if not self._api_key:
            raise ConfigurationError("GEMINI_API_KEY not set in environment")

    def _get_client(self) -> genai.Client:
        self.ensure_configured()
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def complete_json(
        self,
        *,
        system: str,
        prompt: str,
        temperature: float = 0.3,
        max_output_tokens: int = 2500,
    ) -> Dict[str, Any]:
        client = self._get_client()
        config = types.GenerateContentConfig(
            system_instruction=system,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json",
        )
        attempt = 0
        while True:
            try:
                resp = await client.aio.models.generate_content(
                    model=self._model, contents=[prompt], config=config
                )
                break
            except gerrors.APIError as exc:
                if _is_rate_limited(exc) and attempt < self._max_retries:
                    backoff = (2 ** attempt) + random.random()
                    _LOG.warning("LLM rate limited, retrying in %.1fs", backoff)
                    attempt += 1
                    await asyncio.sleep(backoff)
                    continue
                raise TransportError(f"LLM call failed: {exc}") from exc
            except httpx.HTTPError as exc:
                raise TransportError(f"LLM call failed: {exc}") from exc

        return extract_json(resp.text)
