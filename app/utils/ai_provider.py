"""
AI Provider
Adapter around the optional Gemini text-generation service.

Everything the rest of the app sees from a provider is a ``ProviderText``;
raw SDK responses never leave this module.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Optional

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base class for failures on the optional provider path."""


class ProviderUnavailableError(ProviderError):
    """No API key was configured or the client could not be constructed."""


class ProviderCallError(ProviderError):
    """The generation request itself failed (network, quota, bad request...)."""


@dataclass(frozen=True)
class ProviderText:
    text: str


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _response_text_call(result: Any) -> Optional[str]:
    text = _field(_field(result, "response"), "text")
    if callable(text):
        value = text()
        if isinstance(value, str):
            return value
    return None


def _response_text_field(result: Any) -> Optional[str]:
    text = _field(_field(result, "response"), "text")
    return text if isinstance(text, str) else None


def _top_level_text(result: Any) -> Optional[str]:
    text = _field(result, "text")
    return text if isinstance(text, str) else None


# Tried in order, first match wins. Anything else gets serialized whole.
# A text accessor that yields a non-string counts as no match.
TEXT_STRATEGIES: tuple[Callable[[Any], Optional[str]], ...] = (
    _response_text_call,
    _response_text_field,
    _top_level_text,
)


def serialize_result(result: Any) -> str:
    try:
        if hasattr(result, "model_dump_json"):
            return result.model_dump_json()
        return json.dumps(result, default=str)
    except Exception:
        return str(result)


def safe_extract_text(result: Any) -> str:
    """
    Pull the generated text out of a provider result whose shape is not
    trusted. Returns "" for an empty result.
    """
    if result is None:
        return ""

    try:
        for strategy in TEXT_STRATEGIES:
            text = strategy(result)
            if text is not None:
                return text
    except Exception as e:
        logger.warning(f"Failed to extract text from AI result: {str(e)}")
        return serialize_result(result)

    logger.debug(f"No text field on AI result of type {type(result).__name__}, serializing it")
    return serialize_result(result)


class TextProvider:
    """Interface for text-generation backends."""

    name = "provider"
    available = True

    async def generate(self, prompt: str, *, model: str, json_output: bool = False) -> ProviderText:
        raise NotImplementedError


class AbsentProvider(TextProvider):
    """Stands in for a provider that could not be set up at startup."""

    name = "absent"
    available = False

    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def generate(self, prompt: str, *, model: str, json_output: bool = False) -> ProviderText:
        raise ProviderUnavailableError(self.reason)


class GeminiProvider(TextProvider):
    name = "gemini"

    def __init__(self, client: genai.Client) -> None:
        self._client = client

    async def generate(self, prompt: str, *, model: str, json_output: bool = False) -> ProviderText:
        # One attempt only; the caller falls back instead of retrying.
        config = types.GenerateContentConfig(response_mime_type="application/json") if json_output else None
        try:
            result = await self._client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            raise ProviderCallError(f"Gemini request to {model} failed: {str(e)}") from e
        return ProviderText(text=safe_extract_text(result))


def build_provider(
    api_key: Optional[str],
    client_factory: Callable[..., Any] = genai.Client,
) -> TextProvider:
    """
    Build the provider once at startup. Never raises: a missing key or a
    client that fails to construct yields an ``AbsentProvider``.
    """
    if not api_key:
        logger.warning("GEMINI_API_KEY not set. AI endpoints will use deterministic fallbacks.")
        return AbsentProvider("GEMINI_API_KEY not set")

    try:
        client = client_factory(api_key=api_key)
    except Exception as e:
        logger.warning(f"Failed to initialize Gemini client: {str(e)}")
        return AbsentProvider(f"Gemini client initialization failed: {str(e)}")

    logger.info("Gemini provider initialized")
    return GeminiProvider(client)
