import asyncio
import json
from types import SimpleNamespace

import pytest

from app.utils.ai_provider import (
    AbsentProvider,
    GeminiProvider,
    ProviderCallError,
    ProviderText,
    ProviderUnavailableError,
    build_provider,
    safe_extract_text,
)


class _Models:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return self.reply


def _client(models):
    return SimpleNamespace(aio=SimpleNamespace(models=models))


def test_extract_prefers_callable_nested_text():
    result = SimpleNamespace(
        response=SimpleNamespace(text=lambda: "from method"),
        text="top level",
    )
    assert safe_extract_text(result) == "from method"


def test_extract_nested_string_text():
    result = {"response": {"text": "nested"}, "text": "top level"}
    assert safe_extract_text(result) == "nested"


def test_extract_top_level_text():
    assert safe_extract_text(SimpleNamespace(text="plain")) == "plain"
    assert safe_extract_text({"text": "plain"}) == "plain"


def test_extract_serializes_unknown_shapes():
    result = {"candidates": [{"content": "hello"}]}
    assert json.loads(safe_extract_text(result)) == result


def test_extract_skips_text_accessor_returning_non_string():
    result = {"response": {"text": lambda: 42}, "text": "top"}
    assert safe_extract_text(result) == "top"


def test_extract_empty_result():
    assert safe_extract_text(None) == ""


def test_extract_serializes_when_text_accessor_raises():
    def boom():
        raise RuntimeError("blocked by safety filter")

    result = {"response": {"text": boom}, "id": 7}
    extracted = safe_extract_text(result)
    assert '"id": 7' in extracted


def test_extract_skips_non_string_text():
    result = {"response": {"text": None}, "text": 12}
    assert json.loads(safe_extract_text(result)) == result


def test_build_provider_without_key_is_absent():
    provider = build_provider(None)
    assert isinstance(provider, AbsentProvider)
    assert provider.available is False
    assert "GEMINI_API_KEY" in provider.reason

    assert build_provider("").available is False


def test_build_provider_construction_failure_is_absent():
    def broken_factory(api_key):
        raise ValueError("bad key format")

    provider = build_provider("key", client_factory=broken_factory)
    assert provider.available is False
    assert "bad key format" in provider.reason


def test_build_provider_with_key():
    seen = {}

    def factory(api_key):
        seen["api_key"] = api_key
        return _client(_Models())

    provider = build_provider("secret", client_factory=factory)
    assert isinstance(provider, GeminiProvider)
    assert provider.available is True
    assert seen == {"api_key": "secret"}


def test_absent_provider_generate_raises():
    with pytest.raises(ProviderUnavailableError):
        asyncio.run(AbsentProvider("no key").generate("hi", model="m"))


def test_gemini_provider_returns_provider_text():
    models = _Models(reply=SimpleNamespace(text="Great job saving!"))
    provider = GeminiProvider(_client(models))

    reply = asyncio.run(provider.generate("prompt", model="gemini-2.5-flash"))

    assert reply == ProviderText(text="Great job saving!")
    assert len(models.calls) == 1
    assert models.calls[0]["model"] == "gemini-2.5-flash"
    assert models.calls[0]["contents"] == "prompt"
    assert models.calls[0]["config"] is None


def test_gemini_provider_requests_json_output():
    models = _Models(reply=SimpleNamespace(text="{}"))
    provider = GeminiProvider(_client(models))

    asyncio.run(provider.generate("prompt", model="m", json_output=True))

    assert models.calls[0]["config"].response_mime_type == "application/json"


def test_gemini_provider_wraps_sdk_errors():
    models = _Models(error=ConnectionError("network down"))
    provider = GeminiProvider(_client(models))

    with pytest.raises(ProviderCallError) as excinfo:
        asyncio.run(provider.generate("prompt", model="m"))

    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert len(models.calls) == 1
