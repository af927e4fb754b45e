"""
Tests for generation backends: request shape, error normalization and the factory.
"""

import json

import httpx
import pytest

from template_engine.config.settings import Settings
from template_engine.template_builder.backends.base import (
    BackendError,
    extract_http_error_detail,
    normalize_error_message,
)
from template_engine.template_builder.backends.bedrock import BedrockBackend
from template_engine.template_builder.backends.factory import build_backend, build_backends
from template_engine.template_builder.backends.gemini import GeminiBackend
from template_engine.template_builder.backends.openai_compat import OpenAICompatibleBackend


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _openai(handler) -> OpenAICompatibleBackend:
    return OpenAICompatibleBackend(
        api_key="test-key",
        model="gpt-4o-mini",
        base_url="https://example.invalid/v1/chat/completions",
        client=_client(handler),
    )


def _bedrock(handler) -> BedrockBackend:
    return BedrockBackend(
        api_key="test-key",
        model="anthropic.claude-3-haiku-20240307-v1:0",
        base_url="https://example.invalid/",
        client=_client(handler),
    )


def _gemini(handler) -> GeminiBackend:
    return GeminiBackend(
        api_key="test-key",
        model="gemini-2.5-flash",
        base_url="https://example.invalid/v1beta/",
        client=_client(handler),
    )


def test_normalize_error_message_uses_fallback() -> None:
    assert normalize_error_message("", fallback="fallback") == "fallback"
    assert normalize_error_message("   ", fallback="fallback") == "fallback"
    assert normalize_error_message("a \n  b", fallback="x") == "a b"
    assert len(normalize_error_message("x" * 500, fallback="f")) == 240


def test_extract_http_error_detail_prefers_error_message() -> None:
    response = httpx.Response(status_code=401, json={"error": {"message": "Invalid API key"}})
    assert extract_http_error_detail(response) == "Invalid API key"


def test_extract_http_error_detail_gemini_list_shape() -> None:
    response = httpx.Response(status_code=400, json=[{"error": {"message": "API key not valid"}}])
    assert extract_http_error_detail(response) == "API key not valid"


def test_extract_http_error_detail_plain_text() -> None:
    response = httpx.Response(status_code=502, text="")
    assert extract_http_error_detail(response) == "HTTP 502"


async def test_openai_request_shape_and_content() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"choices": [{"message": {"content": '  ["rsi"]  '}}], "usage": {"total_tokens": 12}},
        )

    backend = _openai(handler)
    text = await backend.complete("prompt", system_instruction="system", temperature=0.0, max_tokens=500)

    assert text == '["rsi"]'
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "prompt"},
    ]
    assert seen["body"]["temperature"] == 0.0
    assert seen["body"]["max_tokens"] == 500


async def test_openai_reasoning_content_used_when_content_empty() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "", "reasoning_content": "{}"}}]})

    assert await _openai(handler).complete("p") == "{}"


async def test_openai_http_error_maps_status_and_detail() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

    with pytest.raises(BackendError) as excinfo:
        await _openai(handler).complete("p")
    assert excinfo.value.status == 401
    assert excinfo.value.message == "Invalid API key"
    assert str(excinfo.value) == "[HTTP 401] Invalid API key"


async def test_openai_empty_completion_is_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]})

    with pytest.raises(BackendError) as excinfo:
        await _openai(handler).complete("p")
    assert excinfo.value.status is None
    assert "empty completion" in excinfo.value.message


async def test_openai_no_choices_is_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": []})

    with pytest.raises(BackendError):
        await _openai(handler).complete("p")


async def test_timeout_maps_to_backend_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(BackendError) as excinfo:
        await _openai(handler).complete("p", timeout=5)
    assert excinfo.value.status is None
    assert excinfo.value.message == "request timed out after 5s"


async def test_transport_error_is_never_blank() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("", request=request)

    with pytest.raises(BackendError) as excinfo:
        await _openai(handler).complete("p")
    assert excinfo.value.message.startswith("ConnectError")


async def test_gemini_request_shape_and_text() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {"content": {"parts": [{"text": "thinking", "thought": True}, {"text": '{"a": '}, {"text": "1}"}]}}
                ],
                "usageMetadata": {"totalTokenCount": 40},
            },
        )

    text = await _gemini(handler).complete("prompt", system_instruction="system", max_tokens=8192)

    assert text == '{"a": 1}'
    assert seen["url"].startswith("https://example.invalid/v1beta/models/gemini-2.5-flash:generateContent")
    assert "key=test-key" in seen["url"]
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "system"}]}
    assert seen["body"]["generationConfig"]["maxOutputTokens"] == 8192


async def test_gemini_blocked_prompt_reports_reason() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

    with pytest.raises(BackendError) as excinfo:
        await _gemini(handler).complete("p")
    assert "blockReason=SAFETY" in excinfo.value.message


async def test_gemini_server_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": {"message": "The model is overloaded"}})

    with pytest.raises(BackendError) as excinfo:
        await _gemini(handler).complete("p")
    assert excinfo.value.status == 503


async def test_bedrock_request_shape_and_text() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "output": {"message": {"role": "assistant", "content": [{"text": "[\"rsi\"]"}]}},
                "stopReason": "end_turn",
                "usage": {"totalTokens": 12},
            },
        )

    text = await _bedrock(handler).complete("prompt", system_instruction="system", temperature=0.0, max_tokens=500)

    assert text == '["rsi"]'
    assert seen["url"].startswith("https://example.invalid/model/anthropic.claude-3-haiku-20240307-v1")
    assert seen["url"].endswith("/converse")
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["system"] == [{"text": "system"}]
    assert seen["body"]["messages"] == [{"role": "user", "content": [{"text": "prompt"}]}]
    assert seen["body"]["inferenceConfig"] == {"temperature": 0.0, "maxTokens": 500}


async def test_bedrock_empty_output_reports_stop_reason() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"output": {"message": {"content": []}}, "stopReason": "content_filtered"})

    with pytest.raises(BackendError) as excinfo:
        await _bedrock(handler).complete("p")
    assert "stopReason=content_filtered" in excinfo.value.message


async def test_bedrock_access_denied_keeps_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"message": "Authentication failed"})

    with pytest.raises(BackendError) as excinfo:
        await _bedrock(handler).complete("p")
    assert excinfo.value.status == 403
    assert "Authentication failed" in excinfo.value.message

def test_factory_selects_provider() -> None:
    settings = Settings(AI_PROVIDER="OpenAI", OPENAI_API_KEY="k", OPENAI_MODEL="big", OPENAI_EXTRACTION_MODEL="small")
    pair = build_backends(settings)

    assert isinstance(pair.extraction, OpenAICompatibleBackend)
    assert pair.extraction.model == "small"
    assert pair.generation.model == "big"

    gemini = build_backend(Settings(AI_PROVIDER="gemini"), "gemini-2.5-pro")
    assert isinstance(gemini, GeminiBackend)

    bedrock = build_backends(Settings(AI_PROVIDER="bedrock", BEDROCK_API_KEY="k"))
    assert isinstance(bedrock.generation, BedrockBackend)
    assert bedrock.extraction.model == "anthropic.claude-3-haiku-20240307-v1:0"


def test_factory_rejects_unknown_provider() -> None:
    with pytest.raises(ValueError, match="Unsupported AI_PROVIDER"):
        build_backend(Settings(AI_PROVIDER="vertex"), "model")
