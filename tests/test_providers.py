"""Vendor adapters against in-process emulations of each vendor endpoint."""

from dataclasses import replace

import pytest
from aiohttp import web

from conftest import base_url
from stockprompt.adapters.base import ImageMetadata
from stockprompt.errors import (
    NetworkTimeoutError,
    VendorAuthError,
    VendorQuotaExceededError,
    VendorRateLimitedError,
    VendorRequestInvalidError,
    VendorUnknownError,
)
from stockprompt.providers.anthropic import ClaudeProvider, claude_confidence
from stockprompt.providers.base import AnalysisRequest, build_system_prompt
from stockprompt.providers.gemini import GeminiProvider, gemini_confidence
from stockprompt.providers.openai import OpenAIFastProvider, OpenAIProvider, parse_variations

OPENAI_KEY = "sk-test-abcdefghijklmnop"
CLAUDE_KEY = "sk-ant-test-abcdefghijk"
GEMINI_KEY = "AIzaSyTestKey_1234567890"

PROMPT = (
    "A golden sunset over a calm mountain lake, warm orange and pink sky reflected in still water, "
    "pine silhouettes, wide angle, soft light"
)


@pytest.fixture
def request_payload():
    metadata = ImageMetadata(
        platform="shutterstock",
        title="Golden sunset over mountain lake",
        description="Golden sunset reflected in a calm mountain lake",
        tags=["sunset", "lake"],
        category="Nature",
    )
    return AnalysisRequest(image_base64="QUJD", metadata=metadata, prompt_style="artistic",
                           target_platform="midjourney")


def json_handler(seen, *responses):
    """Reply with ``responses`` in order (the last one repeats) and record each request."""
    async def handler(request):
        seen.append({"headers": request.headers.copy(), "query": dict(request.query),
                     "path": request.path, "json": await request.json()})
        status, body = responses[min(len(seen), len(responses)) - 1]
        return web.json_response(body, status=status)

    return handler


def chat_reply(content, finish_reason="stop"):
    return {"choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": finish_reason}]}


# ---- OpenAI ---------------------------------------------------------------


async def test_openai_generate_with_variations(config, serve, request_payload):
    seen = []
    server = await serve({("POST", "/v1/chat/completions"): json_handler(
        seen,
        (200, chat_reply(PROMPT)),
        (200, chat_reply("Moody dusk over an alpine lake in oil paint --- Minimalist lake sunset poster, flat colors")),
    )})
    provider = OpenAIProvider(replace(config, openai_base_url=base_url(server)))

    result = await provider.generate(OPENAI_KEY, request_payload)

    assert result.prompt == PROMPT
    assert result.variations == [
        "Moody dusk over an alpine lake in oil paint",
        "Minimalist lake sunset poster, flat colors",
    ]
    assert result.confidence == pytest.approx(1.0)

    first, second = seen
    assert first["headers"]["Authorization"] == f"Bearer {OPENAI_KEY}"
    assert first["json"]["model"] == "gpt-4-turbo"
    system, user = first["json"]["messages"]
    assert system["content"] == build_system_prompt("artistic", "midjourney")
    image_part = user["content"][1]
    assert image_part["image_url"] == {"url": "data:image/jpeg;base64,QUJD", "detail": "low"}
    assert second["json"]["model"] == "gpt-3.5-turbo"


async def test_openai_variation_failure_is_not_fatal(config, serve, request_payload):
    seen = []
    server = await serve({("POST", "/v1/chat/completions"): json_handler(
        seen, (200, chat_reply(PROMPT)), (500, {"error": {"message": "overloaded"}}),
    )})
    provider = OpenAIProvider(replace(config, openai_base_url=base_url(server)))

    result = await provider.generate(OPENAI_KEY, request_payload)

    assert result.prompt == PROMPT
    assert result.variations == []


async def test_openai_rate_limit_maps_to_rate_limited(config, serve, request_payload):
    server = await serve({("POST", "/v1/chat/completions"): json_handler(
        [], (429, {"error": {"message": "Rate limit reached", "type": "requests"}}),
    )})
    provider = OpenAIProvider(replace(config, openai_base_url=base_url(server)))

    with pytest.raises(VendorRateLimitedError) as info:
        await provider.generate(OPENAI_KEY, request_payload)

    assert "rate limit" in info.value.message.lower()
    assert info.value.details()["code"] == "rate_limited"


@pytest.mark.parametrize("status, body, expected", [
    (401, {"error": {"code": "invalid_api_key", "message": "Incorrect API key"}}, VendorAuthError),
    (429, {"error": {"code": "insufficient_quota", "message": "Quota"}}, VendorQuotaExceededError),
    (404, {"error": {"code": "model_not_found", "message": "No such model"}}, VendorAuthError),
    (400, {"error": {"message": "Bad image"}}, VendorRequestInvalidError),
    (503, {}, VendorUnknownError),
])
def test_openai_error_mapping(config, status, body, expected):
    error = OpenAIProvider(config).map_error(status, body)
    assert type(error) is expected


async def test_openai_empty_choices_is_vendor_error(config, serve, request_payload):
    server = await serve({("POST", "/v1/chat/completions"): json_handler([], (200, {"choices": []}))})
    provider = OpenAIProvider(replace(config, openai_base_url=base_url(server)))

    with pytest.raises(VendorUnknownError, match="No response from OpenAI API"):
        await provider.generate(OPENAI_KEY, request_payload)


async def test_openai_fast_sends_image_and_single_variation(config, serve, request_payload):
    seen = []
    server = await serve({("POST", "/v1/chat/completions"): json_handler(
        seen, (200, chat_reply(PROMPT, "length")), (200, chat_reply("Watercolor lake at sunset")),
    )})
    provider = OpenAIFastProvider(replace(config, openai_base_url=base_url(server)))

    result = await provider.generate(OPENAI_KEY, request_payload)

    assert result.confidence == 0.6
    assert result.variations == ["Watercolor lake at sunset"]
    first = seen[0]["json"]
    assert first["model"] == "gpt-4o-mini"
    assert first["max_tokens"] == 500
    assert first["messages"][1]["content"][1]["type"] == "image_url"
    assert seen[1]["json"]["model"] == "gpt-4o-mini"


async def test_openai_revoked_key_validation(config, serve):
    seen = []
    server = await serve({("POST", "/v1/chat/completions"): json_handler(
        seen, (401, {"error": {"code": "invalid_api_key", "message": "Incorrect API key provided"}}),
    )})
    provider = OpenAIProvider(replace(config, openai_base_url=base_url(server)))

    outcome = await provider.validate(OPENAI_KEY)

    assert len(seen) == 1
    assert seen[0]["json"]["max_tokens"] == 1
    assert not outcome.is_valid
    assert outcome.error == "Invalid OpenAI API key provided"
    assert outcome.details == {"code": "invalid_key", "originalError": "invalid_api_key", "status": 401}


async def test_validation_reports_network_failure(config):
    provider = OpenAIProvider(replace(config, openai_base_url="http://127.0.0.1:1"))

    outcome = await provider.validate(OPENAI_KEY)

    assert not outcome.is_valid
    assert outcome.details["code"] == "network_error"


async def test_transport_failure_raises_network_error(config, request_payload):
    provider = ClaudeProvider(replace(config, anthropic_base_url="http://127.0.0.1:1"))
    with pytest.raises(NetworkTimeoutError):
        await provider.generate(CLAUDE_KEY, request_payload)


def test_parse_variations_drops_short_fragments():
    assert parse_variations("first long variation --- ok --- second long variation --- third long one") == [
        "first long variation",
        "second long variation",
    ]


# ---- Claude ---------------------------------------------------------------


async def test_claude_generate(config, serve, request_payload):
    seen = []
    server = await serve({("POST", "/v1/messages"): json_handler(seen, (200, {
        "content": [{"type": "text", "text": PROMPT}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 900, "output_tokens": 120},
    }))})
    provider = ClaudeProvider(replace(config, anthropic_base_url=base_url(server)))

    result = await provider.generate(CLAUDE_KEY, request_payload)

    assert result.prompt == PROMPT
    assert result.variations == []
    assert result.confidence == 1.0

    call = seen[0]
    assert call["headers"]["x-api-key"] == CLAUDE_KEY
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert "Authorization" not in call["headers"]
    body = call["json"]
    assert body["model"] == "claude-3-5-sonnet-20241022"
    assert body["system"] == build_system_prompt("artistic", "midjourney")
    image = body["messages"][0]["content"][1]
    assert image["source"] == {"type": "base64", "media_type": "image/jpeg", "data": "QUJD"}


async def test_claude_non_text_block_rejected(config, serve, request_payload):
    server = await serve({("POST", "/v1/messages"): json_handler([], (200, {
        "content": [{"type": "tool_use", "id": "x"}], "stop_reason": "tool_use",
    }))})
    provider = ClaudeProvider(replace(config, anthropic_base_url=base_url(server)))

    with pytest.raises(VendorUnknownError, match="Invalid response format"):
        await provider.generate(CLAUDE_KEY, request_payload)


@pytest.mark.parametrize("status, error_type, expected, code", [
    (401, "authentication_error", VendorAuthError, "invalid_key"),
    (403, "permission_error", VendorAuthError, "permission_denied"),
    (429, "rate_limit_error", VendorRateLimitedError, "rate_limited"),
    (400, "invalid_request_error", VendorRequestInvalidError, "invalid_request"),
    (529, "overloaded_error", VendorUnknownError, "api_error"),
])
def test_claude_error_mapping(config, status, error_type, expected, code):
    body = {"type": "error", "error": {"type": error_type, "message": "nope"}}
    error = ClaudeProvider(config).map_error(status, body)
    assert type(error) is expected
    assert error.details()["code"] == code


def test_claude_confidence_bands():
    short = {"content": [{"type": "text", "text": "tiny"}], "stop_reason": "max_tokens"}
    assert claude_confidence(short) == pytest.approx(0.5)
    assert claude_confidence({"content": [], "stop_reason": "end_turn"}) == pytest.approx(0.7)


# ---- Gemini ---------------------------------------------------------------


async def test_gemini_generate_uses_key_query_param(config, serve, request_payload):
    seen = []
    server = await serve({("POST", "/v1beta/models/{target}"): json_handler(seen, (200, {
        "candidates": [{
            "content": {"parts": [{"text": PROMPT}]},
            "finishReason": "STOP",
            "safetyRatings": [{"category": "HARM_CATEGORY_DANGEROUS", "probability": "MEDIUM"}],
        }],
    }))})
    provider = GeminiProvider(replace(config, gemini_base_url=base_url(server)))

    result = await provider.generate(GEMINI_KEY, request_payload)

    assert result.prompt == PROMPT
    assert result.confidence == pytest.approx(0.9)

    call = seen[0]
    assert call["path"] == "/v1beta/models/gemini-1.5-pro:generateContent"
    assert call["query"] == {"key": GEMINI_KEY}
    text_part, image_part = call["json"]["contents"][0]["parts"]
    assert text_part["text"].startswith(build_system_prompt("artistic", "midjourney"))
    assert image_part == {"inline_data": {"mime_type": "image/jpeg", "data": "QUJD"}}
    assert call["json"]["generationConfig"]["topK"] == 40


async def test_gemini_invalid_key_validation(config, serve):
    server = await serve({("POST", "/v1beta/models/{target}"): json_handler([], (400, {
        "error": {
            "code": 400,
            "message": "API key not valid. Please pass a valid API key.",
            "status": "INVALID_ARGUMENT",
            "details": [{"@type": "type.googleapis.com/google.rpc.ErrorInfo", "reason": "API_KEY_INVALID"}],
        },
    }))})
    provider = GeminiProvider(replace(config, gemini_base_url=base_url(server)))

    outcome = await provider.validate(GEMINI_KEY)

    assert not outcome.is_valid
    assert outcome.details["code"] == "invalid_key"
    assert outcome.details["status"] == 400


def test_gemini_error_mapping(config):
    provider = GeminiProvider(config)
    assert type(provider.map_error(400, {"error": {"code": 400, "message": "bad"}})) is VendorRequestInvalidError
    assert type(provider.map_error(403, {})) is VendorAuthError
    assert type(provider.map_error(429, {})) is VendorRateLimitedError
    assert "rate limit" in provider.map_error(429, {}).message
    assert type(provider.map_error(500, {})) is VendorUnknownError


def test_gemini_confidence_penalises_safety_flags():
    candidate = {
        "content": {"parts": [{"text": "x" * 20}]},
        "finishReason": "MAX_TOKENS",
        "safetyRatings": [{"probability": "HIGH"}, {"probability": "NEGLIGIBLE"}],
    }
    assert gemini_confidence(candidate) == pytest.approx(0.6)


def test_key_formats():
    assert OpenAIProvider.key_pattern.match(OPENAI_KEY)
    assert not OpenAIProvider.key_pattern.match("short")
    assert ClaudeProvider.key_pattern.match(CLAUDE_KEY)
    assert not ClaudeProvider.key_pattern.match(OPENAI_KEY)
    assert GeminiProvider.key_pattern.match(GEMINI_KEY)
    assert not GeminiProvider.key_pattern.match("has spaces in it")
