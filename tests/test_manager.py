"""ProviderManager guards and result envelopes."""

import pytest

from stockprompt.adapters.base import ImageMetadata
from stockprompt.errors import VendorRateLimitedError
from stockprompt.providers.base import AnalysisRequest, KeyValidation
from stockprompt.providers.manager import ProviderManager
from stockprompt.providers.openai import OpenAIProvider


class SpyProvider(OpenAIProvider):
    """OpenAI adapter whose network layer is replaced by a recorder."""

    def __init__(self, config, reply=None, error=None):
        super().__init__(config)
        self.reply = reply
        self.error = error
        self.posts = []

    async def post_json(self, url, payload, **kwargs):
        self.posts.append((url, payload))
        if self.error is not None:
            raise self.error
        return self.reply


class ExplodingProvider(OpenAIProvider):
    async def generate(self, api_key, request):
        raise RuntimeError("adapter bug")

    async def validate(self, api_key):
        raise RuntimeError("adapter bug")


@pytest.fixture
def request_payload():
    metadata = ImageMetadata(platform="mock", title="Red kite", image_base64="QUJD")
    return AnalysisRequest(image_base64="QUJD", metadata=metadata)


async def test_empty_key_fails_before_any_http_call(config, request_payload):
    spy = SpyProvider(config)
    manager = ProviderManager(config, adapters=[spy])

    result = await manager.generate_prompt("openai", "", request_payload)

    assert not result.success
    assert result.error == "API key is required"
    assert result.prompt == ""
    assert result.confidence == 0
    assert result.processing_time >= 0
    assert spy.posts == []


async def test_blank_key_is_missing_too(config, request_payload):
    spy = SpyProvider(config)
    result = await ProviderManager(config, adapters=[spy]).generate_prompt("openai", "   ", request_payload)
    assert result.error == "API key is required"
    assert spy.posts == []


async def test_missing_image_fails_before_any_http_call(config):
    spy = SpyProvider(config)
    request = AnalysisRequest(image_base64="", metadata=ImageMetadata(platform="mock", title="x"))

    result = await ProviderManager(config, adapters=[spy]).generate_prompt("openai", "sk-abcdefghijklmnop", request)

    assert result.error == "Image data is required for AI analysis"
    assert spy.posts == []


async def test_unsupported_provider(config, request_payload):
    manager = ProviderManager(config)

    result = await manager.generate_prompt("midjourney", "sk-abcdefghijklmnop", request_payload)
    validation = await manager.validate_api_key("midjourney", "sk-abcdefghijklmnop")

    assert result.error.startswith("Unsupported AI provider: midjourney. Supported providers: openai")
    assert not validation.success
    assert not validation.is_valid


async def test_successful_generation_envelope(config, request_payload):
    reply = {"choices": [{"message": {"content": "A red kite soaring over green hills"}, "finish_reason": "stop"}]}
    spy = SpyProvider(config, reply=reply)

    result = await ProviderManager(config, adapters=[spy]).generate_prompt("openai", "sk-abcdefghijklmnop", request_payload)

    assert result.success
    assert result.prompt == "A red kite soaring over green hills"
    # The spy answers the variations call with the same single-paragraph reply.
    assert result.variations == ["A red kite soaring over green hills"]
    assert set(result.to_dict()) == {"success", "prompt", "variations", "confidence", "processingTime"}
    assert len(spy.posts) == 2


async def test_vendor_error_becomes_failure(config, request_payload):
    spy = SpyProvider(config, error=VendorRateLimitedError("OpenAI API rate limit exceeded", "openai", 429))

    result = await ProviderManager(config, adapters=[spy]).generate_prompt("openai", "sk-abcdefghijklmnop", request_payload)

    assert not result.success
    assert result.error == "OpenAI API rate limit exceeded"


async def test_unexpected_adapter_error_is_contained(config, request_payload):
    manager = ProviderManager(config, adapters=[ExplodingProvider(config)])

    result = await manager.generate_prompt("openai", "sk-abcdefghijklmnop", request_payload)
    validation = await manager.validate_api_key("openai", "sk-abcdefghijklmnop")

    assert not result.success
    assert "adapter bug" in result.error
    assert not validation.success
    assert validation.error == "adapter bug"


@pytest.mark.parametrize("provider, key", [
    ("openai", "short"),
    ("openai-fast", "pk-abcdefghijklmnop"),
    ("claude", "sk-abcdefghijklmnop"),
    ("gemini", "bad key with spaces"),
    ("gemini", ""),
])
async def test_malformed_key_never_reaches_network(config, provider, key):
    manager = ProviderManager(config)
    called = []

    async def forbidden(*args, **kwargs):
        called.append(args)
        raise AssertionError("network must not be touched")

    for adapter in manager._adapters.values():
        adapter.post_json = forbidden

    result = await manager.validate_api_key(provider, key)

    assert result.success
    assert not result.is_valid
    assert result.error == f"Invalid {provider} API key format"
    assert result.details == {"issue": "format_invalid"}
    assert called == []


async def test_well_formed_key_is_checked_by_vendor(config):
    class Rejecting(OpenAIProvider):
        async def validate(self, api_key):
            return KeyValidation(is_valid=False, error="Invalid OpenAI API key provided",
                                 details={"code": "invalid_key", "status": 401})

    result = await ProviderManager(config, adapters=[Rejecting(config)]).validate_api_key(
        "openai", "sk-abcdefghijklmnop"
    )

    assert result.success
    assert not result.is_valid
    assert result.to_dict() == {
        "success": True,
        "isValid": False,
        "provider": "openai",
        "details": {"code": "invalid_key", "status": 401},
        "error": "Invalid OpenAI API key provided",
    }


def test_supported_providers(config):
    providers = ProviderManager(config).supported_providers()

    assert [p["id"] for p in providers] == ["openai", "openai-fast", "gemini", "claude"]
    assert providers[0]["model"] == "gpt-4-turbo"
    assert providers[-1]["model"] == "claude-3-5-sonnet-20241022"
