from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .base import (
    KEY_PATTERN_CLAUDE,
    AnalysisRequest,
    Generation,
    KeyValidation,
    ProviderAdapter,
    build_system_prompt,
    build_user_prompt,
    clamp,
    vendor_message,
)
from ..errors import (
    VendorAuthError,
    VendorError,
    VendorQuotaExceededError,
    VendorRateLimitedError,
    VendorRequestInvalidError,
    VendorUnknownError,
)

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


def claude_confidence(data: Dict[str, Any]) -> float:
    confidence = 0.8

    stop_reason = data.get("stop_reason")
    if stop_reason == "end_turn":
        confidence += 0.1
    elif stop_reason == "max_tokens":
        confidence -= 0.1

    blocks = data.get("content") or []
    length = len(blocks[0].get("text") or "") if blocks else 0
    if 100 <= length <= 300:
        confidence += 0.1
    elif length < 50:
        confidence -= 0.2

    usage = data.get("usage") or {}
    if 50 <= (usage.get("output_tokens") or 0) <= 500:
        confidence += 0.05

    return clamp(confidence)


class ClaudeProvider(ProviderAdapter):
    """Anthropic messages API with a base64 image content block."""

    id = "claude"
    name = "Anthropic Claude 3.5 Sonnet"
    label = "Claude"
    key_pattern = KEY_PATTERN_CLAUDE

    @property
    def endpoint(self) -> str:
        return f"{self.config.anthropic_base_url.rstrip('/')}/v1/messages"

    def auth_headers(self, api_key: str) -> Dict[str, str]:
        return {"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION}

    def build_payload(self, request: AnalysisRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": 1000,
            "temperature": 0.7,
            "system": build_system_prompt(request.prompt_style, request.target_platform),
            "messages": [{
                "role": "user",
                "content": [
                    {"type": "text", "text": build_user_prompt(request.metadata)},
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": "image/jpeg",
                            "data": request.image_base64,
                        },
                    },
                ],
            }],
        }

    async def messages(self, api_key: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        return await self.post_json(self.endpoint, payload, headers=self.auth_headers(api_key), timeout=timeout)

    async def generate(self, api_key: str, request: AnalysisRequest) -> Generation:
        logger.info("Analyzing image with %s", self.model)
        data = await self.messages(api_key, self.build_payload(request))

        blocks = data.get("content")
        if not isinstance(blocks, list) or not blocks:
            raise VendorUnknownError("No response from Claude API", self.id)
        first = blocks[0] if isinstance(blocks[0], dict) else {}
        text = first.get("text")
        if first.get("type") != "text" or not isinstance(text, str) or not text.strip():
            raise VendorUnknownError("Invalid response format from Claude API", self.id)

        prompt = text.strip()
        logger.info("%s generated prompt (%s characters)", self.id, len(prompt))
        # Variations would need a second call; this adapter does not make one.
        return Generation(prompt=prompt, variations=[], confidence=claude_confidence(data))

    async def validate(self, api_key: str) -> KeyValidation:
        payload = {
            "model": self.model,
            "max_tokens": 1,
            "temperature": 0.1,
            "messages": [{"role": "user", "content": "Hello"}],
        }
        return await self.validate_with(
            lambda: self.messages(api_key, payload, timeout=self.config.validation_timeout)
        )

    def map_error(self, status: int, body: Dict[str, Any]) -> VendorError:
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        error_type = error.get("type")
        message = vendor_message(body, status)

        if error_type == "authentication_error" or status == 401:
            return VendorAuthError("Invalid Claude API key provided", self.id, status, error_type)
        if error_type == "permission_error" or status == 403:
            return VendorAuthError(
                "Claude API permission denied - check your API key permissions",
                self.id, status, error_type, code="permission_denied",
            )
        if error_type == "rate_limit_error" or status == 429:
            return VendorRateLimitedError("Claude API rate limit exceeded", self.id, status, error_type)
        if error_type == "billing_error" or status == 402:
            return VendorQuotaExceededError("Claude API credit balance exhausted", self.id, status, error_type)
        if error_type in ("invalid_request_error", "not_found_error") or status in (400, 404, 413):
            return VendorRequestInvalidError(f"Claude API invalid request: {message}", self.id, status, error_type)
        return VendorUnknownError(f"Claude API error: {message}", self.id, status, error_type)
