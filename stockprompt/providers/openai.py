from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .base import (
    KEY_PATTERN_OPENAI,
    AnalysisRequest,
    Generation,
    KeyValidation,
    ProviderAdapter,
    build_system_prompt,
    build_user_prompt,
    vendor_message,
)
from ..adapters.base import ImageMetadata
from ..errors import (
    NetworkTimeoutError,
    VendorAuthError,
    VendorError,
    VendorQuotaExceededError,
    VendorRateLimitedError,
    VendorRequestInvalidError,
    VendorUnknownError,
)

logger = logging.getLogger(__name__)

VARIATION_SEPARATOR = "---"
MIN_VARIATION_LENGTH = 10


def chat_content(data: Dict[str, Any], provider_id: str = "openai") -> str:
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise VendorUnknownError("No response from OpenAI API", provider_id)
    message = choices[0].get("message") or {}
    content = message.get("content")
    if not isinstance(content, str) or not content.strip():
        raise VendorUnknownError("Empty response from OpenAI API", provider_id)
    return content.strip()


def openai_confidence(data: Dict[str, Any]) -> float:
    choices = data.get("choices") or []
    if not choices:
        return 0.0
    choice = choices[0]
    length = len((choice.get("message") or {}).get("content") or "")

    confidence = 0.7
    if 100 <= length <= 300:
        confidence += 0.2
    elif 50 <= length < 500:
        confidence += 0.1
    if choice.get("finish_reason") == "stop":
        confidence += 0.1
    return min(confidence, 1.0)


def parse_variations(text: str, limit: int = 2) -> List[str]:
    parts = [part.strip() for part in text.split(VARIATION_SEPARATOR)]
    return [part for part in parts if len(part) > MIN_VARIATION_LENGTH][:limit]


class OpenAIProvider(ProviderAdapter):
    """GPT-4 class vision model via the chat completions API."""

    id = "openai"
    name = "OpenAI GPT-4 Turbo Vision"
    label = "OpenAI"
    key_pattern = KEY_PATTERN_OPENAI

    max_tokens = 800
    image_detail = "low"

    @property
    def endpoint(self) -> str:
        return f"{self.config.openai_base_url.rstrip('/')}/v1/chat/completions"

    def auth_headers(self, api_key: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    # ---- Payload ------------------------------------------------------------

    def system_prompt(self, request: AnalysisRequest) -> str:
        return build_system_prompt(request.prompt_style, request.target_platform)

    def user_prompt(self, metadata: ImageMetadata) -> str:
        return build_user_prompt(metadata)

    def build_payload(self, request: AnalysisRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": self.system_prompt(request)},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.user_prompt(request.metadata)},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:image/jpeg;base64,{request.image_base64}",
                                "detail": self.image_detail,
                            },
                        },
                    ],
                },
            ],
            "max_tokens": self.max_tokens,
            "temperature": 0.7,
            "stream": False,
        }

    # ---- Calls --------------------------------------------------------------

    async def chat(self, api_key: str, payload: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
        return await self.post_json(self.endpoint, payload, headers=self.auth_headers(api_key), timeout=timeout)

    async def generate(self, api_key: str, request: AnalysisRequest) -> Generation:
        logger.info("Analyzing image with %s", self.model)
        data = await self.chat(api_key, self.build_payload(request))
        prompt = chat_content(data, self.id)
        logger.info("%s generated prompt (%s characters)", self.id, len(prompt))

        variations = await self.generate_variations(api_key, prompt, request.prompt_style)
        return Generation(prompt=prompt, variations=variations, confidence=self.confidence(data))

    def confidence(self, data: Dict[str, Any]) -> float:
        return openai_confidence(data)

    async def generate_variations(self, api_key: str, original: str, style: str) -> List[str]:
        """Second call for two alternative phrasings. Failure yields no variations."""
        instruction = f"""Based on this AI image generation prompt, create 2 alternative variations that maintain the core concept but with different approaches or emphasis:

Original: "{original}"

Style: {style}

Requirements:
1. Keep the same main subject and concept
2. Vary the artistic style, mood, or technical approach
3. Each variation should be complete and usable
4. Maintain similar length to the original

Provide only the 2 variations, separated by "{VARIATION_SEPARATOR}":"""
        payload = {
            "model": self.config.model_for("openai-variations"),
            "messages": [{"role": "user", "content": instruction}],
            "max_tokens": 600,
            "temperature": 0.8,
        }
        try:
            data = await self.chat(api_key, payload)
            return parse_variations(chat_content(data, self.id))
        except (VendorError, NetworkTimeoutError) as exc:
            logger.warning("Could not generate variations: %s", exc.message)
            return []

    async def validate(self, api_key: str) -> KeyValidation:
        payload = {
            "model": self.config.model_for("openai-variations"),
            "messages": [{"role": "user", "content": "test"}],
            "max_tokens": 1,
        }
        return await self.validate_with(
            lambda: self.chat(api_key, payload, timeout=self.config.validation_timeout)
        )

    # ---- Errors -------------------------------------------------------------

    def map_error(self, status: int, body: Dict[str, Any]) -> VendorError:
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        code = error.get("code") or error.get("type")
        message = vendor_message(body, status)

        if code == "invalid_api_key" or status == 401:
            return VendorAuthError("Invalid OpenAI API key provided", self.id, status, code)
        if code == "insufficient_quota":
            return VendorQuotaExceededError("OpenAI API quota exceeded", self.id, status, code)
        if code == "model_not_found" or status == 403:
            return VendorAuthError("OpenAI model access denied", self.id, status, code, code="permission_denied")
        if status == 429:
            return VendorRateLimitedError("OpenAI API rate limit exceeded", self.id, status, code)
        if status in (400, 404, 422):
            return VendorRequestInvalidError(f"OpenAI API invalid request: {message}", self.id, status, code)
        return VendorUnknownError(f"OpenAI API error: {message}", self.id, status, code)


class OpenAIFastProvider(OpenAIProvider):
    """
    Smaller, faster chat model with a compact prompt and a single variation.
    The image still goes inline at low detail.
    """

    id = "openai-fast"
    name = "OpenAI GPT-4o Mini (Fastest)"
    key_pattern = KEY_PATTERN_OPENAI

    max_tokens = 500

    def system_prompt(self, request: AnalysisRequest) -> str:
        platform_line = f"Platform: {request.target_platform}\n" if request.target_platform else ""
        return f"""You are an expert AI prompt engineer. Create effective AI image generation prompts based on stock photo images and metadata.

FAST MODE - Focus on:
1. Main subject and composition
2. Key colors and lighting
3. Artistic style
4. Target platform optimization

Style: {request.prompt_style}
{platform_line}
Keep prompts concise but descriptive (80-120 words)."""

    def user_prompt(self, metadata: ImageMetadata) -> str:
        tags = ", ".join(metadata.tags[:10]) or "No tags"
        return f"""Create an AI image generation prompt for this stock photo:

Title: {metadata.title or 'Untitled'}
Description: {metadata.description or 'No description'}
Tags: {tags}
Category: {metadata.category or 'General'}

Create a prompt that captures the essence of this image for AI generation. Focus on visual elements, composition, and style.

Output only the prompt text, ready to use."""

    def confidence(self, data: Dict[str, Any]) -> float:
        choices = data.get("choices") or []
        if not choices:
            return 0.0
        return 0.8 if choices[0].get("finish_reason") == "stop" else 0.6

    async def generate_variations(self, api_key: str, original: str, style: str) -> List[str]:
        payload = {
            "model": self.model,
            "messages": [{
                "role": "user",
                "content": f'Create 1 short variation of this prompt with a different artistic style: "{original}"',
            }],
            "max_tokens": 200,
            "temperature": 0.8,
        }
        try:
            data = await self.chat(api_key, payload)
            return [chat_content(data, self.id)]
        except (VendorError, NetworkTimeoutError) as exc:
            logger.warning("Could not generate variation: %s", exc.message)
            return []

    async def validate(self, api_key: str) -> KeyValidation:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": "test"}],
            "max_tokens": 1,
        }
        return await self.validate_with(
            lambda: self.chat(api_key, payload, timeout=self.config.validation_timeout)
        )
