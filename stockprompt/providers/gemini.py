from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .base import (
    KEY_PATTERN_GEMINI,
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
    VendorRateLimitedError,
    VendorRequestInvalidError,
    VendorUnknownError,
)

logger = logging.getLogger(__name__)

_FLAGGED_PROBABILITIES = {"HIGH", "MEDIUM"}


def gemini_confidence(candidate: Dict[str, Any]) -> float:
    confidence = 0.75

    for rating in candidate.get("safetyRatings") or []:
        if rating.get("probability") in _FLAGGED_PROBABILITIES:
            confidence -= 0.1

    finish_reason = candidate.get("finishReason")
    if finish_reason == "STOP":
        confidence += 0.15
    elif finish_reason == "MAX_TOKENS":
        confidence -= 0.05

    parts = (candidate.get("content") or {}).get("parts") or []
    length = len(parts[0].get("text") or "") if parts else 0
    if 100 <= length <= 300:
        confidence += 0.1

    return clamp(confidence)


def _error_reasons(error: Dict[str, Any]) -> set:
    return {d.get("reason") for d in error.get("details") or [] if isinstance(d, dict)}


class GeminiProvider(ProviderAdapter):
    """Google generateContent API; the key travels as a query parameter."""

    id = "gemini"
    name = "Google Gemini 1.5 Pro"
    label = "Gemini"
    key_pattern = KEY_PATTERN_GEMINI

    def endpoint(self, model: str) -> str:
        return f"{self.config.gemini_base_url.rstrip('/')}/v1beta/models/{model}:generateContent"

    def build_payload(self, request: AnalysisRequest) -> Dict[str, Any]:
        instructions = build_system_prompt(request.prompt_style, request.target_platform)
        text = f"{instructions}\n\n{build_user_prompt(request.metadata)}"
        return {
            "contents": [{
                "parts": [
                    {"text": text},
                    {"inline_data": {"mime_type": "image/jpeg", "data": request.image_base64}},
                ],
            }],
            "generationConfig": {
                "temperature": 0.7,
                "maxOutputTokens": 1000,
                "topP": 0.9,
                "topK": 40,
            },
        }

    async def generate_content(
        self, api_key: str, payload: Dict[str, Any], timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        return await self.post_json(self.endpoint(self.model), payload, params={"key": api_key}, timeout=timeout)

    async def generate(self, api_key: str, request: AnalysisRequest) -> Generation:
        logger.info("Analyzing image with %s", self.model)
        data = await self.generate_content(api_key, self.build_payload(request))

        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise VendorUnknownError("No response from Gemini API", self.id)
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        if not parts:
            raise VendorUnknownError("Empty response from Gemini API", self.id)
        text = parts[0].get("text")
        if not isinstance(text, str) or not text.strip():
            raise VendorUnknownError("No text content in Gemini response", self.id)

        prompt = text.strip()
        logger.info("%s generated prompt (%s characters)", self.id, len(prompt))
        return Generation(prompt=prompt, variations=[], confidence=gemini_confidence(candidate))

    async def validate(self, api_key: str) -> KeyValidation:
        payload = {
            "contents": [{"parts": [{"text": "Hello"}]}],
            "generationConfig": {"maxOutputTokens": 1, "temperature": 0.1},
        }
        return await self.validate_with(
            lambda: self.generate_content(api_key, payload, timeout=self.config.validation_timeout)
        )

    def map_error(self, status: int, body: Dict[str, Any]) -> VendorError:
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        code = error.get("code") or status
        vendor_status = error.get("status")
        message = vendor_message(body, status)

        # Gemini reports bad keys as 400 INVALID_ARGUMENT with an API_KEY_INVALID reason.
        if code == 403 or "API_KEY_INVALID" in _error_reasons(error):
            return VendorAuthError("Invalid or unauthorized Gemini API key", self.id, status, vendor_status or code)
        if code == 429:
            return VendorRateLimitedError("Gemini API rate limit exceeded", self.id, status, vendor_status or code)
        if code == 400:
            return VendorRequestInvalidError(
                "Invalid request to Gemini API. Please check your API key and request format.",
                self.id, status, vendor_status or code,
            )
        return VendorUnknownError(f"Gemini API error: {message}", self.id, status, vendor_status or code)
