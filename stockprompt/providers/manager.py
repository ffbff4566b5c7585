from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .anthropic import ClaudeProvider
from .base import AnalysisRequest, AnalysisResponse, ProviderAdapter
from .gemini import GeminiProvider
from .openai import OpenAIFastProvider, OpenAIProvider
from ..config import AppConfig
from ..errors import (
    MissingCredentialError,
    MissingImageDataError,
    StockPromptError,
    UnsupportedProviderError,
)

logger = logging.getLogger(__name__)

PROVIDER_CLASSES = (OpenAIProvider, OpenAIFastProvider, GeminiProvider, ClaudeProvider)


@dataclass
class KeyValidationResult:
    success: bool  # False only when validation itself could not be carried out
    is_valid: bool
    provider: str
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "isValid": self.is_valid,
            "provider": self.provider,
            "details": dict(self.details),
        }
        if self.error is not None:
            out["error"] = self.error
        return out


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class ProviderManager:
    """
    Front door for prompt generation and key validation. Every outcome is
    returned as a result object; exceptions stop here.
    """

    def __init__(self, config: AppConfig, adapters: Optional[Iterable[ProviderAdapter]] = None) -> None:
        self.config = config
        if adapters is None:
            adapters = [cls(config) for cls in PROVIDER_CLASSES]
        self._adapters: Dict[str, ProviderAdapter] = {a.id: a for a in adapters}

    def get(self, provider: str) -> ProviderAdapter:
        try:
            return self._adapters[provider]
        except KeyError:
            raise UnsupportedProviderError(
                f"Unsupported AI provider: {provider}. Supported providers: {', '.join(self._adapters)}",
                {"provider": provider},
            ) from None

    async def generate_prompt(self, provider: str, api_key: str, request: AnalysisRequest) -> AnalysisResponse:
        start = time.perf_counter()
        try:
            adapter = self.get(provider)
            if not api_key or not api_key.strip():
                raise MissingCredentialError("API key is required", {"provider": provider})
            if not request.image_base64:
                raise MissingImageDataError("Image data is required for AI analysis", {"provider": provider})

            logger.info("Generating prompt with %s provider", provider)
            result = await adapter.generate(api_key.strip(), request)
        except StockPromptError as exc:
            elapsed = _elapsed_ms(start)
            logger.error("Prompt generation with %s failed after %sms: %s", provider, elapsed, exc.message)
            return AnalysisResponse(success=False, processing_time=elapsed, error=exc.message)
        except Exception as exc:
            elapsed = _elapsed_ms(start)
            logger.exception("Unexpected error generating prompt with %s", provider)
            return AnalysisResponse(success=False, processing_time=elapsed, error=f"Unexpected provider error: {exc}")

        elapsed = _elapsed_ms(start)
        logger.info("Prompt generated successfully in %sms", elapsed)
        return AnalysisResponse(
            success=True,
            processing_time=elapsed,
            prompt=result.prompt,
            variations=list(result.variations),
            confidence=result.confidence,
        )

    async def validate_api_key(self, provider: str, api_key: str) -> KeyValidationResult:
        try:
            adapter = self.get(provider)
        except UnsupportedProviderError as exc:
            return KeyValidationResult(success=False, is_valid=False, provider=provider, error=exc.message)

        if not adapter.key_format_ok(api_key or ""):
            return KeyValidationResult(
                success=True,
                is_valid=False,
                provider=provider,
                error=f"Invalid {provider} API key format",
                details={"issue": "format_invalid"},
            )

        logger.info("Validating %s API key", provider)
        try:
            outcome = await adapter.validate(api_key.strip())
        except Exception as exc:
            logger.exception("Unexpected error validating %s key", provider)
            return KeyValidationResult(success=False, is_valid=False, provider=provider, error=str(exc))

        return KeyValidationResult(
            success=True,
            is_valid=outcome.is_valid,
            provider=provider,
            error=outcome.error,
            details=outcome.details,
        )

    def supported_providers(self) -> List[Dict[str, str]]:
        return [adapter.describe() for adapter in self._adapters.values()]
