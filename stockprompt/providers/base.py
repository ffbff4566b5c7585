"""
Shared request/response types, prompt tables and HTTP plumbing for the
vision provider adapters.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern

import aiohttp
from aiohttp import ClientTimeout

from ..adapters.base import ImageMetadata
from ..config import AppConfig
from ..errors import NetworkTimeoutError, VendorError, VendorUnknownError
from ..utils.http import create_session

logger = logging.getLogger(__name__)

BASE_SYSTEM_PROMPT = """You are an expert AI image prompt engineer. Your task is to analyze the provided image and its metadata to create highly effective prompts for AI image generation tools.

IMPORTANT GUIDELINES:
1. Focus on visual elements you can actually see in the image
2. Include specific details about colors, lighting, composition, and style
3. Use descriptive but concise language
4. Avoid copyright-protected terms or brand names
5. Make the prompt actionable for AI image generation"""

PROMPT_STYLES: Dict[str, str] = {
    "detailed": (
        "Create a comprehensive, detailed prompt with specific descriptions of all visual elements, "
        "including colors, lighting, composition, mood, and artistic style. Aim for 100-150 words."
    ),
    "concise": (
        "Create a focused, efficient prompt that captures the essential visual elements in 50-80 words. "
        "Prioritize the most important visual features."
    ),
    "artistic": (
        "Emphasize artistic style, mood, aesthetic qualities, and creative elements. "
        "Include references to art movements, techniques, and visual atmosphere."
    ),
    "technical": (
        "Include technical photography and artistic terms, such as camera angles, lighting techniques, "
        "composition rules, and specific visual characteristics."
    ),
}

TARGET_PLATFORMS: Dict[str, str] = {
    "midjourney": (
        "Format the prompt for Midjourney with clear descriptive phrases. "
        "Consider adding aspect ratio suggestions and quality parameters."
    ),
    "dall-e": (
        "Optimize for DALL-E with clear, descriptive language that avoids ambiguous terms. "
        "Focus on concrete visual elements."
    ),
    "stable-diffusion": (
        "Include quality enhancement tags and consider negative prompt suggestions. "
        "Use commonly understood artistic terms."
    ),
    "leonardo": "Format for Leonardo AI with emphasis on artistic styles and quality modifiers.",
}

DEFAULT_STYLE = "detailed"


@dataclass
class AnalysisRequest:
    image_base64: str
    metadata: ImageMetadata
    prompt_style: str = DEFAULT_STYLE
    target_platform: Optional[str] = None


@dataclass
class Generation:
    """What an adapter hands back to the manager."""

    prompt: str
    confidence: float
    variations: List[str] = field(default_factory=list)


@dataclass
class AnalysisResponse:
    success: bool
    processing_time: int  # milliseconds
    prompt: str = ""
    variations: List[str] = field(default_factory=list)
    confidence: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "success": self.success,
            "prompt": self.prompt,
            "variations": list(self.variations),
            "confidence": self.confidence,
            "processingTime": self.processing_time,
        }
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class KeyValidation:
    is_valid: bool
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def build_system_prompt(style: str, target_platform: Optional[str] = None) -> str:
    if style not in PROMPT_STYLES:
        logger.warning("Unknown prompt style %r, using %r", style, DEFAULT_STYLE)
        style = DEFAULT_STYLE
    prompt = f"{BASE_SYSTEM_PROMPT}\n\n{PROMPT_STYLES[style]}"
    if target_platform and target_platform in TARGET_PLATFORMS:
        prompt += f"\n\n{TARGET_PLATFORMS[target_platform]}"
    return prompt


def build_user_prompt(metadata: ImageMetadata) -> str:
    tags = ", ".join(metadata.tags) if metadata.tags else "N/A"
    return f"""Please analyze this image and create an optimized AI generation prompt based on the following information:

**Original Title:** {metadata.title or 'N/A'}
**Description:** {metadata.description or 'N/A'}
**Tags:** {tags}
**Category:** {metadata.category or 'N/A'}
**Source Platform:** {metadata.platform}

**Your Task:**
1. Carefully examine the image and identify key visual elements
2. Describe the composition, lighting, colors, and style
3. Create a prompt that would generate a similar image
4. Ensure the prompt is specific enough for accurate reproduction
5. Incorporate relevant information from the metadata where appropriate

**Output Format:**
Provide only the optimized prompt text, ready to use for AI image generation."""


def clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class ProviderAdapter(ABC):
    """
    One vendor integration. Adapters are stateless: every call opens and
    closes its own HTTP session, so one instance serves concurrent requests.
    """

    id: str
    name: str
    label: str  # vendor name used in error messages
    key_pattern: Pattern[str]

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model_for(self.id)

    def describe(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "model": self.model}

    def key_format_ok(self, api_key: str) -> bool:
        return bool(api_key) and bool(self.key_pattern.match(api_key.strip()))

    @abstractmethod
    async def generate(self, api_key: str, request: AnalysisRequest) -> Generation:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def validate(self, api_key: str) -> KeyValidation:  # pragma: no cover - interface
        ...

    @abstractmethod
    def map_error(self, status: int, body: Dict[str, Any]) -> VendorError:  # pragma: no cover - interface
        """Translate an error response into the shared taxonomy."""
        ...

    # ---- HTTP ---------------------------------------------------------------

    async def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        POST a JSON payload and return the decoded body. Non-2xx responses go
        through ``map_error``; transport failures raise NetworkTimeoutError.
        """
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        try:
            async with create_session() as session:
                async with session.post(
                    url,
                    json=payload,
                    headers=request_headers,
                    params=params,
                    timeout=ClientTimeout(total=timeout or self.config.provider_timeout),
                ) as resp:
                    status = resp.status
                    text = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NetworkTimeoutError(f"{self.label} request failed: {exc!r}", {"provider": self.id}) from exc

        try:
            body = json.loads(text) if text else None
        except json.JSONDecodeError:
            body = None

        if status >= 400:
            raise self.map_error(status, body if isinstance(body, dict) else {})
        if not isinstance(body, dict):
            raise VendorUnknownError(f"Malformed response from {self.label} API", self.id, status)
        return body

    async def validate_with(self, call) -> KeyValidation:
        """Run a minimal authenticated call and report the outcome as KeyValidation."""
        try:
            await call()
        except VendorError as exc:
            logger.info("%s key validation failed: %s", self.label, exc.message)
            return KeyValidation(is_valid=False, error=exc.message, details=exc.details())
        except NetworkTimeoutError as exc:
            logger.info("%s key validation could not reach the API: %s", self.label, exc.message)
            return KeyValidation(
                is_valid=False,
                error=f"Network error or timeout while validating {self.label} API key",
                details={"code": "network_error", "originalError": exc.message},
            )
        return KeyValidation(is_valid=True, details={"status": "valid", "provider": self.id, "model": self.model})


def vendor_message(body: Dict[str, Any], status: int) -> str:
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return f"HTTP {status}"


KEY_PATTERN_OPENAI = re.compile(r"^sk-[a-zA-Z0-9\-_.]{10,}$")
KEY_PATTERN_CLAUDE = re.compile(r"^sk-ant-[A-Za-z0-9_-]{10,}$")
KEY_PATTERN_GEMINI = re.compile(r"^[A-Za-z0-9_-]{10,}$")
