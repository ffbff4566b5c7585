from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .adapters.base import ImageMetadata
from .config import AppConfig
from .engines.base import ScrapeResult
from .engines.scraper import ScrapingEngine
from .providers.base import DEFAULT_STYLE, AnalysisRequest, AnalysisResponse
from .providers.manager import KeyValidationResult, ProviderManager
from .utils.deadline import run_with_deadline

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of scrape-then-generate. ``generation`` is None when the scrape failed."""

    url: str
    scrape: ScrapeResult
    generation: Optional[AnalysisResponse] = None

    @property
    def success(self) -> bool:
        return self.scrape.success and self.generation is not None and self.generation.success

    @property
    def error(self) -> Optional[str]:
        if not self.scrape.success:
            return self.scrape.error or "Failed to analyze URL"
        if self.generation is not None and not self.generation.success:
            return self.generation.error or "Failed to generate prompt"
        return None

    @property
    def total_time(self) -> int:
        generated = self.generation.processing_time if self.generation else 0
        return self.scrape.processing_time + generated


class PromptService:
    """
    Application context: one scraping engine and one provider manager built
    from a single AppConfig at startup and shared by the API and the CLI.
    """

    def __init__(self, config: AppConfig, engine: ScrapingEngine, providers: ProviderManager) -> None:
        self.config = config
        self.engine = engine
        self.providers = providers

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None) -> "PromptService":
        config = config or AppConfig.from_env()
        config.validate()
        return cls(config, ScrapingEngine(config), ProviderManager(config))

    async def scrape_stock_url(self, url: str) -> ScrapeResult:
        return await self.engine.scrape(url)

    async def generate_prompt(
        self,
        provider: str,
        api_key: str,
        metadata: ImageMetadata,
        prompt_style: str = DEFAULT_STYLE,
        target_platform: Optional[str] = None,
    ) -> AnalysisResponse:
        request = AnalysisRequest(
            image_base64=metadata.image_base64 or "",
            metadata=metadata,
            prompt_style=prompt_style or DEFAULT_STYLE,
            target_platform=target_platform,
        )
        return await self.providers.generate_prompt(provider, api_key, request)

    async def validate_api_key(self, provider: str, api_key: str) -> KeyValidationResult:
        return await self.providers.validate_api_key(provider, api_key)

    async def analyze_and_generate(
        self,
        url: str,
        provider: str,
        api_key: str,
        prompt_style: str = DEFAULT_STYLE,
        target_platform: Optional[str] = None,
    ) -> PipelineResult:
        """
        Scrape ``url`` then generate a prompt from the result. Each step runs
        under its own deadline; an expired deadline raises NetworkTimeoutError.
        """
        logger.info("Combined request: analyzing %s and generating %s prompt", url, provider)
        scraped = await run_with_deadline(
            self.scrape_stock_url(url), self.config.scrape_deadline, "URL analysis"
        )
        if not scraped.success or scraped.data is None:
            return PipelineResult(url=url, scrape=scraped)

        generated = await run_with_deadline(
            self.generate_prompt(provider, api_key, scraped.data, prompt_style, target_platform),
            self.config.generate_deadline,
            "AI prompt generation",
        )
        return PipelineResult(url=url, scrape=scraped, generation=generated)

    def supported_platforms(self) -> List[Dict[str, str]]:
        return self.engine.supported_platforms()

    def supported_providers(self) -> List[Dict[str, Any]]:
        return self.providers.supported_providers()
