from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, List, Optional

from .base import Extractor, ScrapeResult
from .browser_engine import BrowserExtractor
from .simple_engine import HttpExtractor
from ..config import AppConfig
from ..adapters.base import PlatformDefinition
from ..adapters.registry import PlatformRegistry
from ..errors import ImageDownloadError, StockPromptError
from ..utils.http import create_session, fetch_bytes, image_headers
from ..utils.images import encode_base64, transcode_to_jpeg

logger = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = (
    "Failed to extract meaningful data from the URL. "
    "Please check if the URL is valid and accessible."
)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class ScrapingEngine:
    """
    identify -> extract -> (best-effort) image fetch/transcode.

    - The registry owns platform identification.
    - Extractors own transport and selector matching.
    - Exactly one extractor runs per call and nothing is retried.
    """
    def __init__(
        self,
        config: AppConfig,
        registry: PlatformRegistry | None = None,
        http_extractor: Optional[Extractor] = None,
        browser_extractor: Optional[Extractor] = None,
    ) -> None:
        self.config = config
        self.registry = registry or PlatformRegistry()
        self.http_extractor = http_extractor or HttpExtractor(config)
        self.browser_extractor = browser_extractor or BrowserExtractor(config)

    def extractor_for(self, definition: PlatformDefinition) -> Extractor:
        return self.browser_extractor if definition.requires_js else self.http_extractor

    async def scrape(self, url: str) -> ScrapeResult:
        start = time.perf_counter()
        try:
            definition = self.registry.match(url)
            logger.info("Scraping %s URL: %s", definition.id, url)

            metadata = await self.extractor_for(definition).extract(url, definition)
            if not metadata.has_content():
                raise StockPromptError(NO_CONTENT_MESSAGE, {"url": url, "platform": definition.id})

            if metadata.image_url:
                try:
                    metadata.image_base64 = await self.fetch_and_encode(metadata.image_url)
                except ImageDownloadError as exc:
                    # Metadata without an image is still a valid result.
                    logger.warning("Failed to download image %s: %s", metadata.image_url, exc.message)
        except StockPromptError as exc:
            elapsed = _elapsed_ms(start)
            logger.error("Scraping failed after %sms: %s", elapsed, exc.message)
            return ScrapeResult(success=False, error=exc.message, processing_time=elapsed)
        except Exception as exc:
            elapsed = _elapsed_ms(start)
            logger.exception("Unexpected scraping error for %s", url)
            return ScrapeResult(success=False, error=f"Unexpected scraping error: {exc}", processing_time=elapsed)

        elapsed = _elapsed_ms(start)
        logger.info("Scraping completed in %sms", elapsed)
        return ScrapeResult(success=True, data=metadata, processing_time=elapsed)

    async def fetch_and_encode(self, image_url: str) -> str:
        """Download an image under the size ceiling and return it as base64 JPEG."""
        cfg = self.config
        async with create_session() as session:
            data = await fetch_bytes(
                session,
                image_url,
                max_bytes=cfg.max_image_bytes,
                timeout=cfg.image_timeout,
                headers=image_headers(cfg.user_agent),
            )
        jpeg = await asyncio.to_thread(
            transcode_to_jpeg, data, max_dimension=cfg.max_image_dimension, quality=cfg.jpeg_quality
        )
        logger.debug("Image %s encoded: %s -> %s bytes", image_url, len(data), len(jpeg))
        return encode_base64(jpeg)

    def supported_platforms(self) -> List[Dict[str, str]]:
        return self.registry.describe()
