from __future__ import annotations

import asyncio
import logging

import aiohttp

from .base import Extractor
from ..config import AppConfig
from ..adapters.base import ImageMetadata, PlatformDefinition
from ..errors import ExtractionError
from ..utils.http import create_session, fetch_text, page_headers
from ..utils.parsing import extract_metadata

logger = logging.getLogger(__name__)


class HttpExtractor(Extractor):
    """
    Plain HTTP extraction for server-rendered listings.
    - One GET with browser-like headers, no retry.
    - Selector matching happens on the parsed HTML.
    """
    def __init__(self, config: AppConfig) -> None:
        self.config = config

    async def fetch_html(self, url: str) -> str:
        async with create_session() as session:
            return await fetch_text(
                session,
                url,
                timeout=self.config.request_timeout,
                headers=page_headers(self.config.user_agent),
            )

    async def extract(self, url: str, definition: PlatformDefinition) -> ImageMetadata:
        logger.info("Extracting %s metadata from %s", definition.name, url)
        try:
            html = await self.fetch_html(url)
        except aiohttp.ClientResponseError as exc:
            raise ExtractionError(
                f"Failed to scrape {definition.name}: HTTP {exc.status} {exc.message}",
                definition.id,
                {"url": url, "status": exc.status},
            ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as exc:
            raise ExtractionError(
                f"Failed to scrape {definition.name}: {exc!r}", definition.id, {"url": url}
            ) from exc

        try:
            metadata = extract_metadata(html, url, definition)
        except Exception as exc:
            raise ExtractionError(
                f"Failed to scrape {definition.name}: could not parse page ({exc})", definition.id, {"url": url}
            ) from exc

        logger.debug("%s: title=%r tags=%s image=%s", definition.id, metadata.title, len(metadata.tags),
                     bool(metadata.image_url))
        return metadata
