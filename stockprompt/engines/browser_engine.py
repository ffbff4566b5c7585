from __future__ import annotations

import logging
from typing import Any, Dict

from bs4 import BeautifulSoup
from playwright.async_api import (
    Error as PlaywrightError,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .base import Extractor
from ..config import AppConfig
from ..adapters.base import ImageMetadata, PlatformDefinition
from ..errors import ExtractionError
from ..utils.parsing import finalize_metadata, metadata_from_fields

logger = logging.getLogger(__name__)

CHROME_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--disable-blink-features=AutomationControlled",
]

BLOCKED_RESOURCE_TYPES = frozenset({
    "image", "font", "stylesheet", "media", "websocket", "manifest", "other",
})
BLOCKED_URL_MARKERS = ("analytics", "tracking", "ads")

# Wait this long for basic markup before extracting anyway.
CONTENT_PROBE_MS = 5000

# Same rules as utils.parsing.extract_fields, evaluated inside the page.
EXTRACT_SCRIPT = """
(selectors) => {
  const valueOf = (el, image) => {
    const content = (el.getAttribute('content') || '').trim();
    if (content) return content;
    if (image) {
      for (const attr of ['src', 'data-src']) {
        const v = (el.getAttribute(attr) || '').trim();
        if (v) return v;
      }
    }
    return (el.textContent || '').replace(/\\s+/g, ' ').trim();
  };
  const first = (list, image) => {
    for (const sel of list || []) {
      let el = null;
      try { el = document.querySelector(sel); } catch (e) { continue; }
      if (!el) continue;
      const v = valueOf(el, image);
      if (v) return v;
    }
    return '';
  };
  const all = (list) => {
    const out = [];
    for (const sel of list || []) {
      let nodes = [];
      try { nodes = document.querySelectorAll(sel); } catch (e) { continue; }
      nodes.forEach((el) => out.push((el.textContent || '').replace(/\\s+/g, ' ').trim()));
    }
    return out;
  };
  return {
    title: first(selectors.title, false),
    description: first(selectors.description, false),
    image: first(selectors.image, true),
    tags: all(selectors.tags),
    category: first(selectors.category, false),
    stockId: first(selectors.stockId, false),
  };
}
"""


def should_block(resource_type: str, url: str) -> bool:
    """Resources skipped while rendering: heavy assets plus analytics/ad hosts."""
    if resource_type in BLOCKED_RESOURCE_TYPES:
        return True
    lowered = url.lower()
    return any(marker in lowered for marker in BLOCKED_URL_MARKERS)


async def _route_request(route: Route) -> None:
    request = route.request
    if should_block(request.resource_type, request.url):
        await route.abort()
    else:
        await route.continue_()


class BrowserExtractor(Extractor):
    """
    Headless Chromium extraction for JS-rendered listings.

    Every call launches its own browser; nothing is shared between calls, and
    the browser is closed on success, failure and cancellation alike.
    """
    def __init__(self, config: AppConfig) -> None:
        self.config = config

    async def extract(self, url: str, definition: PlatformDefinition) -> ImageMetadata:
        logger.info("Rendering %s page %s", definition.name, url)
        try:
            fields, html = await self._render(url, definition)
        except PlaywrightTimeoutError as exc:
            raise ExtractionError(
                f"Failed to scrape {definition.name}: page load timed out after "
                f"{self.config.navigation_timeout:g} seconds",
                definition.id,
                {"url": url},
            ) from exc
        except PlaywrightError as exc:
            raise ExtractionError(
                f"Failed to scrape {definition.name}: {exc.message}", definition.id, {"url": url}
            ) from exc

        metadata = metadata_from_fields(fields, url, definition)
        soup = BeautifulSoup(html, "html.parser")
        return finalize_metadata(metadata, soup, url, definition)

    async def _render(self, url: str, definition: PlatformDefinition) -> tuple[Dict[str, Any], str]:
        timeout_ms = self.config.navigation_timeout * 1000
        async with async_playwright() as pw:
            browser = await pw.chromium.launch(headless=self.config.headless, args=CHROME_ARGS)
            try:
                context = await browser.new_context(
                    user_agent=self.config.user_agent,
                    viewport={"width": 1920, "height": 1080},
                )
                page = await context.new_page()
                page.set_default_timeout(timeout_ms)
                page.set_default_navigation_timeout(timeout_ms)
                page.on("pageerror", lambda err: logger.debug("Page script error on %s: %s", url, err))
                await page.route("**/*", _route_request)

                await page.goto(url, wait_until="domcontentloaded")
                try:
                    await page.wait_for_selector(
                        'title, h1, meta[property="og:title"]', state="attached", timeout=CONTENT_PROBE_MS
                    )
                except PlaywrightTimeoutError:
                    logger.debug("No basic content on %s yet, extracting anyway", url)

                fields = await page.evaluate(EXTRACT_SCRIPT, definition.selectors.to_dict())
                html = await page.content()
                return fields, html
            finally:
                # Closing the browser closes its contexts and pages.
                try:
                    await browser.close()
                except PlaywrightError as exc:
                    logger.warning("Error closing browser for %s: %s", url, exc)
