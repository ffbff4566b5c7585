from __future__ import annotations

import re

from bs4 import BeautifulSoup

from .base import ImageMetadata, PlatformDefinition, SelectorTable, brand_suffixes, host_pattern
from ..utils.parsing import clean_text, dedupe_tags, jsonld_items, jsonld_keywords

PREVIEW_IMAGE = 'img[data-testid="asset-preview-image"]'
GRID_IMAGE = 'img[data-automation="mosaic-grid-cell-image"]'

_SIZE_DIR_RE = re.compile(r"/\d+x\d+/")
_WIDTH_PARAM_RE = re.compile(r"w_\d+")


def title_from_preview_alt(metadata: ImageMetadata, soup: BeautifulSoup, url: str) -> None:
    if metadata.title:
        return
    for selector in (PREVIEW_IMAGE, GRID_IMAGE):
        node = soup.select_one(selector)
        alt = clean_text(node.get("alt")) if node else ""
        if alt:
            metadata.title = alt
            return


def merge_jsonld_keywords(metadata: ImageMetadata, soup: BeautifulSoup, url: str) -> None:
    keywords = [kw for item in jsonld_items(soup) for kw in jsonld_keywords(item)]
    if keywords:
        metadata.tags = dedupe_tags([*metadata.tags, *keywords])


def upscale_preview(metadata: ImageMetadata, soup: BeautifulSoup, url: str) -> None:
    """Ask the CDN for the 1500px rendition of the preview image."""
    node = soup.select_one(PREVIEW_IMAGE)
    src = node.get("src") if node else None
    if not src or "shutterstock.com" not in src:
        return
    larger = _WIDTH_PARAM_RE.sub("w_1500", _SIZE_DIR_RE.sub("/1500x1500/", src, count=1), count=1)
    if larger != src:
        metadata.image_url = larger


SHUTTERSTOCK = PlatformDefinition(
    id="shutterstock",
    name="Shutterstock",
    domain="shutterstock.com",
    pattern=host_pattern("shutterstock.com"),
    selectors=SelectorTable(
        title=(
            'h1[data-automation="AssetTitle"]',
            'h1[data-testid="asset-title"]',
            "h1",
            'meta[property="og:title"]',
            "title",
        ),
        description=(
            'meta[name="description"]',
            'meta[property="og:description"]',
            '[data-testid="asset-description"]',
        ),
        image=(
            'meta[property="og:image"]',
            GRID_IMAGE,
            PREVIEW_IMAGE,
            ".mosaic-asset-preview img",
            ".preview-asset img",
        ),
        tags=(
            ".MuiChip-label",
            ".keyword-tag",
            '[data-testid="keyword"]',
            ".tag-list .tag",
            ".keywords-list .keyword",
        ),
        category=(
            ".breadcrumb-item:last-child",
            ".breadcrumb a:last-child",
            ".category-breadcrumb .breadcrumb-link:last-child",
        ),
        stock_id=(
            '[data-testid="asset-id"]',
            ".asset-id",
        ),
    ),
    title_suffixes=brand_suffixes("Shutterstock"),
    enhancers=(title_from_preview_alt, merge_jsonld_keywords, upscale_preview),
)
