from __future__ import annotations

import re

from bs4 import BeautifulSoup

from .base import ImageMetadata, PlatformDefinition, SelectorTable, brand_suffixes, host_pattern
from ..utils.parsing import clean_text, dedupe_tags, jsonld_items, jsonld_keywords, jsonld_types

_SIZE_DIR_RE = re.compile(r"/\d+x\d+/")
_BACKFILL_TYPES = {"ImageObject", "CreativeWork"}


def asset_id_attribute(metadata: ImageMetadata, soup: BeautifulSoup, url: str) -> None:
    node = soup.select_one("[data-asset-id]")
    asset_id = (node.get("data-asset-id") or "").strip() if node else ""
    if asset_id:
        metadata.stock_id = asset_id


def upscale_preview(metadata: ImageMetadata, soup: BeautifulSoup, url: str) -> None:
    node = soup.select_one(".preview-asset img")
    src = node.get("src") if node else None
    if not src:
        meta = soup.select_one('meta[property="og:image"]')
        src = meta.get("content") if meta else None
    if not src or "adobe.com" not in src:
        return
    larger = _SIZE_DIR_RE.sub("/1000x1000/", src, count=1)
    if larger != src:
        metadata.image_url = larger


def backfill_from_jsonld(metadata: ImageMetadata, soup: BeautifulSoup, url: str) -> None:
    """Fill gaps left by the DOM selectors from ImageObject/CreativeWork JSON-LD."""
    for item in jsonld_items(soup):
        if not _BACKFILL_TYPES.intersection(jsonld_types(item)):
            continue
        keywords = jsonld_keywords(item)
        if keywords:
            metadata.tags = dedupe_tags([*metadata.tags, *keywords])
        if not metadata.title and isinstance(item.get("name"), str):
            metadata.title = clean_text(item["name"])
        if not metadata.description and isinstance(item.get("description"), str):
            metadata.description = clean_text(item["description"])


ADOBE_STOCK = PlatformDefinition(
    id="adobe-stock",
    name="Adobe Stock",
    domain="stock.adobe.com",
    pattern=host_pattern("stock.adobe.com"),
    selectors=SelectorTable(
        title=(
            "h1",
            'meta[property="og:title"]',
            ".asset-title",
            '[data-testid="asset-title"]',
            "title",
        ),
        description=(
            'meta[property="og:description"]',
            'meta[name="description"]',
            ".asset-description",
        ),
        image=(
            'meta[property="og:image"]',
            ".preview-asset img",
            ".asset-preview img",
            '[data-testid="asset-preview"]',
            ".thumbnail img",
        ),
        tags=(
            ".search-keyword",
            ".keyword-link",
            ".tag",
            ".asset-keywords .keyword",
            ".keywords-list .keyword-item",
        ),
        category=(
            ".breadcrumb-link:last-child",
            ".breadcrumb a:last-child",
            ".category-breadcrumb .breadcrumb-item:last-child",
        ),
        stock_id=(
            ".asset-id",
        ),
    ),
    title_suffixes=(
        *brand_suffixes("Adobe Stock"),
        re.compile(r"^\s*Adobe\s+Stock\s*-\s*", re.IGNORECASE),
    ),
    enhancers=(asset_id_attribute, upscale_preview, backfill_from_jsonld),
)
