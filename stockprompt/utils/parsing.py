from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..adapters.base import ImageMetadata, PlatformDefinition

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_EDGE_NON_WORD_RE = re.compile(r"^\W+|\W+$")

# Tried in order against the raw URL; first capture wins.
STOCK_ID_PATTERNS = (
    re.compile(r"/(\d+)(?:\?|$|/)"),
    re.compile(r"image-(\d+)"),
    re.compile(r"photo-(\d+)"),
    re.compile(r"id[=:](\d+)"),
    re.compile(r"stock[_-]?id[=:](\d+)"),
    re.compile(r"-(\d{6,})"),
    re.compile(r"(\d{7,})"),
)


def clean_text(text: Optional[str]) -> str:
    """
    Collapse whitespace runs, strip leading/trailing non-word characters, trim.
    """
    if not text:
        return ""
    text = _WHITESPACE_RE.sub(" ", text)
    text = _EDGE_NON_WORD_RE.sub("", text)
    return text.strip()


def element_value(node: Tag, *, image: bool = False) -> str:
    """
    Value of a matched element: ``content`` attribute first (meta tags), then
    ``src``/``data-src`` for image fields, then the trimmed text.
    """
    content = node.get("content")
    if content and content.strip():
        return content.strip()
    if image:
        for attr in ("src", "data-src"):
            value = node.get(attr)
            if value and value.strip():
                return value.strip()
    return node.get_text(" ", strip=True)


def select_first(soup: BeautifulSoup, selectors: Sequence[str], *, image: bool = False) -> str:
    """Return the value of the first selector yielding non-empty content."""
    for selector in selectors:
        node = soup.select_one(selector)
        if node is None:
            continue
        value = element_value(node, image=image)
        if value:
            return value
    return ""


def select_all(soup: BeautifulSoup, selectors: Sequence[str]) -> List[str]:
    """
    Accumulate text from every selector. Values are cleaned, empties dropped and
    duplicates removed by first occurrence.
    """
    raw: List[str] = []
    for selector in selectors:
        for node in soup.select(selector):
            raw.append(node.get_text(" ", strip=True))
    return dedupe_tags(raw)


def dedupe_tags(values: Iterable[Any]) -> List[str]:
    out: List[str] = []
    seen = set()
    for value in values:
        if not isinstance(value, str):
            continue
        tag = clean_text(value)
        if tag and tag not in seen:
            seen.add(tag)
            out.append(tag)
    return out


def extract_stock_id(url: str) -> str:
    for pattern in STOCK_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return ""


def absolute_url(value: str, base_url: str) -> str:
    if not value:
        return ""
    return urljoin(base_url, value)


def metadata_from_fields(fields: Dict[str, Any], url: str, definition: PlatformDefinition) -> ImageMetadata:
    """
    Build cleaned metadata from raw per-field values, as produced by either the
    BeautifulSoup pass or the in-page browser script.
    """
    stock_id = (fields.get("stockId") or "").strip() or extract_stock_id(url)
    return ImageMetadata(
        platform=definition.id,
        title=clean_text(fields.get("title")),
        description=clean_text(fields.get("description")),
        tags=dedupe_tags(fields.get("tags") or []),
        image_url=absolute_url((fields.get("image") or "").strip(), url),
        category=clean_text(fields.get("category")),
        stock_id=stock_id,
    )


def extract_fields(soup: BeautifulSoup, definition: PlatformDefinition) -> Dict[str, Any]:
    selectors = definition.selectors
    return {
        "title": select_first(soup, selectors.title),
        "description": select_first(soup, selectors.description),
        "image": select_first(soup, selectors.image, image=True),
        "tags": select_all(soup, selectors.tags),
        "category": select_first(soup, selectors.category),
        "stockId": select_first(soup, selectors.stock_id),
    }


def tidy_title(title: str, definition: PlatformDefinition) -> str:
    return clean_text(definition.strip_branding(title)) if title else ""


def finalize_metadata(
    metadata: ImageMetadata,
    soup: BeautifulSoup,
    url: str,
    definition: PlatformDefinition,
) -> ImageMetadata:
    """Strip title branding, run the platform's enhancers in order, then tidy the title again."""
    metadata.title = tidy_title(metadata.title, definition)
    for enhance in definition.enhancers:
        try:
            enhance(metadata, soup, url)
        except Exception as exc:  # enhancers are best-effort
            logger.debug("Enhancer %s failed on %s: %r", getattr(enhance, "__name__", enhance), url, exc)
    # Enhancers may set a title from branded alt text or JSON-LD.
    metadata.title = tidy_title(metadata.title, definition)
    return metadata


def extract_metadata(html: str, url: str, definition: PlatformDefinition) -> ImageMetadata:
    """Apply a platform's selector table to an HTML document."""
    soup = BeautifulSoup(html, "html.parser")
    metadata = metadata_from_fields(extract_fields(soup, definition), url, definition)
    return finalize_metadata(metadata, soup, url, definition)


# ---- JSON-LD ---------------------------------------------------------------


def jsonld_items(soup: BeautifulSoup) -> List[Dict[str, Any]]:
    """All JSON-LD objects on the page, flattened across lists and @graph."""
    items: List[Dict[str, Any]] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        payload = script.string or script.get_text() or ""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            continue
        items.extend(i for i in _iter_jsonld_items(data) if isinstance(i, dict))
    return items


def _iter_jsonld_items(data: Any) -> Iterable[Any]:
    if isinstance(data, list):
        for item in data:
            yield from _iter_jsonld_items(item)
    elif isinstance(data, dict):
        if "@graph" in data:
            yield from _iter_jsonld_items(data["@graph"])
        else:
            yield data


def jsonld_types(item: Dict[str, Any]) -> List[str]:
    type_field = item.get("@type")
    if isinstance(type_field, str):
        return [type_field]
    if isinstance(type_field, list):
        return [t for t in type_field if isinstance(t, str)]
    return []


def jsonld_keywords(item: Dict[str, Any]) -> List[str]:
    keywords = item.get("keywords")
    if isinstance(keywords, list):
        return [k for k in keywords if isinstance(k, str)]
    if isinstance(keywords, str):
        return [k for k in keywords.split(",")]
    return []
