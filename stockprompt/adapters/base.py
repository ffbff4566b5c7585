from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup


@dataclass
class ImageMetadata:
    """Metadata scraped from one stock listing. Absent text fields are ``""``."""

    platform: str
    title: str = ""
    description: str = ""
    tags: List[str] = field(default_factory=list)
    image_url: str = ""
    category: str = ""
    stock_id: str = ""
    image_base64: Optional[str] = None
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def has_content(self) -> bool:
        return bool(self.title or self.image_url)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "imageUrl": self.image_url,
            "category": self.category,
            "stockId": self.stock_id,
            "platform": self.platform,
            "scrapedAt": self.scraped_at.isoformat(),
        }
        if self.image_base64:
            data["imageBase64"] = self.image_base64
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageMetadata":
        scraped_at = data.get("scrapedAt")
        if isinstance(scraped_at, str):
            scraped_at = datetime.fromisoformat(scraped_at.replace("Z", "+00:00"))
        if not isinstance(scraped_at, datetime):
            scraped_at = datetime.now(timezone.utc)
        return cls(
            platform=data.get("platform") or "",
            title=data.get("title") or "",
            description=data.get("description") or "",
            tags=list(data.get("tags") or []),
            image_url=data.get("imageUrl") or "",
            category=data.get("category") or "",
            stock_id=data.get("stockId") or "",
            image_base64=data.get("imageBase64") or None,
            scraped_at=scraped_at,
        )


@dataclass(frozen=True)
class SelectorTable:
    """Ordered CSS selectors per metadata field; earlier selectors win."""

    title: Tuple[str, ...] = ()
    description: Tuple[str, ...] = ()
    image: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    category: Tuple[str, ...] = ()
    stock_id: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "title": list(self.title),
            "description": list(self.description),
            "image": list(self.image),
            "tags": list(self.tags),
            "category": list(self.category),
            "stockId": list(self.stock_id),
        }


# Post-processing hook run after generic extraction. Mutates metadata in place.
Enhancer = Callable[[ImageMetadata, BeautifulSoup, str], None]


@dataclass(frozen=True)
class PlatformDefinition:
    """
    Static description of one supported stock site.
    The extractors are parameterized by this value; nothing here changes at runtime.
    """

    id: str
    name: str
    domain: str
    pattern: Pattern[str]
    selectors: SelectorTable
    requires_js: bool = False
    title_suffixes: Tuple[Pattern[str], ...] = ()
    enhancers: Tuple[Enhancer, ...] = ()

    def matches(self, url: str) -> bool:
        """Return True if the URL host belongs to this platform."""
        return bool(self.pattern.search(host_of(url)))

    def strip_branding(self, title: str) -> str:
        for suffix in self.title_suffixes:
            title = suffix.sub("", title)
        return title.strip()

    def describe(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "domain": self.domain}


def host_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def host_pattern(*domains: str) -> Pattern[str]:
    """Regex matching any of the domains or one of their subdomains."""
    alternatives = "|".join(re.escape(d) for d in domains)
    return re.compile(rf"(?:^|\.)(?:{alternatives})$", re.IGNORECASE)


def brand_suffixes(brand: str) -> Tuple[Pattern[str], ...]:
    """Patterns for ``"... | Brand"`` and ``"... - Brand"`` title endings."""
    name = r"\s+".join(re.escape(part) for part in brand.split())
    return (
        re.compile(rf"\s*\|\s*{name}\s*$", re.IGNORECASE),
        re.compile(rf"\s*-\s*{name}\s*$", re.IGNORECASE),
    )
