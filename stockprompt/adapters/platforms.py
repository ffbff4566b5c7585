"""
Selector table for every supported stock site.

Sites needing nothing beyond the generic extraction and branding cleanup are
declared inline; sites with extra post-processing live in their own module.
"""
from __future__ import annotations

import re
from typing import Tuple

from .base import PlatformDefinition, SelectorTable, brand_suffixes, host_pattern
from .adobe_stock import ADOBE_STOCK
from .shutterstock import SHUTTERSTOCK

FREEPIK = PlatformDefinition(
    id="freepik",
    name="Freepik",
    domain="freepik.com",
    pattern=host_pattern("freepik.com"),
    requires_js=True,
    selectors=SelectorTable(
        title=(
            "h1",
            '[data-testid="resource-title"]',
            'meta[property="og:title"]',
            ".resource-title",
            "title",
        ),
        description=(
            'meta[name="description"]',
            'meta[property="og:description"]',
            ".resource-description",
        ),
        image=(
            ".preview-image img",
            '[data-testid="preview-image"]',
            'meta[property="og:image"]',
            ".resource-preview img",
            ".main-preview img",
        ),
        tags=(
            ".tag",
            ".keyword",
            '[data-testid="tag"]',
            ".tag-list .tag-item",
            ".resource-tags .tag",
        ),
        category=(
            ".breadcrumb a:last-child",
            ".category-breadcrumb .breadcrumb-item:last-child",
            ".nav-breadcrumb .breadcrumb-item:last-child",
        ),
    ),
    title_suffixes=(
        re.compile(r"\s*\|\s*Free.*?Vector\s*$", re.IGNORECASE),
        *brand_suffixes("Freepik"),
    ),
)

GETTY_IMAGES = PlatformDefinition(
    id="getty-images",
    name="Getty Images",
    domain="gettyimages.com",
    pattern=host_pattern("gettyimages.com"),
    selectors=SelectorTable(
        title=('h1[data-testid="asset-title"]', "h1", 'meta[property="og:title"]', ".asset-title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]', ".asset-caption"),
        image=('meta[property="og:image"]', ".gallery-asset__thumb img", ".asset-preview img", ".preview-image img"),
        tags=(".keyword-list .keyword", ".tag", ".keyword-tag", ".asset-keywords .keyword"),
        category=(".breadcrumb a:last-child", ".category-link:last-child"),
    ),
    title_suffixes=brand_suffixes("Getty Images"),
)

DREAMSTIME = PlatformDefinition(
    id="dreamstime",
    name="Dreamstime",
    domain="dreamstime.com",
    pattern=host_pattern("dreamstime.com"),
    selectors=SelectorTable(
        title=("h1", 'meta[property="og:title"]', ".image-title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]', ".image-description"),
        image=('meta[property="og:image"]', ".preview-image img", ".main-image img", "#preview-image"),
        tags=(".keywords a", ".tag", ".keyword-link"),
        category=(".breadcrumb a:last-child", ".category:last-child"),
    ),
    title_suffixes=brand_suffixes("Dreamstime"),
)

ICONSCOUT = PlatformDefinition(
    id="iconscout",
    name="Iconscout",
    domain="iconscout.com",
    pattern=host_pattern("iconscout.com"),
    selectors=SelectorTable(
        title=("h1", 'meta[property="og:title"]', ".asset-title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]'),
        image=('meta[property="og:image"]', ".preview-image img", ".asset-preview img", ".main-preview img"),
        tags=(".tag-list .tag", ".keyword", ".tag"),
        category=(".breadcrumb a:last-child", ".category-breadcrumb .category:last-child"),
    ),
    title_suffixes=brand_suffixes("Iconscout"),
)

POND5 = PlatformDefinition(
    id="pond5",
    name="Pond5",
    domain="pond5.com",
    pattern=host_pattern("pond5.com"),
    selectors=SelectorTable(
        title=("h1", 'meta[property="og:title"]', ".title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]', ".description"),
        image=('meta[property="og:image"]', ".preview img", ".thumbnail img"),
        tags=(".keywords .keyword", ".tag", ".keyword-list .keyword"),
        category=(".breadcrumb a:last-child",),
    ),
    title_suffixes=brand_suffixes("Pond5"),
)

ARABSTOCK = PlatformDefinition(
    id="arabstock",
    name="Arabstock",
    domain="arabstock.com",
    pattern=host_pattern("arabstock.com"),
    selectors=SelectorTable(
        title=("h1", 'meta[property="og:title"]', ".image-title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]'),
        image=('meta[property="og:image"]', ".preview-image img", ".main-image img"),
        tags=(".keywords .keyword", ".tag-list .tag", ".tag"),
        category=(".breadcrumb a:last-child",),
    ),
    title_suffixes=brand_suffixes("Arabstock"),
)

VECTEEZY = PlatformDefinition(
    id="vecteezy",
    name="Vecteezy",
    domain="vecteezy.com",
    pattern=host_pattern("vecteezy.com"),
    selectors=SelectorTable(
        title=("h1", 'meta[property="og:title"]', ".asset-title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]'),
        image=('meta[property="og:image"]', ".preview-image img", ".asset-image img"),
        tags=(".tag-list .tag", ".keyword", ".tag"),
        category=(".breadcrumb a:last-child",),
    ),
    title_suffixes=brand_suffixes("Vecteezy"),
)

CREATIVE_FABRICA = PlatformDefinition(
    id="creative-fabrica",
    name="Creative Fabrica",
    domain="creativefabrica.com",
    pattern=host_pattern("creativefabrica.com"),
    selectors=SelectorTable(
        title=("h1", 'meta[property="og:title"]', ".product-title", "title"),
        description=('meta[name="description"]', 'meta[property="og:description"]', ".product-description"),
        image=('meta[property="og:image"]', ".product-image img", ".preview-image img"),
        tags=(".tag-list .tag", ".keyword", ".product-tags .tag"),
        category=(".breadcrumb a:last-child", ".category-breadcrumb .category:last-child"),
    ),
    title_suffixes=brand_suffixes("Creative Fabrica"),
)

# Local fixtures and smoke tests: plain selector extraction against test hosts.
MOCK = PlatformDefinition(
    id="mock",
    name="Mock Platform (Testing)",
    domain="example.com",
    pattern=host_pattern("example.com", "test.com", "localhost", "127.0.0.1"),
    selectors=SelectorTable(
        title=("title",),
        description=('meta[name="description"]',),
        image=('meta[property="og:image"]',),
        tags=(".tag",),
    ),
)

# Registry order: identification tries these top to bottom.
PLATFORMS: Tuple[PlatformDefinition, ...] = (
    SHUTTERSTOCK,
    FREEPIK,
    ADOBE_STOCK,
    GETTY_IMAGES,
    DREAMSTIME,
    ICONSCOUT,
    POND5,
    ARABSTOCK,
    VECTEEZY,
    CREATIVE_FABRICA,
    MOCK,
)
