from __future__ import annotations

from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

from .base import PlatformDefinition
from .platforms import PLATFORMS
from ..errors import InvalidURLError, UnsupportedPlatformError


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


class PlatformRegistry:
    """
    Registry of platform definitions, in identification order.
    Built-ins are loaded at construction; tests may register extras.
    """
    def __init__(self, definitions: Optional[Iterable[PlatformDefinition]] = None) -> None:
        self._definitions: List[PlatformDefinition] = list(PLATFORMS if definitions is None else definitions)

    # ---- Introspection / Management ----

    def register(self, definition: PlatformDefinition) -> None:
        if any(d.id == definition.id for d in self._definitions):
            raise ValueError(f"Platform already registered: {definition.id}")
        self._definitions.append(definition)

    def describe(self) -> List[Dict[str, str]]:
        return [d.describe() for d in self._definitions]

    # ---- Identification ----

    def match(self, url: str) -> PlatformDefinition:
        if not is_valid_url(url):
            raise InvalidURLError("Invalid URL provided", {"url": url})
        for definition in self._definitions:
            if definition.matches(url):
                return definition
        domains = ", ".join(d.domain for d in self._definitions)
        raise UnsupportedPlatformError(
            f"Unsupported platform URL. Supported domains: {domains}",
            {"url": url},
        )

    def identify(self, url: str) -> str:
        return self.match(url).id
