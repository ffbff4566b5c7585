from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from abc import ABC, abstractmethod

from ..adapters.base import ImageMetadata, PlatformDefinition


@dataclass
class ScrapeResult:
    success: bool
    processing_time: int  # milliseconds
    data: Optional[ImageMetadata] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "processingTime": self.processing_time}
        if self.data is not None:
            out["data"] = self.data.to_dict()
        if self.error is not None:
            out["error"] = self.error
        return out


class Extractor(ABC):
    """
    Turns one listing URL into metadata using a platform definition.
    Implementations own their transport and raise ExtractionError on failure.
    """
    @abstractmethod
    async def extract(self, url: str, definition: PlatformDefinition) -> ImageMetadata:  # pragma: no cover - interface
        ...
