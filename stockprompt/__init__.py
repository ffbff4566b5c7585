"""Stock image metadata scraping and AI prompt generation."""

from .version import __version__

__all__ = ["__version__"]
