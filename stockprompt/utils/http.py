from __future__ import annotations

import asyncio
from typing import Dict, Optional
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

from ..errors import ImageDownloadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def page_headers(user_agent: str) -> Dict[str, str]:
    """Browser-like request headers; many stock sites reject default client signatures."""
    return {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "none",
        "Cache-Control": "max-age=0",
    }


def image_headers(user_agent: str) -> Dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Referer": "https://www.google.com/",
        "Accept": "image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
    }


async def fetch_text(
    session: ClientSession,
    url: str,
    *,
    timeout: float = 15.0,
    headers: Optional[Dict[str, str]] = None,
) -> str:
    """
    Fetch a URL and return body text. Non-2xx responses raise
    ``aiohttp.ClientResponseError``; there is no retry.
    """
    async with session.get(url, headers=headers or {}, timeout=ClientTimeout(total=timeout)) as resp:
        resp.raise_for_status()
        # Declared charsets are not trusted.
        return await resp.text(errors="replace")


async def fetch_bytes(
    session: ClientSession,
    url: str,
    *,
    max_bytes: int,
    timeout: float = 30.0,
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """
    Download a body, refusing it once it exceeds ``max_bytes``.
    The declared Content-Length is checked before reading; the running total
    is checked per chunk for chunked or lying responses.
    """
    try:
        async with session.get(url, headers=headers or {}, timeout=ClientTimeout(total=timeout)) as resp:
            resp.raise_for_status()
            declared = resp.content_length
            if declared is not None and declared > max_bytes:
                raise ImageDownloadError(
                    f"Image too large: {declared} bytes exceeds limit of {max_bytes} bytes",
                    {"url": url},
                )
            buf = bytearray()
            async for chunk in resp.content.iter_chunked(_CHUNK_SIZE):
                buf.extend(chunk)
                if len(buf) > max_bytes:
                    raise ImageDownloadError(
                        f"Image too large: exceeded limit of {max_bytes} bytes",
                        {"url": url},
                    )
            logger.debug("Downloaded %s bytes from %s", len(buf), url)
            return bytes(buf)
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise ImageDownloadError(f"Failed to download image: {exc!r}", {"url": url}) from exc


def create_session() -> ClientSession:
    """
    Create an aiohttp ClientSession.
    """
    # Note: caller is responsible for closing the session (async with / await session.close()).
    connector = aiohttp.TCPConnector(limit=0)
    return aiohttp.ClientSession(connector=connector)
