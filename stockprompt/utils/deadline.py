from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from ..errors import NetworkTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_with_deadline(operation: Awaitable[T], seconds: float, label: str) -> T:
    """
    Await ``operation`` for at most ``seconds``.

    On expiry the underlying task is cancelled, which aborts in-flight aiohttp
    requests and unwinds browser cleanup blocks, then NetworkTimeoutError is raised.
    """
    try:
        return await asyncio.wait_for(operation, timeout=seconds)
    except asyncio.TimeoutError as exc:
        logger.warning("%s timed out after %ss", label, seconds)
        raise NetworkTimeoutError(f"{label} timed out after {seconds:g} seconds") from exc
