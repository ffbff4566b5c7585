from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Chatty third-party loggers kept at WARNING unless DEBUG is requested.
_NOISY = ("aiohttp.access", "asyncio", "PIL")


def resolve_level(level: str | int | None) -> int:
    if level is None:
        level = os.getenv("STOCKPROMPT_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: str | int | None = None, stream: Optional[IO[str]] = None) -> None:
    """
    Configure the root logger once for the CLI or the API server.

    Logs go to stderr so that CLI subcommands can keep stdout for JSON results.
    """
    numeric = resolve_level(level)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=stream or sys.stderr, force=True)
    quiet = logging.WARNING if numeric > logging.DEBUG else logging.NOTSET
    for name in _NOISY:
        logging.getLogger(name).setLevel(quiet)
