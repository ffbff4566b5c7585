from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, List

from ..adapters.base import ImageMetadata
from ..config import AppConfig
from ..errors import StockPromptError
from ..providers.base import PROMPT_STYLES, TARGET_PLATFORMS
from ..service import PromptService
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)

PROVIDER_CHOICES = ["openai", "openai-fast", "gemini", "claude"]


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Stock image metadata scraper and AI prompt generator")
    p.add_argument("--config", type=str, help="Path to config JSON", default=None)
    p.add_argument("--log-level", type=str, default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    sub = p.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Extract metadata and preview image from a stock listing URL")
    scrape.add_argument("url", help="Stock listing URL")
    scrape.add_argument("--no-image", action="store_true", help="Omit imageBase64 from the output")

    def _provider_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--provider", choices=PROVIDER_CHOICES, required=True)
        sp.add_argument("--api-key", type=str, default=None,
                        help="Provider API key (default: STOCKPROMPT_API_KEY)")

    generate = sub.add_parser("generate", help="Scrape a URL and generate an AI image prompt")
    generate.add_argument("url", nargs="?", default=None, help="Stock listing URL")
    generate.add_argument("--metadata", type=str, default=None,
                          help="Use a saved `scrape` JSON result instead of scraping a URL")
    _provider_args(generate)
    generate.add_argument("--style", choices=sorted(PROMPT_STYLES), default="detailed")
    generate.add_argument("--target", choices=sorted(TARGET_PLATFORMS), default=None)

    validate = sub.add_parser("validate-key", help="Check an API key against its provider")
    _provider_args(validate)

    sub.add_parser("platforms", help="List supported stock platforms")
    sub.add_parser("providers", help="List supported AI providers")

    serve = sub.add_parser("serve", help="Run the REST API server")
    serve.add_argument("--host", type=str, default="127.0.0.1", help="API host")
    serve.add_argument("--port", type=int, default=8000, help="API port")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (not with --config)")
    return p


def _load_config(args: argparse.Namespace) -> AppConfig:
    cfg = AppConfig.from_file(args.config) if args.config else AppConfig.from_env()
    cfg.validate()
    return cfg


def _api_key(args: argparse.Namespace) -> str:
    return args.api_key or os.getenv("STOCKPROMPT_API_KEY", "")


def _emit(payload: Any) -> None:
    json.dump(payload, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


def _read_metadata(path: str) -> ImageMetadata:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    # Accept either a bare metadata object or a full `scrape` envelope.
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]
    return ImageMetadata.from_dict(data)


async def _generate(service: PromptService, args: argparse.Namespace) -> int:
    api_key = _api_key(args)
    if args.metadata:
        metadata = _read_metadata(args.metadata)
        result = await service.generate_prompt(args.provider, api_key, metadata, args.style, args.target)
        _emit(result.to_dict())
        return 0 if result.success else 1

    pipeline = await service.analyze_and_generate(args.url, args.provider, api_key, args.style, args.target)
    out: dict = {"success": pipeline.success, "originalUrl": pipeline.url, "scrape": pipeline.scrape.to_dict()}
    if pipeline.generation is not None:
        out["generation"] = pipeline.generation.to_dict()
    if pipeline.error:
        out["error"] = pipeline.error
    out["totalTime"] = pipeline.total_time
    _emit(out)
    return 0 if pipeline.success else 1


async def _dispatch(service: PromptService, args: argparse.Namespace) -> int:
    if args.command == "scrape":
        result = await service.scrape_stock_url(args.url)
        if args.no_image and result.data is not None:
            result.data.image_base64 = None
        _emit(result.to_dict())
        return 0 if result.success else 1

    if args.command == "generate":
        return await _generate(service, args)

    if args.command == "validate-key":
        result = await service.validate_api_key(args.provider, _api_key(args))
        _emit(result.to_dict())
        return 0 if result.is_valid else 1

    raise ValueError(f"Unknown command: {args.command}")


def run_server(host: str, port: int, reload: bool = False, service: PromptService | None = None) -> None:
    """
    Serve the REST API. With an explicit service the app object is passed to
    uvicorn directly; otherwise the module-level app is imported by name so
    that ``--reload`` works.
    """
    import uvicorn

    if service is not None:
        from ..apis.app import create_app

        uvicorn.run(create_app(service), host=host, port=port)
        return
    uvicorn.run("stockprompt.apis.app:app", host=host, port=port, reload=reload)


def run_cli(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "serve" and args.config and args.reload:
        parser.error("--reload cannot be combined with --config")
    if args.command == "generate" and not (args.url or args.metadata):
        parser.error("generate needs a URL or --metadata")

    try:
        cfg = _load_config(args)
    except (OSError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    service = PromptService.from_config(cfg)

    if args.command == "serve":
        run_server(args.host, args.port, args.reload, service if args.config else None)
        return 0

    if args.command == "platforms":
        _emit(service.supported_platforms())
        return 0
    if args.command == "providers":
        _emit(service.supported_providers())
        return 0

    try:
        return asyncio.run(_dispatch(service, args))
    except StockPromptError as exc:
        # Deadline expiry in the combined pipeline.
        _emit({"success": False, "error": exc.message})
        return 1
