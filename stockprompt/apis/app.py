from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..adapters.base import ImageMetadata
from ..adapters.registry import is_valid_url
from ..errors import StockPromptError
from ..service import PromptService
from ..version import __version__

logger = logging.getLogger(__name__)

ProviderId = Literal["openai", "openai-fast", "gemini", "claude"]
PromptStyle = Literal["detailed", "concise", "artistic", "technical"]
TargetPlatform = Literal["midjourney", "dall-e", "stable-diffusion", "leonardo"]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UrlField(ApiModel):
    url: str

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        if not is_valid_url(value):
            raise ValueError("Please provide a valid HTTP/HTTPS URL")
        return value


class AnalyzeUrlRequest(UrlField):
    pass


class ApiKeyRequest(ApiModel):
    provider: ProviderId
    api_key: str = Field(min_length=10)


class ImagePayload(ApiModel):
    platform: str
    image_base64: str
    title: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    image_url: str = ""
    category: str = ""
    stock_id: str = ""
    scraped_at: Optional[datetime] = None

    def to_metadata(self) -> ImageMetadata:
        return ImageMetadata(
            platform=self.platform,
            title=self.title,
            description=self.description,
            tags=list(self.tags),
            image_url=self.image_url,
            category=self.category,
            stock_id=self.stock_id,
            image_base64=self.image_base64,
            scraped_at=self.scraped_at or datetime.now(timezone.utc),
        )


class GeneratePromptRequest(ApiKeyRequest):
    image_data: ImagePayload
    prompt_style: PromptStyle = "detailed"
    target_platform: Optional[TargetPlatform] = None


class AnalyzeAndGenerateRequest(UrlField):
    provider: ProviderId
    api_key: str = Field(min_length=10)
    prompt_style: PromptStyle = "detailed"
    target_platform: Optional[TargetPlatform] = None


def _fail(status: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": error})


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(service: Optional[PromptService] = None) -> FastAPI:
    app = FastAPI(title="stockprompt API", version=__version__)
    app.state.service = service or PromptService.from_config()

    def svc(request: Request) -> PromptService:
        return request.app.state.service

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [str(err.get("msg", "")) for err in exc.errors()]
        return _fail(400, f"Validation error: {', '.join(messages)}")

    @app.get("/api/health")
    async def health() -> Dict[str, Any]:
        return {"success": True, "data": {"status": "healthy", "timestamp": _now(), "version": __version__}}

    @app.get("/api/supported-platforms")
    async def supported_platforms(request: Request) -> Dict[str, Any]:
        return {"success": True, "data": {"platforms": svc(request).supported_platforms()}}

    @app.get("/api/supported-providers")
    async def supported_providers(request: Request) -> Dict[str, Any]:
        return {"success": True, "data": {"providers": svc(request).supported_providers()}}

    @app.post("/api/analyze-url")
    async def analyze_url(req: AnalyzeUrlRequest, request: Request):
        logger.info("Analyzing URL: %s", req.url)
        result = await svc(request).scrape_stock_url(req.url)
        if not result.success or result.data is None:
            return _fail(400, result.error or "Failed to analyze URL")
        return {
            "success": True,
            "data": result.data.to_dict(),
            "message": f"Successfully analyzed {result.data.platform} URL in {result.processing_time}ms",
        }

    @app.post("/api/generate-prompt")
    async def generate_prompt(req: GeneratePromptRequest, request: Request):
        logger.info("Generating prompt with %s for %s image", req.provider, req.image_data.platform)
        result = await svc(request).generate_prompt(
            req.provider, req.api_key, req.image_data.to_metadata(), req.prompt_style, req.target_platform
        )
        if not result.success:
            return _fail(400, result.error or "Failed to generate prompt")
        return {
            "success": True,
            "data": {
                "prompt": result.prompt,
                "variations": result.variations,
                "confidence": result.confidence,
                "processingTime": result.processing_time,
                "metadata": {
                    "provider": req.provider,
                    "style": req.prompt_style,
                    "platform": req.target_platform,
                    "originalPlatform": req.image_data.platform,
                    "generatedAt": _now(),
                },
            },
            "message": f"Successfully generated {req.provider} prompt in {result.processing_time}ms",
        }

    @app.post("/api/analyze-and-generate")
    async def analyze_and_generate(req: AnalyzeAndGenerateRequest, request: Request):
        try:
            result = await svc(request).analyze_and_generate(
                req.url, req.provider, req.api_key, req.prompt_style, req.target_platform
            )
        except StockPromptError as exc:
            logger.error("Combined request failed: %s", exc.message)
            return _fail(500, exc.message)

        if not result.success:
            return _fail(400, result.error or "Failed to analyze URL")

        generation = result.generation
        return {
            "success": True,
            "data": {
                "originalUrl": req.url,
                "imageData": result.scrape.data.to_dict(),
                "generatedPrompt": generation.prompt,
                "variations": generation.variations,
                "metadata": {
                    "provider": req.provider,
                    "style": req.prompt_style,
                    "platform": req.target_platform,
                    "confidence": generation.confidence,
                    "analysisTime": result.scrape.processing_time,
                    "generationTime": generation.processing_time,
                    "totalTime": result.total_time,
                    "generatedAt": _now(),
                },
            },
            "message": f"Successfully completed analysis and prompt generation in {result.total_time}ms",
        }

    @app.post("/api/validate-api-key")
    async def validate_api_key(req: ApiKeyRequest, request: Request):
        logger.info("Validating %s API key", req.provider)
        result = await svc(request).validate_api_key(req.provider, req.api_key)
        content: Dict[str, Any] = {
            "success": result.success,
            "data": {"provider": result.provider, "isValid": result.is_valid, "details": result.details},
            "message": (
                f"{req.provider} API key is valid" if result.is_valid
                else f"{req.provider} API key validation failed"
            ),
        }
        if result.error is not None:
            content["error"] = result.error
        status = (200 if result.is_valid else 400) if result.success else 500
        return JSONResponse(status_code=status, content=content)

    return app


app = create_app()
