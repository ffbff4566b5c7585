from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from typing import Dict, Any
import os
import json

from .version import CONFIG_SCHEMA_VERSION

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class AppConfig:
    """
    Canonical configuration object handed to the engine, the provider manager
    and the outer surfaces. Dataclass-only so it can be built from env or JSON.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION

    # Scraping
    user_agent: str = BROWSER_USER_AGENT
    request_timeout: float = 15.0
    navigation_timeout: float = 15.0
    headless: bool = True

    # Image fetch / transcode
    image_timeout: float = 30.0
    max_image_bytes: int = 50 * 1024 * 1024
    max_image_dimension: int = 1024
    jpeg_quality: int = 85

    # Wall-clock deadlines for the combined pipeline
    scrape_deadline: float = 45.0
    generate_deadline: float = 30.0

    # Providers
    openai_base_url: str = "https://api.openai.com"
    anthropic_base_url: str = "https://api.anthropic.com"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    models: Dict[str, str] = field(default_factory=lambda: {
        "openai": "gpt-4-turbo",
        "openai-fast": "gpt-4o-mini",
        "openai-variations": "gpt-3.5-turbo",
        "claude": "claude-3-5-sonnet-20241022",
        "gemini": "gemini-1.5-pro",
    })
    provider_timeout: float = 60.0
    validation_timeout: float = 10.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def model_for(self, provider_id: str) -> str:
        return self.models[provider_id]

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Build config from environment variables (all optional).
        """
        defaults = cls()

        def _get(name: str, default: Any) -> str:
            return os.getenv(f"STOCKPROMPT_{name}", str(default))

        models = dict(defaults.models)
        for provider_id in list(models):
            env_name = "MODEL_" + provider_id.upper().replace("-", "_")
            models[provider_id] = _get(env_name, models[provider_id])

        return cls(
            user_agent=_get("USER_AGENT", defaults.user_agent),
            request_timeout=float(_get("REQUEST_TIMEOUT", defaults.request_timeout)),
            navigation_timeout=float(_get("NAVIGATION_TIMEOUT", defaults.navigation_timeout)),
            headless=_get("HEADLESS", "1").lower() not in ("0", "false", "no"),
            image_timeout=float(_get("IMAGE_TIMEOUT", defaults.image_timeout)),
            max_image_bytes=int(_get("MAX_IMAGE_BYTES", defaults.max_image_bytes)),
            max_image_dimension=int(_get("MAX_IMAGE_DIMENSION", defaults.max_image_dimension)),
            jpeg_quality=int(_get("JPEG_QUALITY", defaults.jpeg_quality)),
            scrape_deadline=float(_get("SCRAPE_DEADLINE", defaults.scrape_deadline)),
            generate_deadline=float(_get("GENERATE_DEADLINE", defaults.generate_deadline)),
            openai_base_url=_get("OPENAI_BASE_URL", defaults.openai_base_url),
            anthropic_base_url=_get("ANTHROPIC_BASE_URL", defaults.anthropic_base_url),
            gemini_base_url=_get("GEMINI_BASE_URL", defaults.gemini_base_url),
            models=models,
            provider_timeout=float(_get("PROVIDER_TIMEOUT", defaults.provider_timeout)),
            validation_timeout=float(_get("VALIDATION_TIMEOUT", defaults.validation_timeout)),
        )

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "AppConfig":
        """
        Load configuration from a JSON file. Supports schema migration for future versions.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        data = migrate_config(data)
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        if "models" in data:
            data["models"] = {**cls().models, **data["models"]}
        return cls(**data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if self.max_image_bytes <= 0:
            raise ValueError("max_image_bytes must be > 0")
        if self.max_image_dimension <= 0:
            raise ValueError("max_image_dimension must be > 0")
        if not 1 <= self.jpeg_quality <= 95:
            raise ValueError("jpeg_quality must be between 1 and 95")
        for name in ("request_timeout", "navigation_timeout", "image_timeout",
                     "scrape_deadline", "generate_deadline", "provider_timeout",
                     "validation_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        # The page must give up before the caller's deadline does.
        if self.navigation_timeout >= self.scrape_deadline:
            raise ValueError("navigation_timeout must be shorter than scrape_deadline")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw
