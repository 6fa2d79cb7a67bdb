"""Environment-driven configuration.

Values are read once from the process environment (after loading ``.env``)
and cached for the lifetime of the worker.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _number(name: str, default, cast):
    """Read a numeric variable, naming it when the value does not parse."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r} (expected {cast.__name__})") from None


@dataclass(frozen=True)
class Settings:
    groq_api_key: str | None = None
    groq_model: str = "llama-3.1-8b-instant"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    ai_timeout_seconds: float = 60.0

    mapbox_token: str | None = None
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    osrm_url: str = "https://router.project-osrm.org"
    http_timeout_seconds: float = 15.0

    redis_url: str | None = None
    plan_cache_max_size: int = 256
    plan_cache_ttl_seconds: int = 86400

    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"]
    )

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY") or None,
            groq_model=os.getenv("GROQ_MODEL", defaults.groq_model),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", defaults.gemini_model),
            ai_timeout_seconds=_number("AI_TIMEOUT_SECONDS", defaults.ai_timeout_seconds, float),
            mapbox_token=os.getenv("MAPBOX_TOKEN") or None,
            nominatim_url=os.getenv("NOMINATIM_URL", defaults.nominatim_url),
            osrm_url=os.getenv("OSRM_URL", defaults.osrm_url),
            http_timeout_seconds=_number("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds, float),
            redis_url=os.getenv("REDIS_URL") or None,
            plan_cache_max_size=_number("PLAN_CACHE_MAX_SIZE", defaults.plan_cache_max_size, int),
            plan_cache_ttl_seconds=_number("PLAN_CACHE_TTL_SECONDS", defaults.plan_cache_ttl_seconds, int),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "")) or defaults.cors_origins,
        )


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
