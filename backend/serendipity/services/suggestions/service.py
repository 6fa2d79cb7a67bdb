"""Suggestion service backed by Gemini or Groq.

Provider-agnostic base class with two concrete implementations:
- GeminiSuggestionService: Google Gemini, gemini-2.5-flash
- GroqSuggestionService:   Groq LPU, llama-3.1-8b-instant

The service only returns raw model text. It never parses it (that is the
sanitizer's job), never retries and never substitutes fallback content: any
provider error or timeout surfaces as SuggestionFailureError.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from serendipity.models import Coordinates, SuggestionFailureError, Waypoint
from serendipity.services.suggestions.prompts import (
    SYSTEM_PROMPT,
    build_nearby_prompt,
    build_trip_prompt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TripBrief:
    """Everything the model needs to plan one trip."""
    waypoints: list[Waypoint]
    days: int
    serendipity_level: int
    custom_preferences: Optional[str] = None
    language: str = "en"


class SuggestionService(ABC):
    """Base class for generative suggestion services.

    Prompt construction lives here; subclasses only implement ``_generate()``
    for their specific API client.
    """

    _timeout: float

    @abstractmethod
    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        """Send prompt to the AI provider and return raw text."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name for logging."""
        ...

    @staticmethod
    def _sanitize_input(text: str, max_length: int = 500) -> str:
        """Strip control characters and cap length before prompting."""
        cleaned = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)
        return cleaned[:max_length].strip()

    async def _call(self, prompt: str, what: str) -> str:
        try:
            text = await self._generate(prompt)
        except asyncio.TimeoutError as e:
            raise SuggestionFailureError(
                f"{self.provider_name} timed out while generating {what}"
            ) from e
        except Exception as e:
            raise SuggestionFailureError(
                f"{self.provider_name} failed to generate {what}: {e}"
            ) from e
        logger.info(f"[AI] {self.provider_name} returned {len(text)} chars for {what}")
        return text

    async def suggest(self, brief: TripBrief) -> str:
        """Ask the model for trip suggestions. Exactly one provider call."""
        stops = []
        for wp in brief.waypoints:
            if wp.coordinates is None:
                raise ValueError(f"Waypoint '{wp.name}' has no coordinates")
            stops.append((self._sanitize_input(wp.name, max_length=200), wp.coordinates))

        preferences = (
            self._sanitize_input(brief.custom_preferences, max_length=1000)
            if brief.custom_preferences
            else None
        )
        prompt = build_trip_prompt(
            stops,
            days=brief.days,
            serendipity_level=brief.serendipity_level,
            custom_preferences=preferences,
            language=brief.language,
        )
        return await self._call(prompt, "trip suggestions")

    async def suggest_nearby(self, location: str, coordinates: Coordinates, language: str = "en") -> str:
        """Ask the model for 3-5 real places around one location."""
        prompt = build_nearby_prompt(
            self._sanitize_input(location, max_length=200), coordinates, language
        )
        return await self._call(prompt, "nearby places")


# ═══════════════════════════════════════════════════════════════════════
# Provider: Gemini
# ═══════════════════════════════════════════════════════════════════════

class GeminiSuggestionService(SuggestionService):
    """Google Gemini 2.5 Flash."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str = "gemini-2.5-flash",
        timeout_seconds: float = 60.0,
    ) -> None:
        from google import genai

        if not api_key:
            raise ValueError("GEMINI_API_KEY not provided")
        self._client = genai.Client(api_key=api_key)
        self._model_name = model_name
        self._timeout = timeout_seconds
        logger.info(f"[AI] Gemini ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Gemini"

    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        t = timeout or self._timeout
        try:
            resp = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model_name,
                    contents=f"{SYSTEM_PROMPT}\n\n{prompt}",
                ),
                timeout=t,
            )
            return (resp.text or "").strip()
        except asyncio.TimeoutError:
            logger.warning(f"[Gemini] Timeout after {t}s")
            raise
        except Exception as e:
            logger.warning(f"[Gemini] Error: {e}")
            raise


# ═══════════════════════════════════════════════════════════════════════
# Provider: Groq
# ═══════════════════════════════════════════════════════════════════════

class GroqSuggestionService(SuggestionService):
    """Groq LPU with Llama 3.1 8B Instant."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str = "llama-3.1-8b-instant",
        timeout_seconds: float = 60.0,
    ) -> None:
        from groq import AsyncGroq

        if not api_key:
            raise ValueError("GROQ_API_KEY not provided")
        self._client = AsyncGroq(api_key=api_key)
        self._model_name = model_name
        self._timeout = timeout_seconds
        logger.info(f"[AI] Groq ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Groq"

    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        t = timeout or self._timeout
        try:
            resp = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model_name,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=0.7,
                    max_tokens=8192,
                ),
                timeout=t,
            )
            return (resp.choices[0].message.content or "").strip()
        except asyncio.TimeoutError:
            logger.warning(f"[Groq] Timeout after {t}s")
            raise
        except Exception as e:
            logger.warning(f"[Groq] Error: {e}")
            raise


# ═══════════════════════════════════════════════════════════════════════
# Factory: Gemini → Groq
# ═══════════════════════════════════════════════════════════════════════

def create_suggestion_service(
    gemini_api_key: str | None = None,
    gemini_model: str = "gemini-2.5-flash",
    groq_api_key: str | None = None,
    groq_model: str = "llama-3.1-8b-instant",
    timeout_seconds: float = 60.0,
) -> SuggestionService:
    """Create the best available provider. Gemini first, Groq second."""
    if gemini_api_key:
        try:
            return GeminiSuggestionService(gemini_api_key, gemini_model, timeout_seconds)
        except Exception as e:
            logger.info(f"[AI] Gemini init failed: {e}")

    if groq_api_key:
        try:
            return GroqSuggestionService(groq_api_key, groq_model, timeout_seconds)
        except Exception as e:
            logger.info(f"[AI] Groq init failed: {e}")

    raise ValueError("No AI provider available. Set GEMINI_API_KEY or GROQ_API_KEY in .env")
