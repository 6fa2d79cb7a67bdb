"""Suggestion service backed by Gemini or Groq."""

from .service import (
    GeminiSuggestionService,
    GroqSuggestionService,
    SuggestionService,
    TripBrief,
    create_suggestion_service,
)

__all__ = [
    "GeminiSuggestionService",
    "GroqSuggestionService",
    "SuggestionService",
    "TripBrief",
    "create_suggestion_service",
]
