"""Place photos from Wikipedia/Wikimedia Commons."""

from .service import MAX_PHOTOS, PhotoLookupService

__all__ = ["MAX_PHOTOS", "PhotoLookupService"]
