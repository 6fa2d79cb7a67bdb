"""Photo lookup via Wikipedia/Wikimedia Commons (free, no API key).

Given a place name and its coordinates, returns up to MAX_PHOTOS image URLs.

Architecture:
- Shared httpx client with connection pooling
- Semaphore-based rate limiting (max 3 concurrent requests)
- Retry with backoff on transient failures
- Sources: Wikipedia page image + Commons search by name + Commons files
  geotagged near the coordinates; Wikipedia REST summary image as fallback
- Results cached by name + coordinates
"""

import asyncio
import logging
from typing import Optional

import httpx

from serendipity.models import Coordinates
from serendipity.services.cache import CacheService

logger = logging.getLogger(__name__)

MAX_PHOTOS = 5


class PhotoLookupService:
    """Wikipedia/Wikimedia image search for a single place."""

    WIKIPEDIA_ACTION_API = "https://en.wikipedia.org/w/api.php"
    WIKIPEDIA_REST_API = "https://en.wikipedia.org/api/rest_v1/page/summary"
    COMMONS_API = "https://commons.wikimedia.org/w/api.php"

    HEADERS = {
        "User-Agent": "Serendipity/1.0 (contact@serendipity.travel)",
        "Accept": "application/json",
    }

    # Radius in metres for geotagged Commons files
    GEO_RADIUS_M = 500

    def __init__(
        self,
        cache: CacheService | None = None,
        timeout: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        # Max 3 concurrent requests to Wikipedia/Commons
        self._semaphore = asyncio.Semaphore(3)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self.HEADERS,
                limits=httpx.Limits(max_connections=8, max_keepalive_connections=4),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request_with_retry(
        self, client: httpx.AsyncClient, url: str, params: dict, max_retries: int = 1
    ) -> dict | None:
        """GET with one retry on timeouts, connection errors and 429."""
        for attempt in range(max_retries + 1):
            try:
                async with self._semaphore:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    return response.json()
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < max_retries:
                    logger.info(f"[PHOTOS] Retry {attempt+1}/{max_retries} for {params.get('gsrsearch', url)}: {type(e).__name__}")
                    await asyncio.sleep(1.5)
                else:
                    return None
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt < max_retries:
                    await asyncio.sleep(2.0)
                else:
                    return None
            except (httpx.HTTPError, ValueError):
                return None
        return None

    async def get_photos(self, name: str, coordinates: Coordinates, count: int = MAX_PHOTOS) -> list[str]:
        """Image URLs for ``name`` at ``coordinates``, best first, deduplicated."""
        name = name.strip()
        count = min(count, MAX_PHOTOS)
        key = CacheService.build_photo_key(name, coordinates)

        if self._cache is not None:
            try:
                cached = await self._cache.get(key)
            except Exception as e:
                logger.warning(f"[PHOTOS] Cache read failed: {e}")
                cached = None
            if cached:
                logger.info(f"[PHOTOS] Cache HIT for {name}")
                return list(cached)[:count]

        images = await self._lookup(name, coordinates, count)

        if images and self._cache is not None:
            try:
                await self._cache.set(key, images)
            except Exception as e:
                logger.warning(f"[PHOTOS] Cache write failed: {e}")
        return images

    async def _lookup(self, name: str, coordinates: Coordinates, count: int) -> list[str]:
        client = self._get_client()
        images: list[str] = []

        results = await asyncio.gather(
            self._get_wikipedia_image(client, name),
            self._get_commons_images(client, name, count),
            self._get_geotagged_images(client, coordinates, count),
            return_exceptions=True,
        )
        wiki_image = results[0] if isinstance(results[0], str) else None
        named = results[1] if isinstance(results[1], list) else []
        nearby = results[2] if isinstance(results[2], list) else []

        for img in [wiki_image, *named, *nearby]:
            if img and img not in images and len(images) < count:
                images.append(img)

        if not images:
            rest_image = await self._get_rest_api_image(client, name)
            if rest_image:
                images.append(rest_image)

        logger.info(f"[PHOTOS] {name}: {len(images)} images found")
        return images

    async def _get_wikipedia_image(self, client: httpx.AsyncClient, name: str) -> Optional[str]:
        """Main image of the best-matching Wikipedia article."""
        params = {
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": name,
            "gsrlimit": 1,
            "prop": "pageimages",
            "piprop": "thumbnail",
            "pithumbsize": 800,
        }

        data = await self._request_with_retry(client, self.WIKIPEDIA_ACTION_API, params)
        if not data:
            return None

        pages = data.get("query", {}).get("pages", {})
        if pages:
            page = next(iter(pages.values()))
            thumb = page.get("thumbnail", {})
            if thumb.get("source"):
                return thumb["source"]
        return None

    async def _get_commons_images(self, client: httpx.AsyncClient, name: str, count: int) -> list[str]:
        """Commons files whose title or description matches the name."""
        params = {
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": name,
            "gsrnamespace": 6,  # File namespace
            "gsrlimit": count + 3,  # Extra to filter
            "prop": "imageinfo",
            "iiprop": "url|mime",
            "iiurlwidth": 800,
        }
        data = await self._request_with_retry(client, self.COMMONS_API, params)
        return self._extract_images(data, count)

    async def _get_geotagged_images(
        self, client: httpx.AsyncClient, coordinates: Coordinates, count: int
    ) -> list[str]:
        """Commons files geotagged within GEO_RADIUS_M of the coordinates."""
        lng, lat = coordinates
        params = {
            "action": "query",
            "format": "json",
            "generator": "geosearch",
            "ggscoord": f"{lat}|{lng}",
            "ggsradius": self.GEO_RADIUS_M,
            "ggsnamespace": 6,
            "ggslimit": count + 3,
            "prop": "imageinfo",
            "iiprop": "url|mime",
            "iiurlwidth": 800,
        }
        data = await self._request_with_retry(client, self.COMMONS_API, params)
        return self._extract_images(data, count)

    @staticmethod
    def _extract_images(data: dict | None, count: int) -> list[str]:
        """Raster image URLs from an ``imageinfo`` query response."""
        if not data:
            return []

        images: list[str] = []
        for page in data.get("query", {}).get("pages", {}).values():
            imageinfo = (page.get("imageinfo") or [{}])[0]
            mime = imageinfo.get("mime", "")
            if mime.startswith("image/") and "svg" not in mime:
                url = imageinfo.get("thumburl") or imageinfo.get("url")
                if url and url not in images:
                    images.append(url)
                    if len(images) >= count:
                        break
        return images

    async def _get_rest_api_image(self, client: httpx.AsyncClient, name: str) -> Optional[str]:
        """Fallback: summary image from the Wikipedia REST API."""
        try:
            url = f"{self.WIKIPEDIA_REST_API}/{name.replace(' ', '_')}"
            async with self._semaphore:
                response = await client.get(url)
            if response.status_code != 200:
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[PHOTOS] REST fallback failed for {name}: {type(e).__name__}")
            return None

        thumb = data.get("thumbnail", {}).get("source")
        if thumb:
            # Upscale thumbnail to 800px
            return thumb.replace("/50px-", "/800px-").replace("/60px-", "/800px-")
        return data.get("originalimage", {}).get("source")
