import logging
from typing import Any, Awaitable, Callable

from vbot_cache import CacheStore
from vbot_config import METADATA_CACHE_TTL_SECONDS
from vbot_errors import MetadataError
from vbot_models import NO_VIDEO, MediaDescriptor, Unparseable, parse_descriptor
from vbot_ytdlp import fetch_media_info

logger = logging.getLogger("video-bot.metadata")

MediaInfoSource = Callable[[str], Awaitable[Any]]


class MetadataFetcher:
    def __init__(
        self,
        cache: CacheStore,
        media_info_source: MediaInfoSource = fetch_media_info,
        ttl_seconds: int = METADATA_CACHE_TTL_SECONDS,
    ):
        self.cache = cache
        self.media_info_source = media_info_source
        self.ttl_seconds = ttl_seconds

    async def _from_cache(self, key: str) -> MediaDescriptor | None:
        cached = await self.cache.get(key)
        if not cached:
            return None
        parsed = parse_descriptor(cached)
        if isinstance(parsed, Unparseable):
            logger.error("Error parsing cached video data for %s: %s", key, parsed.reason)
            return None
        if not parsed.is_slideshow and not parsed.playable_url:
            logger.warning("Cached video data for %s has no playable URL, ignoring", key)
            return None
        logger.debug("Cache hit for video data: %s", key)
        return parsed

    async def fetch(self, canonical_url: str, use_cache: bool = True):
        """Return a ``MediaDescriptor`` for ``canonical_url``, or ``NO_VIDEO`` for slideshows."""
        key = f"metadata:{canonical_url}"
        descriptor = await self._from_cache(key) if use_cache else None

        if descriptor is None:
            try:
                payload = await self.media_info_source(canonical_url)
            except Exception as err:
                raise MetadataError(f"Media info lookup failed for {canonical_url}: {err}") from err

            parsed = parse_descriptor(payload)
            if isinstance(parsed, Unparseable):
                raise MetadataError(f"Unparseable media info for {canonical_url}: {parsed.reason}")
            descriptor = parsed
            if descriptor.is_slideshow or descriptor.playable_url:
                await self.cache.set(key, descriptor.to_json(), self.ttl_seconds)

        if descriptor.is_slideshow:
            logger.warning("This video is a slideshow. Skipping download: %s", canonical_url)
            return NO_VIDEO
        if not descriptor.playable_url:
            raise MetadataError(f"Unable to retrieve video URL: {canonical_url}")
        return descriptor
