import asyncio
import logging
from urllib.parse import urlparse

import requests

from vbot_cache import CacheStore
from vbot_config import (
    CHROME_USER_AGENT,
    HTTP_TIMEOUT_SECONDS,
    REDIRECT_CACHE_TTL_SECONDS,
    REDIRECT_MAX_HOPS,
)
from vbot_errors import ResolutionError

logger = logging.getLogger("video-bot.resolver")

SHORT_LINK_HOSTS = {"vm.tiktok.com", "vt.tiktok.com"}


def is_short_link(url: str) -> bool:
    parsed = urlparse(url)
    host = parsed.netloc.lower().split(":")[0]
    if host in SHORT_LINK_HOSTS:
        return True
    return host in {"tiktok.com", "www.tiktok.com", "m.tiktok.com"} and parsed.path.startswith("/t/")


def _follow_redirects_sync(url: str, max_hops: int, timeout: float) -> str:
    with requests.Session() as session:
        session.max_redirects = max_hops
        session.headers["User-Agent"] = CHROME_USER_AGENT
        try:
            with session.head(url, allow_redirects=True, timeout=timeout) as response:
                response.raise_for_status()
                return response.url
        except requests.TooManyRedirects:
            raise
        except requests.RequestException as head_err:
            logger.info("HEAD expand failed for %s: %s", url, head_err)

        with session.get(url, allow_redirects=True, timeout=timeout, stream=True) as response:
            response.raise_for_status()
            return response.url


class RedirectResolver:
    def __init__(
        self,
        cache: CacheStore,
        max_hops: int = REDIRECT_MAX_HOPS,
        ttl_seconds: int = REDIRECT_CACHE_TTL_SECONDS,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.cache = cache
        self.max_hops = max_hops
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout

    async def _follow(self, url: str) -> str:
        return await asyncio.to_thread(_follow_redirects_sync, url, self.max_hops, self.timeout)

    async def resolve(self, url: str) -> str:
        key = f"redirect:{url}"
        cached = await self.cache.get(key)
        if cached:
            logger.debug("Cache hit for redirect: %s -> %s", url, cached)
            return cached

        if is_short_link(url):
            try:
                final_url = await self._follow(url)
            except requests.TooManyRedirects as err:
                raise ResolutionError(f"More than {self.max_hops} redirects: {url}") from err
            except requests.RequestException as err:
                raise ResolutionError(f"Could not expand URL {url}: {err}") from err
            logger.info("Expanded URL: original=%s final=%s", url, final_url)
        else:
            final_url = url

        await self.cache.set(key, final_url, self.ttl_seconds)
        return final_url
