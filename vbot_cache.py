import logging
from urllib.parse import urlparse

import redis.asyncio as redis
from redis.exceptions import RedisError

from vbot_config import CACHE_KEY_PREFIX, REDIS_URL
from vbot_errors import CacheError

logger = logging.getLogger("video-bot.cache")


def redact_url(url: str) -> str:
    parsed = urlparse(url)
    if "@" not in parsed.netloc:
        return url
    userinfo, host = parsed.netloc.rsplit("@", 1)
    username = userinfo.split(":", 1)[0]
    return parsed._replace(netloc=f"{username}:***@{host}").geturl()


class CacheStore:
    """Advisory key/value store backed by Redis.

    With no URL (and no client) every read is a miss and every write is a
    no-op. Backend failures are logged and downgraded the same way, so
    callers never see an exception from ``get`` or ``set``.

    The Redis client is created lazily on first use and lives as long as
    the store; ``close`` releases its connection pool.
    """

    def __init__(self, url: str | None = None, client=None, key_prefix: str = CACHE_KEY_PREFIX):
        self.url = url
        self.key_prefix = key_prefix
        self._client = client

    @classmethod
    def from_env(cls) -> "CacheStore":
        return cls(url=REDIS_URL or None)

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.url)

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _get_client(self):
        if self._client is None and self.url:
            try:
                self._client = redis.from_url(
                    self.url,
                    decode_responses=True,
                    socket_connect_timeout=2,
                    socket_timeout=2,
                )
            except ValueError as err:
                # A malformed URL will not get better; stop trying.
                url, self.url = self.url, None
                raise CacheError(f"invalid Redis URL {redact_url(url)}: {err}") from err
            logger.info("Redis cache configured: %s", redact_url(self.url))
        return self._client

    async def _raw_get(self, key: str) -> str | None:
        try:
            value = await self._get_client().get(self._key(key))
        except (RedisError, OSError) as err:
            raise CacheError(f"get {key!r} failed: {err}") from err
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        return value

    async def _raw_set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._get_client().set(self._key(key), value, ex=ttl_seconds)
        except (RedisError, OSError) as err:
            raise CacheError(f"set {key!r} failed: {err}") from err

    async def get(self, key: str) -> str | None:
        if not self.enabled:
            return None
        try:
            return await self._raw_get(key)
        except CacheError as err:
            logger.warning("Cache read skipped: %s", err)
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        if not self.enabled:
            return False
        try:
            await self._raw_set(key, value, ttl_seconds)
            return True
        except CacheError as err:
            logger.warning("Cache write skipped: %s", err)
            return False

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except (RedisError, OSError) as err:
            logger.info("Could not close Redis connection: %s", err)
        self._client = None
