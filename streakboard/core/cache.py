import fnmatch
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Tuple

import redis

from streakboard.core.config import settings
from streakboard.services.logger import logger

# Stamped by the nightly metrics sweep, read by /health
LAST_SWEEP_KEY = "metrics:last_recompute"


class DummyRedis:
    """No-op redis client used when Redis is unavailable."""

    def get(self, *args: Any, **kwargs: Any) -> Optional[str]:
        return None

    def setex(self, *args: Any, **kwargs: Any) -> None:
        return None

    def delete(self, *args: Any, **kwargs: Any) -> None:
        return None

    def ping(self, *args: Any, **kwargs: Any) -> None:
        return None


_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Lazily initialize and return a shared Redis client. Falls back to a no-op
    dummy instance when Redis is unavailable so callers can continue gracefully.
    """

    global _redis_client

    if _redis_client is not None:
        return _redis_client

    redis_url = settings.redis_connection_url
    if not redis_url:
        return None

    try:
        client = redis.from_url(redis_url)
        client.ping()
        _redis_client = client  # type: ignore[assignment]
    except Exception as exc:
        logger.warning(
            f"Redis connection failed ({exc}). Falling back to dummy client."
        )
        _redis_client = DummyRedis()  # type: ignore[assignment]

    return _redis_client


class ResponseCache:
    """
    Process-wide read-through cache for aggregate reads.

    Entries are (value, stored_at) pairs that expire after their TTL.
    Invalidation is by exact key or glob pattern ("leaderboard:abc:*") and
    notifies any listeners subscribed to the invalidated key. There is no
    coherency between processes.
    """

    def __init__(self, default_ttl: float = 300.0):
        self.default_ttl = default_ttl
        self._entries: Dict[str, Tuple[Any, float]] = {}
        self._listeners: Dict[str, Set[Callable[[], None]]] = {}

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
    ) -> Any:
        ttl = self.default_ttl if ttl is None else ttl
        now = time.monotonic()

        cached = self._entries.get(key)
        if cached is not None and now - cached[1] < ttl:
            logger.debug(f"[CACHE] HIT: {key}")
            return cached[0]

        logger.debug(f"[CACHE] MISS: {key}")
        value = await fetcher()
        self._entries[key] = (value, now)
        return value

    def invalidate(self, key: str) -> None:
        logger.debug(f"[CACHE] INVALIDATE: {key}")
        self._entries.pop(key, None)
        self._notify(key)

    def invalidate_pattern(self, pattern: str) -> int:
        """Drop every key matching a glob pattern. Returns the number dropped."""
        keys = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
        for key in keys:
            logger.debug(f"[CACHE] INVALIDATE: {key}")
            del self._entries[key]
            self._notify(key)
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()
        self._listeners.clear()

    def subscribe(self, key: str, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback fired when ``key`` is invalidated.

        Returns a function that removes the subscription.
        """
        self._listeners.setdefault(key, set()).add(callback)

        def unsubscribe() -> None:
            self._listeners.get(key, set()).discard(callback)

        return unsubscribe

    def stats(self) -> Dict[str, Any]:
        return {"size": len(self._entries), "keys": list(self._entries)}

    def _notify(self, key: str) -> None:
        for callback in list(self._listeners.get(key, ())):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cache listener for {key} failed: {e}")


response_cache = ResponseCache(default_ttl=settings.LEADERBOARD_CACHE_TTL_SECONDS)
