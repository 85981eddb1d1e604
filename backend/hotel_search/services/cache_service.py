"""Cache service for geocodes, provider responses and merged hotel results."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import redis.asyncio as redis

from hotel_search.config import settings
from hotel_search.errors import CacheError

logger = logging.getLogger(__name__)

# TTLs in seconds
TTL_GEOCODE = 24 * 60 * 60        # 24 hours
TTL_HOTEL_PRICING = 30 * 60       # 30 minutes, merged search results
TTL_REVIEWS = 12 * 60 * 60        # 12 hours
TTL_DEFAULT = 60 * 60             # 1 hour


@dataclass
class CacheEntry:
    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryStore:
    """In-process store with per-key absolute expiry. No size-based eviction."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.value

    async def set(self, key: str, value: str, ex: int) -> bool:
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ex)
        return True

    async def delete(self, key: str) -> int:
        return 1 if self._entries.pop(key, None) is not None else 0

    async def aclose(self):
        self._entries.clear()


class CacheService:
    """Redis-backed cache with typed TTLs. Backend failures behave as a miss."""

    def __init__(
        self,
        redis_url: str | None = None,
        backend: str | None = None,
        client: Any | None = None,
        metrics=None,
    ):
        self._redis_url = settings.redis_url if redis_url is None else redis_url
        self._backend = backend or settings.cache_backend
        self._redis = client
        self._metrics = metrics

    async def _get_redis(self):
        if self._redis is None:
            if self._backend == "memory":
                self._redis = MemoryStore()
                return self._redis
            if not self._redis_url:
                return None
            try:
                self._redis = redis.from_url(
                    self._redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self._redis.ping()
                logger.info("Redis connection established")
            except Exception as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def _client(self):
        r = await self._get_redis()
        if r is None:
            raise CacheError("Cache backend unavailable")
        return r

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._client()
            raw = await r.get(key)
        except CacheError:
            self._track(hit=False)
            return None
        except Exception as e:
            logger.warning(f"Cache GET failed for {key}: {e}")
            self._track(hit=False)
            return None

        if raw is None:
            self._track(hit=False)
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            self._track(hit=False)
            return None
        self._track(hit=True)
        return value

    async def set(self, key: str, value: Any, ttl: int = TTL_DEFAULT) -> bool:
        """Set a value in cache with TTL. Returns False on error."""
        try:
            r = await self._client()
            await r.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except CacheError:
            return False
        except Exception as e:
            logger.warning(f"Cache SET failed for {key}: {e}")
            return False

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        try:
            r = await self._client()
            await r.delete(key)
            return True
        except CacheError:
            return False
        except Exception as e:
            logger.warning(f"Cache DEL failed for {key}: {e}")
            return False

    async def ping(self) -> str:
        """Backend status for the health endpoint."""
        try:
            r = await self._client()
            await r.ping()
            return "connected"
        except CacheError:
            return "disconnected"
        except Exception:
            return "error"

    def _track(self, hit: bool):
        if self._metrics is None:
            return
        if hit:
            self._metrics.track_cache_hit()
        else:
            self._metrics.track_cache_miss()

    # Typed keys

    @staticmethod
    def geocode_key(text: str) -> str:
        return f"geocode:{text.strip().lower()}"

    @staticmethod
    def reverse_geocode_key(lat: float, lng: float) -> str:
        return f"reverse_geocode:{lat},{lng}"

    @staticmethod
    def hotel_pricing_key(check_in: str, check_out: str, guests: int, ids: list[str]) -> str:
        return f"hotel-pricing:{check_in}:{check_out}:{guests}:{','.join(sorted(ids))}"

    @staticmethod
    def reviews_key(place_id: str) -> str:
        return f"reviews:{place_id}"

    @staticmethod
    def booking_search_key(lat: float, lng: float, check_in: str, check_out: str, guests: int) -> str:
        return f"booking:hotels:{lat}:{lng}:{check_in}:{check_out}:{guests}"

    @staticmethod
    def booking_hotel_key(hotel_id: str) -> str:
        return f"booking:hotel:{hotel_id}"

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None
