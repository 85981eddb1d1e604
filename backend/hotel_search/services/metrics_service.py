"""Per-provider call metrics and derived health status."""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

RECENT_WINDOW = 100
# Fractions of failed calls; the reported error_rate is a rounded percentage
CRITICAL_ERROR_RATIO = 0.5
DEGRADED_ERROR_RATIO = 0.2
DEGRADED_LATENCY_MS = 10_000


@dataclass
class ProviderStats:
    requests: int = 0
    errors: int = 0
    total_time_ms: float = 0.0
    last_success: str | None = None
    last_error: dict | None = None
    recent_times: deque = field(default_factory=lambda: deque(maxlen=RECENT_WINDOW))

    @property
    def error_ratio(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.errors / self.requests

    @property
    def error_rate(self) -> int:
        return round(self.error_ratio * 100)

    @property
    def recent_average(self) -> float:
        if not self.recent_times:
            return 0.0
        return sum(self.recent_times) / len(self.recent_times)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _per_minute(count: int, uptime_s: float) -> int:
    if count == 0 or uptime_s <= 0:
        return 0
    return round(count / uptime_s * 60)


def _format_uptime(seconds: float) -> str:
    seconds = int(seconds)
    minutes, hours, days = seconds // 60, seconds // 3600, seconds // 86400
    return f"{days}d {hours % 24}h {minutes % 60}m {seconds % 60}s"


class MetricsService:
    """Records success/failure/latency per external dependency."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._lock = threading.Lock()
        self._clock = clock
        self._providers: dict[str, ProviderStats] = {}
        self._cache_hits = 0
        self._cache_misses = 0
        self._started = clock()

    def record(self, provider: str, success: bool, latency_ms: float, error: str | None = None):
        with self._lock:
            stats = self._providers.setdefault(provider, ProviderStats())
            stats.requests += 1
            stats.total_time_ms += latency_ms
            if success:
                stats.last_success = _now_iso()
                stats.recent_times.append(latency_ms)
            else:
                stats.errors += 1
                stats.last_error = {"timestamp": _now_iso(), "message": error}

    async def track(self, provider: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        """Time an upstream call and record its outcome. Errors propagate."""
        start = self._clock()
        try:
            result = await operation()
        except Exception as e:
            elapsed = (self._clock() - start) * 1000
            self.record(provider, False, elapsed, error=str(e))
            logger.error(f"{provider.upper()} call failed after {elapsed:.0f}ms: {e}")
            raise
        elapsed = (self._clock() - start) * 1000
        self.record(provider, True, elapsed)
        logger.info(f"{provider.upper()} call completed in {elapsed:.0f}ms")
        return result

    def track_cache_hit(self):
        with self._lock:
            self._cache_hits += 1

    def track_cache_miss(self):
        with self._lock:
            self._cache_misses += 1

    @staticmethod
    def _status(stats: ProviderStats) -> str:
        if stats.requests == 0:
            return "unknown"
        if stats.error_ratio > CRITICAL_ERROR_RATIO:
            return "critical"
        if stats.error_ratio > DEGRADED_ERROR_RATIO or stats.recent_average > DEGRADED_LATENCY_MS:
            return "degraded"
        return "healthy"

    def get_health(self) -> dict[str, dict]:
        with self._lock:
            return {
                provider: {
                    "status": self._status(stats),
                    "error_rate": stats.error_rate,
                    "requests_per_minute": _per_minute(stats.requests, uptime),
                    "average_response_time": round(stats.recent_average),
                    "last_success": stats.last_success,
                    "last_error": stats.last_error,
                }
                for provider, stats in self._providers.items()
            }

    def get_metrics(self) -> dict:
        with self._lock:
            uptime = self._clock() - self._started
            total_requests = sum(s.requests for s in self._providers.values())
            total_errors = sum(s.errors for s in self._providers.values())
            cache_total = self._cache_hits + self._cache_misses

            apis = {
                provider: {
                    "requests": stats.requests,
                    "errors": stats.errors,
                    "average_response_time": round(stats.total_time_ms / stats.requests) if stats.requests else 0,
                    "recent_average_response_time": round(stats.recent_average),
                    "error_rate": stats.error_rate,
                    "last_success": stats.last_success,
                    "last_error": stats.last_error,
                }
                for provider, stats in self._providers.items()
            }

            return {
                "apis": apis,
                "system": {
                    "total_requests": total_requests,
                    "total_errors": total_errors,
                    "cache_hits": self._cache_hits,
                    "cache_misses": self._cache_misses,
                    "requests_per_minute": _per_minute(total_requests, uptime),
                    "cache_hit_rate": round(self._cache_hits / cache_total * 100) if cache_total else 0,
                    "error_rate": round(total_errors / total_requests * 100) if total_requests else 0,
                    "uptime": round(uptime),
                    "uptime_human": _format_uptime(uptime),
                },
                "timestamp": _now_iso(),
            }

    def reset(self):
        with self._lock:
            self._providers.clear()
            self._cache_hits = 0
            self._cache_misses = 0
            self._started = self._clock()
        logger.info("Metrics reset")
