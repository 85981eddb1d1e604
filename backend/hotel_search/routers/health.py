"""Health and metrics router."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from hotel_search.config import settings
from hotel_search.dependencies import get_cache_service, get_metrics_service
from hotel_search.services.cache_service import CacheService
from hotel_search.services.metrics_service import MetricsService

router = APIRouter()


def _require_metrics_enabled():
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics not enabled")


@router.get("/health")
async def health_check(
    cache: CacheService = Depends(get_cache_service),
    metrics: MetricsService = Depends(get_metrics_service),
):
    return {
        "status": "ok",
        "service": "hotel-search",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": await cache.ping(),
        "providers": metrics.get_health(),
    }


@router.get("/metrics", dependencies=[Depends(_require_metrics_enabled)])
async def get_metrics(metrics: MetricsService = Depends(get_metrics_service)):
    return metrics.get_metrics()


@router.post("/metrics/reset", dependencies=[Depends(_require_metrics_enabled)])
async def reset_metrics(metrics: MetricsService = Depends(get_metrics_service)):
    metrics.reset()
    return {"message": "Metrics reset successfully"}
