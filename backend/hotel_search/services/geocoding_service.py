"""Geocoding service: Google Geocoding adapter with a 24h cache."""

import logging

import httpx

from hotel_search.config import settings
from hotel_search.errors import GeocodingError
from hotel_search.schemas.hotel import AddressInfo, Coordinate, GeoLocation
from hotel_search.services.cache_service import TTL_GEOCODE, CacheService
from hotel_search.services.metrics_service import MetricsService
from hotel_search.services.retry import RetryExecutor

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2

# Google status → (status code, message). ZERO_RESULTS is handled separately.
STATUS_ERRORS = {
    "OVER_QUERY_LIMIT": (429, "Google Geocoding quota exceeded"),
    "REQUEST_DENIED": (403, "Google Geocoding API access denied"),
    "INVALID_REQUEST": (400, "Invalid geocoding request"),
}


class GeocodingService:
    """Resolves free text to coordinates and coordinates to addresses."""

    def __init__(
        self,
        cache: CacheService,
        metrics: MetricsService,
        retry: RetryExecutor,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._cache = cache
        self._metrics = metrics
        self._retry = retry
        self._api_key = settings.google_geocoding_api_key if api_key is None else api_key
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.google_maps_base_url,
                timeout=settings.request_timeout_s,
                headers={"Accept": "application/json", "User-Agent": "HotelSearch/1.0"},
            )
        return self._client

    async def resolve(self, location: str) -> GeoLocation | None:
        """Forward geocode ``location``. Returns None when Google finds nothing."""
        if not isinstance(location, str) or len(location.strip()) < MIN_QUERY_LENGTH:
            raise GeocodingError("Invalid location provided", 400)

        cache_key = self._cache.geocode_key(location)
        cached = await self._cache.get(cache_key)
        if cached:
            logger.info(f"Geocoding cache hit for: {location}")
            return GeoLocation.from_dict(cached)

        self._ensure_configured()
        try:
            data = await self._call("google_geocoding", {"address": location.strip()})
        except GeocodingError:
            raise
        except Exception as e:
            logger.error(f"Geocoding error for '{location}': {e}")
            raise GeocodingError("Geocoding service temporarily unavailable", 503) from e

        result = self._parse_forward(data)
        if result:
            await self._cache.set(cache_key, result.to_dict(), TTL_GEOCODE)
            logger.info(
                f"Geocoded and cached: {location} -> "
                f"{result.coordinate.latitude}, {result.coordinate.longitude}"
            )
        return result

    async def reverse(self, coordinate: Coordinate) -> AddressInfo | None:
        """Reverse geocode ``coordinate``. Returns None when Google finds nothing."""
        lat, lng = coordinate.latitude, coordinate.longitude
        cache_key = self._cache.reverse_geocode_key(lat, lng)
        cached = await self._cache.get(cache_key)
        if cached:
            logger.info(f"Reverse geocoding cache hit for: {lat}, {lng}")
            return AddressInfo.from_dict(cached)

        self._ensure_configured()
        try:
            data = await self._call("google_reverse_geocoding", {"latlng": f"{lat},{lng}"})
        except GeocodingError:
            raise
        except Exception as e:
            logger.error(f"Reverse geocoding error for {lat}, {lng}: {e}")
            raise GeocodingError("Reverse geocoding service temporarily unavailable", 503) from e

        result = self._parse_reverse(data)
        if result:
            await self._cache.set(cache_key, result.to_dict(), TTL_GEOCODE)
            logger.info(f"Reverse geocoded and cached: {lat}, {lng} -> {result.formatted_address}")
        return result

    def _ensure_configured(self):
        if not self._api_key:
            raise GeocodingError("Google Geocoding API key not configured")

    async def _call(self, provider: str, params: dict) -> dict:
        async def _request() -> dict:
            client = await self._get_client()
            resp = await client.get("/geocode/json", params={**params, "key": self._api_key})
            if resp.status_code >= 400:
                raise GeocodingError(f"Google Geocoding API HTTP {resp.status_code}", resp.status_code)
            data = resp.json()
            status = data.get("status")
            if status in STATUS_ERRORS:
                code, message = STATUS_ERRORS[status]
                raise GeocodingError(message, code)
            if status not in ("OK", "ZERO_RESULTS"):
                raise GeocodingError(f"Geocoding failed: {status}")
            return data

        return await self._metrics.track(
            provider, lambda: self._retry.execute(_request, label=provider)
        )

    @staticmethod
    def _parse_forward(data: dict) -> GeoLocation | None:
        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            return None
        first = results[0]
        loc = first["geometry"]["location"]
        return GeoLocation(
            coordinate=Coordinate(float(loc["lat"]), float(loc["lng"])),
            formatted_address=first.get("formatted_address"),
            place_id=first.get("place_id"),
        )

    @staticmethod
    def _parse_reverse(data: dict) -> AddressInfo | None:
        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            return None
        first = results[0]
        return AddressInfo(
            formatted_address=first.get("formatted_address", ""),
            place_id=first.get("place_id"),
            address_components=first.get("address_components", []),
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
