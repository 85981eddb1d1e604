"""Google Places client: discovery provider for candidate hotels."""

import logging

import httpx

from hotel_search.config import settings
from hotel_search.errors import ProviderError, RateLimitError, ValidationError
from hotel_search.schemas.hotel import Coordinate, DiscoveryRecord
from hotel_search.services.metrics_service import MetricsService
from hotel_search.services.retry import RetryExecutor

logger = logging.getLogger(__name__)

PROVIDER = "google_places"
REVIEWS_PROVIDER = "google_places_reviews"
AUTOCOMPLETE_PROVIDER = "google_places_autocomplete"
MIN_AUTOCOMPLETE_LENGTH = 2


def _raise_for_status(data: dict, provider: str):
    """Map a Google ``status`` field onto the error taxonomy."""
    status = data.get("status")
    if status in ("OK", "ZERO_RESULTS"):
        return
    message = data.get("error_message") or status
    if status == "OVER_QUERY_LIMIT":
        raise RateLimitError(f"Google Places quota exceeded: {message}", provider)
    if status == "REQUEST_DENIED":
        raise ProviderError(f"Google Places access denied: {message}", provider, 403)
    if status in ("INVALID_REQUEST", "NOT_FOUND"):
        raise ProviderError(f"Google Places rejected request: {message}", provider, 400)
    raise ProviderError(f"Failed to fetch hotels: {message}", provider)


class PlacesClient:
    """Adapter for the Google Places nearby-search, details and autocomplete endpoints."""

    def __init__(
        self,
        metrics: MetricsService,
        retry: RetryExecutor,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._metrics = metrics
        self._retry = retry
        self._api_key = settings.google_places_api_key if api_key is None else api_key
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.google_maps_base_url,
                timeout=settings.request_timeout_s,
                headers={"Accept": "application/json", "User-Agent": "HotelSearch/1.0"},
            )
        return self._client

    async def _get(self, provider: str, path: str, params: dict) -> dict:
        if not self._api_key:
            raise ProviderError("Google Places API key not configured", provider, 500)

        async def _request() -> dict:
            client = await self._get_client()
            resp = await client.get(path, params={**params, "key": self._api_key})
            if resp.status_code == 429:
                raise RateLimitError("Google Places API rate limited", provider)
            if resp.status_code >= 400:
                raise ProviderError(f"Google Places API error: {resp.status_code}", provider, resp.status_code)
            data = resp.json()
            _raise_for_status(data, provider)
            return data

        return await self._metrics.track(
            provider, lambda: self._retry.execute(_request, label=provider)
        )

    async def search(
        self, coordinate: Coordinate, radius_m: int | None = None
    ) -> list[DiscoveryRecord]:
        """Find lodging within ``radius_m`` of ``coordinate``."""
        radius = radius_m or settings.discovery_radius_m
        logger.info(
            f"Searching hotels near {coordinate.latitude},{coordinate.longitude} "
            f"within {radius}m"
        )
        data = await self._get(
            PROVIDER,
            "/place/nearbysearch/json",
            {
                "location": f"{coordinate.latitude},{coordinate.longitude}",
                "radius": radius,
                "type": "lodging",
            },
        )

        records = []
        for place in data.get("results", []):
            record = self._parse_place(place)
            if record is not None:
                records.append(record)
        logger.info(f"Discovered {len(records)} hotels")
        return records

    async def get_place_reviews(self, place_id: str) -> dict:
        """Raw place details payload with reviews and rating fields."""
        data = await self._get(
            REVIEWS_PROVIDER,
            "/place/details/json",
            {"place_id": place_id, "fields": "reviews,rating,user_ratings_total"},
        )
        return data.get("result") or {}

    async def autocomplete(self, text: str) -> list[dict]:
        """City suggestions for a partial query. Degrades to an empty list."""
        if not text or len(text.strip()) < MIN_AUTOCOMPLETE_LENGTH:
            return []
        try:
            data = await self._get(
                AUTOCOMPLETE_PROVIDER,
                "/place/autocomplete/json",
                {"input": text.strip(), "types": "(cities)"},
            )
        except Exception as e:
            logger.warning(f"Places autocomplete failed for '{text}': {e}")
            return []

        return [
            {
                "description": p.get("description"),
                "place_id": p.get("place_id"),
                "structured_formatting": p.get("structured_formatting"),
            }
            for p in data.get("predictions") or []
        ]

    @staticmethod
    def _parse_place(place: dict) -> DiscoveryRecord | None:
        place_id = place.get("place_id")
        if not place_id:
            logger.debug(f"Skipping place without an id: {place.get('name')}")
            return None
        try:
            loc = place["geometry"]["location"]
            coordinate = Coordinate(float(loc["lat"]), float(loc["lng"]))
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            logger.debug(f"Skipping place without usable location {place_id}: {e}")
            return None

        photos = tuple(
            p["photo_reference"] for p in place.get("photos") or [] if p.get("photo_reference")
        )
        return DiscoveryRecord(
            id=place_id,
            name=place.get("name", ""),
            address=place.get("vicinity") or place.get("formatted_address") or "",
            rating=float(place.get("rating") or 0),
            coordinate=coordinate,
            photos=photos,
            user_ratings_total=place.get("user_ratings_total"),
            types=tuple(place.get("types") or ()),
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
