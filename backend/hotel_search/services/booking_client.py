"""Booking.com Demand API client: pricing and availability provider."""

import logging
from datetime import date

import httpx

from hotel_search.config import settings
from hotel_search.errors import ProviderError, RateLimitError, ValidationError
from hotel_search.schemas.hotel import Coordinate, Price, PricingRecord
from hotel_search.services.cache_service import CacheService
from hotel_search.services.metrics_service import MetricsService
from hotel_search.services.retry import RetryExecutor

logger = logging.getLogger(__name__)

PROVIDER = "booking"
DETAIL_EXTRAS = ["photos", "facilities", "policies", "rooms"]


class BookingClient:
    """Adapter for the Booking.com accommodations search and details endpoints."""

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
        self._api_key = settings.booking_api_key if api_key is None else api_key
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=settings.booking_base_url,
                timeout=settings.request_timeout_s,
            )
        return self._client

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Affiliate-Id": settings.booking_affiliate_id,
            "Accept": "application/json",
        }

    async def _post(self, endpoint: str, body: dict) -> dict:
        """POST with retry. Errors surface as ProviderError / RateLimitError."""

        async def _request() -> dict:
            client = await self._get_client()
            try:
                resp = await client.post(endpoint, json=body, headers=self._headers())
            except httpx.TimeoutException as e:
                raise ProviderError("Booking.com API timed out", PROVIDER, 504) from e
            except httpx.RequestError as e:
                raise ProviderError("Failed to connect to Booking.com API", PROVIDER, 503) from e

            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After")
                raise RateLimitError(
                    "Booking.com API rate limited",
                    PROVIDER,
                    retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
                )
            if resp.status_code >= 400:
                try:
                    message = resp.json().get("message")
                except ValueError:
                    message = None
                raise ProviderError(
                    message or f"Booking.com API request failed ({resp.status_code})",
                    PROVIDER,
                    resp.status_code,
                )
            return resp.json()

        return await self._retry.execute(_request, label=f"{PROVIDER}{endpoint}")

    async def search(
        self,
        coordinate: Coordinate,
        check_in: date,
        check_out: date,
        guests: int,
    ) -> list[PricingRecord]:
        """Priced offers around ``coordinate`` for the stay."""
        lat, lng = coordinate.latitude, coordinate.longitude
        cache_key = self._cache.booking_search_key(
            lat, lng, check_in.isoformat(), check_out.isoformat(), guests
        )
        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"Booking cache hit for {lat},{lng}")
            return [PricingRecord.from_dict(h) for h in cached]

        if not self._api_key:
            raise ProviderError("Booking.com API key not configured", PROVIDER, 500)

        async def _search_and_details() -> list[PricingRecord]:
            location = {"coordinates": {"latitude": lat, "longitude": lng}}
            search = await self._post("/accommodations/search", {
                "booker": {"country": settings.booking_country},
                "currency": settings.booking_currency,
                "guests": {"number_of_adults": guests, "number_of_rooms": 1},
                "route": {
                    "pickup": {"datetime": check_in.isoformat(), "location": location},
                    "dropoff": {"datetime": check_out.isoformat(), "location": location},
                },
            })
            raw_offers = search.get("data") or []
            offers = [o for o in raw_offers if o.get("id") is not None]
            if len(offers) < len(raw_offers):
                logger.warning(f"Dropped {len(raw_offers) - len(offers)} Booking.com offers without an id")
            if not offers:
                return []

            details = await self._post("/accommodations/details", {
                "hotel_ids": [o["id"] for o in offers],
                "extras": DETAIL_EXTRAS,
            })
            details_by_id = {d.get("id"): d for d in details.get("data") or []}

            records = []
            for offer in offers:
                record = self._parse_offer(offer, details_by_id.get(offer["id"], {}))
                if record is not None:
                    records.append(record)
            return records

        records = await self._metrics.track(PROVIDER, _search_and_details)
        await self._cache.set(
            cache_key, [r.to_dict() for r in records], settings.booking_cache_ttl
        )
        return records

    async def get_hotel_details(self, hotel_id: str) -> PricingRecord:
        """Full details for one Booking.com property (``booking_<id>`` or raw id)."""
        raw_id = hotel_id.removeprefix("booking_")
        cache_key = self._cache.booking_hotel_key(raw_id)
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return PricingRecord.from_dict(cached)

        if not self._api_key:
            raise ProviderError("Booking.com API key not configured", PROVIDER, 500)

        async def _details() -> dict:
            return await self._post("/accommodations/details", {
                "hotel_ids": [raw_id],
                "extras": DETAIL_EXTRAS + ["reviews"],
            })

        response = await self._metrics.track(PROVIDER, _details)
        data = response.get("data") or []
        if not data:
            raise ProviderError("Hotel not found", PROVIDER, 404)

        record = self._parse_offer(data[0], data[0])
        if record is None:
            raise ProviderError("Hotel has no usable location", PROVIDER, 404)
        await self._cache.set(cache_key, record.to_dict(), settings.booking_cache_ttl)
        return record

    @staticmethod
    def _parse_offer(offer: dict, details: dict) -> PricingRecord | None:
        if offer.get("id") is None:
            return None
        try:
            coordinate = Coordinate(float(offer["latitude"]), float(offer["longitude"]))
        except (KeyError, TypeError, ValueError, ValidationError):
            logger.debug(f"Skipping Booking.com offer {offer.get('id')} without coordinates")
            return None

        raw_price = offer.get("price") or {}
        price = None
        if raw_price:
            price = Price(
                amount=float(raw_price.get("total") or 0),
                currency=raw_price.get("currency") or "USD",
                period="per night",
            )

        photos = [
            {"url": p.get("url"), "width": p.get("width"), "height": p.get("height")}
            for p in details.get("photos") or []
        ]
        return PricingRecord(
            id=f"booking_{offer['id']}",
            name=offer.get("name", ""),
            coordinate=coordinate,
            rating=float(offer.get("rating") or 0),
            price=price,
            facilities=list(details.get("facilities") or []),
            policies=dict(details.get("policies") or {}),
            booking_url=offer.get("url"),
            address=offer.get("address"),
            star_rating=float(offer.get("star_rating") or 0),
            rooms=list(details.get("rooms") or []),
            photos=photos,
        )

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None
