"""Hotel search service: discovers hotels, prices them in batches and merges the two providers."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable

from hotel_search.config import settings
from hotel_search.errors import GeocodingError, HotelSearchError, ProviderError
from hotel_search.schemas.hotel import (
    DiscoveryRecord,
    HotelSearchResult,
    MatchedHotel,
    SearchMetadata,
    SearchQuery,
)
from hotel_search.services.booking_client import BookingClient
from hotel_search.services.cache_service import CacheService
from hotel_search.services.geocoding_service import GeocodingService
from hotel_search.services.matching import MatchWeights, best_match
from hotel_search.services.places_client import PROVIDER as DISCOVERY_PROVIDER
from hotel_search.services.places_client import PlacesClient

logger = logging.getLogger(__name__)

PRICING_FAILED = "Failed to fetch pricing"


@dataclass(frozen=True)
class Ok:
    hotel: MatchedHotel


@dataclass(frozen=True)
class Err:
    record: DiscoveryRecord
    error: Exception


SlotResult = Ok | Err


def dedupe_records(records: list[DiscoveryRecord]) -> list[DiscoveryRecord]:
    """Collapse records sharing a name+address key, keeping the first."""
    seen = set()
    unique = []
    for r in records:
        if r.dedup_key not in seen:
            seen.add(r.dedup_key)
            unique.append(r)
    return unique


def merge_slots(slots: list[SlotResult]) -> list[MatchedHotel]:
    hotels = []
    for slot in slots:
        if isinstance(slot, Ok):
            hotels.append(slot.hotel)
        else:
            hotels.append(MatchedHotel.unpriced(slot.record, error=PRICING_FAILED))
    return hotels


def _rank_key(hotel: MatchedHotel) -> tuple:
    priced = hotel.has_price
    return (
        not hotel.available,
        not priced,
        hotel.price.amount if priced else 0.0,
        -hotel.rating,
    )


def rank_hotels(hotels: list[MatchedHotel]) -> list[MatchedHotel]:
    """Available first, then cheapest priced, then highest rated."""
    return sorted(hotels, key=_rank_key)


class HotelService:
    """Orchestrates discovery, batched pricing, matching, ranking and caching."""

    def __init__(
        self,
        cache: CacheService,
        discovery: PlacesClient,
        pricing: BookingClient,
        geocoder: GeocodingService | None = None,
        weights: MatchWeights | None = None,
        batch_size: int | None = None,
        batch_delay_s: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._cache = cache
        self._discovery = discovery
        self._pricing = pricing
        self._geocoder = geocoder
        self._weights = weights or MatchWeights.from_settings()
        self._batch_size = batch_size or settings.pricing_batch_size
        self._batch_delay_s = settings.pricing_batch_delay_s if batch_delay_s is None else batch_delay_s
        self._sleep = sleep

    async def search_by_location(
        self,
        location: str,
        check_in: date,
        check_out: date,
        guests: int = 2,
    ) -> HotelSearchResult:
        """Geocode free text, then search around the resolved coordinate."""
        if self._geocoder is None:
            raise GeocodingError("Geocoding is not configured")

        geo = await self._geocoder.resolve(location)
        if geo is None:
            raise GeocodingError(f"Location not found: {location}", 404)

        query = SearchQuery(
            coordinate=geo.coordinate, check_in=check_in, check_out=check_out, guests=guests
        )
        result = await self.search_hotels(query)
        return HotelSearchResult(hotels=result.hotels, metadata=result.metadata, location=geo)

    async def search_hotels(self, query: SearchQuery) -> HotelSearchResult:
        """Merged, ranked hotel list for one search.

        Only discovery failure is fatal here. A failed pricing batch degrades
        its hotels to unavailable and the remaining batches still run.
        """
        records = dedupe_records(await self._discover(query))
        if not records:
            return HotelSearchResult(hotels=[], metadata=SearchMetadata.from_hotels([]))

        cache_key = self._cache.hotel_pricing_key(
            query.check_in.isoformat(),
            query.check_out.isoformat(),
            query.guests,
            [r.id for r in records],
        )
        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.info(f"Cache hit: {len(cached)} priced hotels")
            hotels = [MatchedHotel.from_dict(h) for h in cached]
            return HotelSearchResult(hotels=hotels, metadata=SearchMetadata.from_hotels(hotels))

        slots = await self._price_in_batches(records, query)
        hotels = rank_hotels(merge_slots(slots))
        metadata = SearchMetadata.from_hotels(hotels)

        await self._cache.set(
            cache_key, [h.to_dict() for h in hotels], settings.hotel_search_cache_ttl
        )
        logger.info(
            f"Hotel search: {metadata.total} hotels, {metadata.available} available, "
            f"{metadata.with_pricing} with pricing"
        )
        return HotelSearchResult(hotels=hotels, metadata=metadata)

    async def _discover(self, query: SearchQuery) -> list[DiscoveryRecord]:
        try:
            return await self._discovery.search(query.coordinate)
        except HotelSearchError:
            raise
        except Exception as e:
            logger.error(f"Hotel discovery failed: {e}")
            raise ProviderError("Failed to fetch hotels", DISCOVERY_PROVIDER) from e

    async def _price_in_batches(
        self, records: list[DiscoveryRecord], query: SearchQuery
    ) -> list[SlotResult]:
        slots: list[SlotResult] = []
        size = self._batch_size

        for start in range(0, len(records), size):
            batch = records[start:start + size]
            slots.extend(await self._price_batch(batch, query, start))

            # Rate-limit spacing between sequential batches
            if start + size < len(records):
                await self._sleep(self._batch_delay_s)

        return slots

    async def _price_batch(
        self, batch: list[DiscoveryRecord], query: SearchQuery, start: int
    ) -> list[SlotResult]:
        try:
            offers = await self._pricing.search(
                batch[0].coordinate, query.check_in, query.check_out, query.guests
            )
        except Exception as e:
            logger.warning(f"Failed to enrich batch {start}-{start + len(batch)}: {e}")
            return [Err(record=r, error=e) for r in batch]

        results: list[SlotResult] = []
        for record in batch:
            match = best_match(record, offers, self._weights)
            if match is None:
                results.append(Ok(MatchedHotel.unpriced(record)))
            else:
                results.append(Ok(MatchedHotel.paired(record, match.offer, match.score)))
        return results
