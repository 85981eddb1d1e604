"""Service wiring: one instance of each service per process, injected into routers."""

from dataclasses import dataclass
from functools import lru_cache

from hotel_search.services.booking_client import BookingClient
from hotel_search.services.cache_service import CacheService
from hotel_search.services.geocoding_service import GeocodingService
from hotel_search.services.hotel_service import HotelService
from hotel_search.services.metrics_service import MetricsService
from hotel_search.services.places_client import PlacesClient
from hotel_search.services.retry import RetryExecutor
from hotel_search.services.review_service import ReviewService


@dataclass
class Services:
    metrics: MetricsService
    cache: CacheService
    geocoding: GeocodingService
    places: PlacesClient
    booking: BookingClient
    hotels: HotelService
    reviews: ReviewService

    async def close(self):
        await self.geocoding.close()
        await self.places.close()
        await self.booking.close()
        await self.cache.close()


def build_services() -> Services:
    metrics = MetricsService()
    cache = CacheService(metrics=metrics)
    retry = RetryExecutor()
    geocoding = GeocodingService(cache, metrics, retry)
    places = PlacesClient(metrics, retry)
    booking = BookingClient(cache, metrics, retry)
    return Services(
        metrics=metrics,
        cache=cache,
        geocoding=geocoding,
        places=places,
        booking=booking,
        hotels=HotelService(cache, places, booking, geocoder=geocoding),
        reviews=ReviewService(cache, places),
    )


@lru_cache()
def get_services() -> Services:
    return build_services()


def get_hotel_service() -> HotelService:
    return get_services().hotels


def get_geocoding_service() -> GeocodingService:
    return get_services().geocoding


def get_review_service() -> ReviewService:
    return get_services().reviews


def get_metrics_service() -> MetricsService:
    return get_services().metrics


def get_cache_service() -> CacheService:
    return get_services().cache


def get_places_client() -> PlacesClient:
    return get_services().places


def get_booking_client() -> BookingClient:
    return get_services().booking
