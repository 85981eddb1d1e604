"""Review service: Google Places reviews with a 12h cache."""

import logging

from hotel_search.errors import HotelSearchError, ProviderError, ValidationError
from hotel_search.schemas.hotel import Review
from hotel_search.services.cache_service import TTL_REVIEWS, CacheService
from hotel_search.services.places_client import REVIEWS_PROVIDER, PlacesClient

logger = logging.getLogger(__name__)


def calculate_average_rating(reviews: list[Review]) -> float:
    """Mean review rating rounded to one decimal, 0 when there are none."""
    if not reviews:
        return 0
    return round(sum(r.rating for r in reviews) / len(reviews), 1)


class ReviewService:
    def __init__(self, cache: CacheService, places: PlacesClient):
        self._cache = cache
        self._places = places

    async def get_reviews(self, place_id: str) -> list[Review]:
        if not place_id or not isinstance(place_id, str) or not place_id.strip():
            raise ValidationError("Invalid place ID provided")

        cache_key = self._cache.reviews_key(place_id)
        cached = await self._cache.get(cache_key)
        if cached:
            logger.info(f"Reviews cache hit for place: {place_id}")
            return [Review.from_dict(r) for r in cached]

        try:
            result = await self._places.get_place_reviews(place_id)
        except HotelSearchError:
            raise
        except Exception as e:
            logger.error(f"Review fetch error for '{place_id}': {e}")
            raise ProviderError(
                "Failed to fetch reviews from external service", REVIEWS_PROVIDER
            ) from e

        reviews = [Review.from_dict(r) for r in result.get("reviews") or []]
        if reviews:
            await self._cache.set(cache_key, [r.to_dict() for r in reviews], TTL_REVIEWS)
            logger.info(f"Cached {len(reviews)} reviews for place: {place_id}")
        return reviews
