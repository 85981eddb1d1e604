"""Hotel reviews router."""

import logging

from fastapi import APIRouter, Depends

from hotel_search.dependencies import get_review_service
from hotel_search.services.review_service import ReviewService, calculate_average_rating

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{place_id}")
async def get_reviews(
    place_id: str,
    service: ReviewService = Depends(get_review_service),
):
    """Reviews for a discovered hotel, keyed by its Google place id."""
    logger.info(f"Fetching reviews for place: {place_id}")
    reviews = await service.get_reviews(place_id)
    return {
        "success": True,
        "placeId": place_id,
        "reviews": [r.to_dict() for r in reviews],
        "total": len(reviews),
        "averageRating": calculate_average_rating(reviews),
    }
