"""Hotel router: coordinate and free-text hotel search, plus single-hotel details."""

import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query

from hotel_search.dependencies import get_booking_client, get_hotel_service
from hotel_search.errors import ValidationError
from hotel_search.schemas.hotel import MAX_GUESTS, MIN_GUESTS, Coordinate, SearchQuery
from hotel_search.services.booking_client import BookingClient
from hotel_search.services.hotel_service import HotelService

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_AREA_LENGTH = 100


def _resolve_dates(check_in: date | None, check_out: date | None) -> tuple[date, date]:
    """Default to tonight, one night. Rejects past or inverted stays."""
    today = date.today()
    check_in = check_in or today
    check_out = check_out or check_in + timedelta(days=1)

    if check_in < today:
        raise ValidationError("Check-in date cannot be in the past")
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")
    return check_in, check_out


@router.get("/hotels")
async def search_hotels(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    check_in: date | None = None,
    check_out: date | None = None,
    guests: int = Query(2, ge=MIN_GUESTS, le=MAX_GUESTS),
    service: HotelService = Depends(get_hotel_service),
):
    """Search hotels around a coordinate."""
    check_in, check_out = _resolve_dates(check_in, check_out)
    logger.info(f"Search request: lat={lat}, lng={lng}, {check_in} -> {check_out}, guests={guests}")

    query = SearchQuery(
        coordinate=Coordinate(lat, lng),
        check_in=check_in,
        check_out=check_out,
        guests=guests,
    )
    result = await service.search_hotels(query)
    return {
        "success": True,
        "location": {"coordinates": {"lat": lat, "lng": lng}},
        **result.to_dict(),
    }


@router.get("/hotels/search")
async def search_hotels_by_area(
    area: str = Query(..., min_length=2, max_length=MAX_AREA_LENGTH),
    check_in: date | None = None,
    check_out: date | None = None,
    guests: int = Query(2, ge=MIN_GUESTS, le=MAX_GUESTS),
    service: HotelService = Depends(get_hotel_service),
):
    """Search hotels around a free-text location."""
    area = area.strip()
    if len(area) < 2:
        raise ValidationError("Area must be at least 2 characters long")
    check_in, check_out = _resolve_dates(check_in, check_out)

    result = await service.search_by_location(area, check_in, check_out, guests)
    return {"success": True, **result.to_dict()}


@router.get("/hotels/{hotel_id}")
async def get_hotel_details(
    hotel_id: str,
    booking: BookingClient = Depends(get_booking_client),
):
    """Full Booking.com details for one priced hotel (``booking_<id>``)."""
    record = await booking.get_hotel_details(hotel_id)
    return {"success": True, "hotel": record.to_dict()}
