"""Geocoding router."""

from fastapi import APIRouter, Depends, Query

from hotel_search.dependencies import get_geocoding_service
from hotel_search.errors import GeocodingError
from hotel_search.schemas.hotel import Coordinate
from hotel_search.services.geocoding_service import GeocodingService

router = APIRouter()


@router.get("")
async def geocode(
    address: str = Query(..., max_length=200),
    service: GeocodingService = Depends(get_geocoding_service),
):
    result = await service.resolve(address)
    if result is None:
        raise GeocodingError(f"Location not found: {address}", 404)
    return result.to_dict()


@router.get("/reverse")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    service: GeocodingService = Depends(get_geocoding_service),
):
    result = await service.reverse(Coordinate(lat, lng))
    if result is None:
        raise GeocodingError(f"No address found for {lat},{lng}", 404)
    return result.to_dict()
