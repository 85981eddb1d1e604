"""Places router: location autocomplete for the search box."""

from fastapi import APIRouter, Depends, Query

from hotel_search.dependencies import get_places_client
from hotel_search.services.places_client import PlacesClient

router = APIRouter()


@router.get("/autocomplete")
async def autocomplete(
    input: str = Query("", max_length=200),
    places: PlacesClient = Depends(get_places_client),
):
    return {"predictions": await places.autocomplete(input)}
