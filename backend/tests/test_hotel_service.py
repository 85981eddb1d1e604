from __future__ import annotations

from datetime import date

import pytest

from conftest import DummyBooking, DummyPlaces, make_discovery, make_offer
from hotel_search.errors import GeocodingError, ProviderError, RateLimitError
from hotel_search.schemas.hotel import Coordinate, GeoLocation, MatchedHotel, Price, SearchQuery
from hotel_search.services.hotel_service import (
    PRICING_FAILED,
    Err,
    HotelService,
    Ok,
    dedupe_records,
    merge_slots,
    rank_hotels,
)

CHECK_IN = date(2026, 11, 1)
CHECK_OUT = date(2026, 11, 3)


def _query(guests: int = 2) -> SearchQuery:
    return SearchQuery(
        coordinate=Coordinate(40.7589, -73.9851), check_in=CHECK_IN, check_out=CHECK_OUT, guests=guests
    )


def _records(count: int):
    # Spread along a meridian so batch anchors differ
    return [
        make_discovery(f"g{i:02d}", f"Hotel {i:02d}", lat=40.70 + i * 0.001, rating=4.0 + (i % 5) / 10)
        for i in range(count)
    ]


def _offers_for(records, base_amount: float = 100.0):
    return [
        make_offer(r.id, r.name, r.coordinate.latitude, r.coordinate.longitude, r.rating, base_amount + i)
        for i, r in enumerate(records)
    ]


class DummyGeocoder:
    def __init__(self, result: GeoLocation | None) -> None:
        self.result = result
        self.calls: list[str] = []

    async def resolve(self, location: str) -> GeoLocation | None:
        self.calls.append(location)
        return self.result


def _service(cache, places, booking, sleeper, **kwargs) -> HotelService:
    return HotelService(cache, places, booking, batch_size=10, batch_delay_s=1.0, sleep=sleeper, **kwargs)


@pytest.mark.asyncio
async def test_failed_middle_batch_degrades_only_its_hotels(cache, sleeper):
    records = _records(25)
    places = DummyPlaces(records)
    booking = DummyBooking([
        _offers_for(records[0:10]),
        RateLimitError("Booking.com API rate limited", "booking"),
        _offers_for(records[20:25], base_amount=300.0),
    ])
    service = _service(cache, places, booking, sleeper)

    result = await service.search_hotels(_query())

    assert len(booking.calls) == 3
    assert result.metadata.total == 25
    assert result.metadata.available == 15
    assert result.metadata.unavailable == 10
    assert result.metadata.with_pricing == 15

    by_id = {h.id: h for h in result.hotels}
    for r in records[10:20]:
        hotel = by_id[r.id]
        assert hotel.available is False
        assert hotel.error == PRICING_FAILED
        assert hotel.price is None
    for r in records[0:10] + records[20:25]:
        hotel = by_id[r.id]
        assert hotel.available is True
        assert hotel.error is None
        assert hotel.booking_id == f"booking_{r.id}"
        assert hotel.match_score == 1.0


@pytest.mark.asyncio
async def test_batches_are_spaced_by_delay(cache, sleeper):
    records = _records(25)
    service = _service(cache, DummyPlaces(records), DummyBooking([_offers_for(records)]), sleeper)

    await service.search_hotels(_query())

    assert sleeper.delays == [1.0, 1.0]


@pytest.mark.asyncio
async def test_single_batch_does_not_sleep(cache, sleeper):
    records = _records(10)
    service = _service(cache, DummyPlaces(records), DummyBooking([_offers_for(records)]), sleeper)

    await service.search_hotels(_query())

    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_each_batch_is_priced_at_its_first_hotel(cache, sleeper):
    records = _records(25)
    booking = DummyBooking([_offers_for(records)])
    service = _service(cache, DummyPlaces(records), booking, sleeper)

    await service.search_hotels(_query())

    assert booking.calls == [records[0].coordinate, records[10].coordinate, records[20].coordinate]


@pytest.mark.asyncio
async def test_results_are_ranked(cache, sleeper):
    cheap = make_discovery("g1", "Budget Stay", rating=3.0)
    pricey = make_discovery("g2", "Royal Palace", rating=5.0)
    unmatched_low = make_discovery("g3", "Nowhere Lodge", rating=3.5)
    unmatched_high = make_discovery("g4", "Elsewhere Inn", rating=4.8)
    records = [pricey, unmatched_low, cheap, unmatched_high]
    offers = [
        make_offer("b2", "Royal Palace", amount=450.0),
        make_offer("b1", "Budget Stay", amount=89.0),
    ]
    service = _service(cache, DummyPlaces(records), DummyBooking([offers]), sleeper)

    result = await service.search_hotels(_query())

    assert [h.id for h in result.hotels] == ["g1", "g2", "g4", "g3"]
    assert result.hotels[2].available is False
    assert result.hotels[2].error is None


@pytest.mark.asyncio
async def test_cache_hit_skips_pricing(cache, sleeper):
    records = _records(12)
    first_booking = DummyBooking([_offers_for(records)])
    first = await _service(cache, DummyPlaces(records), first_booking, sleeper).search_hotels(_query())

    second_booking = DummyBooking([RuntimeError("should not be called")])
    places = DummyPlaces(records)
    second = await _service(cache, places, second_booking, sleeper).search_hotels(_query())

    assert places.calls == 1
    assert second_booking.calls == []
    assert [h.to_dict() for h in second.hotels] == [h.to_dict() for h in first.hotels]
    assert second.metadata == first.metadata


@pytest.mark.asyncio
async def test_cache_key_includes_stay_and_guests(cache, sleeper):
    records = _records(3)
    service = _service(cache, DummyPlaces(records), DummyBooking([_offers_for(records)]), sleeper)
    await service.search_hotels(_query(guests=2))

    booking = DummyBooking([_offers_for(records)])
    service = _service(cache, DummyPlaces(records), booking, sleeper)
    await service.search_hotels(_query(guests=3))

    assert len(booking.calls) == 1


@pytest.mark.asyncio
async def test_partial_results_are_cached(cache, sleeper):
    records = _records(15)
    booking = DummyBooking([_offers_for(records[:10]), ProviderError("down", "booking", 503)])
    await _service(cache, DummyPlaces(records), booking, sleeper).search_hotels(_query())

    key = cache.hotel_pricing_key(CHECK_IN.isoformat(), CHECK_OUT.isoformat(), 2, [r.id for r in records])
    cached = await cache.get(key)
    assert len(cached) == 15
    assert sum(1 for h in cached if h.get("error") == PRICING_FAILED) == 5


@pytest.mark.asyncio
async def test_duplicate_discoveries_are_collapsed(cache, sleeper):
    a = make_discovery("g1", "Harbor Hotel", address="1 Pier Rd")
    dup = make_discovery("g2", "HARBOR HOTEL", address="1 pier rd")
    b = make_discovery("g3", "Hill Hotel", address="9 Summit Ave")
    service = _service(cache, DummyPlaces([a, dup, b]), DummyBooking([[]]), sleeper)

    result = await service.search_hotels(_query())

    assert [h.id for h in result.hotels] == ["g1", "g3"]
    assert result.metadata.total == 2


@pytest.mark.asyncio
async def test_empty_discovery_returns_empty_result(cache, sleeper):
    booking = DummyBooking([[]])
    result = await _service(cache, DummyPlaces([]), booking, sleeper).search_hotels(_query())

    assert result.hotels == []
    assert result.metadata.total == 0
    assert booking.calls == []


@pytest.mark.asyncio
async def test_discovery_failure_is_fatal(cache, sleeper):
    places = DummyPlaces(error=RuntimeError("socket closed"))
    service = _service(cache, places, DummyBooking([[]]), sleeper)

    with pytest.raises(ProviderError) as exc_info:
        await service.search_hotels(_query())
    assert exc_info.value.provider == "google_places"


@pytest.mark.asyncio
async def test_discovery_provider_error_passes_through(cache, sleeper):
    error = RateLimitError("quota", "google_places")
    service = _service(cache, DummyPlaces(error=error), DummyBooking([[]]), sleeper)

    with pytest.raises(RateLimitError) as exc_info:
        await service.search_hotels(_query())
    assert exc_info.value is error


@pytest.mark.asyncio
async def test_search_by_location_attaches_location(cache, sleeper):
    records = _records(2)
    geo = GeoLocation(Coordinate(40.7128, -74.006), "New York, NY, USA", "ChIJOwg_06VPwokRYv534QaPC8g")
    geocoder = DummyGeocoder(geo)
    service = _service(cache, DummyPlaces(records), DummyBooking([_offers_for(records)]), sleeper, geocoder=geocoder)

    result = await service.search_by_location("New York", CHECK_IN, CHECK_OUT, 2)

    assert geocoder.calls == ["New York"]
    assert result.location == geo
    assert result.to_dict()["location"]["formatted_address"] == "New York, NY, USA"
    assert result.metadata.total == 2


@pytest.mark.asyncio
async def test_search_by_location_not_found(cache, sleeper):
    service = _service(cache, DummyPlaces([]), DummyBooking([[]]), sleeper, geocoder=DummyGeocoder(None))

    with pytest.raises(GeocodingError) as exc_info:
        await service.search_by_location("Atlantis", CHECK_IN, CHECK_OUT)
    assert exc_info.value.status == 404


def test_merge_slots_marks_failed_records():
    ok_record = make_discovery("g1", "Alpha")
    bad_record = make_discovery("g2", "Beta")
    slots = [
        Ok(MatchedHotel.paired(ok_record, make_offer("b1", "Alpha"), 1.0)),
        Err(bad_record, RuntimeError("boom")),
    ]

    merged = merge_slots(slots)

    assert merged[0].available is True
    assert merged[1].available is False
    assert merged[1].error == PRICING_FAILED


def test_rank_zero_price_after_real_prices():
    base = make_discovery("g1", "Alpha", rating=5.0)
    free = MatchedHotel.paired(base, make_offer("b1", "Alpha", amount=0.0), 1.0)
    paid = MatchedHotel.paired(make_discovery("g2", "Beta", rating=3.0), make_offer("b2", "Beta", amount=50.0), 1.0)

    assert [h.id for h in rank_hotels([free, paid])] == ["g2", "g1"]


def test_rank_equal_prices_break_on_rating():
    low = MatchedHotel.paired(make_discovery("g1", "Alpha", rating=3.9), make_offer("b1", "Alpha"), 1.0)
    high = MatchedHotel.paired(make_discovery("g2", "Beta", rating=4.7), make_offer("b2", "Beta"), 1.0)

    ranked = rank_hotels([low, high])
    assert [h.id for h in ranked] == ["g2", "g1"]
    assert ranked[0].price == Price(200.0)


def test_dedupe_keeps_first_occurrence():
    first = make_discovery("g1", "Inn", address="Main")
    second = make_discovery("g2", "inn", address="MAIN")
    assert dedupe_records([first, second]) == [first]
