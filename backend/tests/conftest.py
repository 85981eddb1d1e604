from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from hotel_search.schemas.hotel import Coordinate, DiscoveryRecord, Price, PricingRecord
from hotel_search.services.cache_service import CacheService, MemoryStore
from hotel_search.services.metrics_service import MetricsService
from hotel_search.services.retry import RetryExecutor


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def metrics() -> MetricsService:
    return MetricsService()


@pytest.fixture
def cache(clock: FakeClock, metrics: MetricsService) -> CacheService:
    return CacheService(client=MemoryStore(clock=clock), metrics=metrics)


@pytest.fixture
def retry(sleeper: RecordingSleep) -> RetryExecutor:
    return RetryExecutor(max_attempts=3, base_delay=1.0, sleep=sleeper)


def make_discovery(
    id: str,
    name: str,
    lat: float = 40.7589,
    lng: float = -73.9851,
    rating: float = 4.5,
    address: str | None = None,
) -> DiscoveryRecord:
    return DiscoveryRecord(
        id=id,
        name=name,
        address=address if address is not None else f"{id} Main St",
        rating=rating,
        coordinate=Coordinate(lat, lng),
    )


def make_offer(
    id: str,
    name: str,
    lat: float = 40.7589,
    lng: float = -73.9851,
    rating: float = 4.5,
    amount: float | None = 200.0,
) -> PricingRecord:
    return PricingRecord(
        id=f"booking_{id}",
        name=name,
        coordinate=Coordinate(lat, lng),
        rating=rating,
        price=Price(amount=amount) if amount is not None else None,
        booking_url=f"https://booking.example/{id}",
    )


class DummyPlaces:
    def __init__(self, records: list[DiscoveryRecord] | None = None, error: Exception | None = None) -> None:
        self.records = records or []
        self.error = error
        self.calls = 0

    async def search(self, coordinate: Coordinate, radius_m: int | None = None) -> list[DiscoveryRecord]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.records)


class DummyBooking:
    """Returns offers per call in order; an Exception entry is raised instead."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.calls: list[Coordinate] = []

    async def search(self, coordinate: Coordinate, check_in: date, check_out: date, guests: int):
        self.calls.append(coordinate)
        response = self.responses[min(len(self.calls) - 1, len(self.responses) - 1)]
        if isinstance(response, Exception):
            raise response
        return list(response)
