"""Domain records for discovery, pricing and merged hotel results."""

import math
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from hotel_search.errors import ValidationError

MIN_GUESTS = 1
MAX_GUESTS = 10


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self):
        lat, lng = self.latitude, self.longitude
        if not (isinstance(lat, (int, float)) and isinstance(lng, (int, float))):
            raise ValidationError("Latitude and longitude must be valid numbers")
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ValidationError("Latitude and longitude must be finite")
        if lat < -90 or lat > 90:
            raise ValidationError("Latitude must be between -90 and 90")
        if lng < -180 or lng > 180:
            raise ValidationError("Longitude must be between -180 and 180")

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, data: dict) -> "Coordinate":
        return cls(latitude=float(data["latitude"]), longitude=float(data["longitude"]))


@dataclass(frozen=True)
class SearchQuery:
    """A validated hotel search. check_out > check_in is enforced by the caller."""
    coordinate: Coordinate
    check_in: date
    check_out: date
    guests: int = 2

    def __post_init__(self):
        if self.guests < MIN_GUESTS or self.guests > MAX_GUESTS:
            raise ValidationError(f"Guest count must be between {MIN_GUESTS} and {MAX_GUESTS}")

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days


@dataclass(frozen=True)
class GeoLocation:
    """Forward geocoding result."""
    coordinate: Coordinate
    formatted_address: str | None = None
    place_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "lat": self.coordinate.latitude,
            "lng": self.coordinate.longitude,
            "formatted_address": self.formatted_address,
            "place_id": self.place_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GeoLocation":
        return cls(
            coordinate=Coordinate(float(data["lat"]), float(data["lng"])),
            formatted_address=data.get("formatted_address"),
            place_id=data.get("place_id"),
        )


@dataclass(frozen=True)
class AddressInfo:
    """Reverse geocoding result."""
    formatted_address: str
    place_id: str | None = None
    address_components: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "formatted_address": self.formatted_address,
            "place_id": self.place_id,
            "address_components": list(self.address_components),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AddressInfo":
        return cls(
            formatted_address=data.get("formatted_address", ""),
            place_id=data.get("place_id"),
            address_components=list(data.get("address_components") or []),
        )


@dataclass(frozen=True)
class DiscoveryRecord:
    """Candidate hotel returned by the discovery provider. Identity anchor."""
    id: str
    name: str
    address: str
    rating: float
    coordinate: Coordinate
    photos: tuple[str, ...] = ()
    user_ratings_total: int | None = None
    types: tuple[str, ...] = ()

    @property
    def dedup_key(self) -> str:
        return f"{self.name.lower()}_{self.address.lower()}"


@dataclass(frozen=True)
class Price:
    amount: float
    currency: str = "USD"
    period: str = "per night"

    def to_dict(self) -> dict:
        return {"amount": self.amount, "currency": self.currency, "period": self.period}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Price | None":
        if not data:
            return None
        return cls(
            amount=float(data.get("amount") or 0),
            currency=data.get("currency", "USD"),
            period=data.get("period", "per night"),
        )


@dataclass(frozen=True)
class PricingRecord:
    """Priced offer returned by the pricing provider."""
    id: str
    name: str
    coordinate: Coordinate
    rating: float = 0.0
    price: Price | None = None
    facilities: list[Any] = field(default_factory=list)
    policies: dict = field(default_factory=dict)
    booking_url: str | None = None
    address: str | None = None
    star_rating: float = 0.0
    rooms: list[Any] = field(default_factory=list)
    photos: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "rating": self.rating,
            "star_rating": self.star_rating,
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "price": self.price.to_dict() if self.price else None,
            "photos": list(self.photos),
            "facilities": list(self.facilities),
            "policies": dict(self.policies),
            "rooms": list(self.rooms),
            "booking_url": self.booking_url,
            "provider": "booking.com",
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PricingRecord":
        return cls(
            id=data["id"],
            name=data["name"],
            coordinate=Coordinate(float(data["latitude"]), float(data["longitude"])),
            rating=float(data.get("rating") or 0),
            price=Price.from_dict(data.get("price")),
            facilities=list(data.get("facilities") or []),
            policies=dict(data.get("policies") or {}),
            booking_url=data.get("booking_url"),
            address=data.get("address"),
            star_rating=float(data.get("star_rating") or 0),
            rooms=list(data.get("rooms") or []),
            photos=list(data.get("photos") or []),
        )


@dataclass(frozen=True)
class MatchedHotel:
    """One discovery record merged with at most one pricing record."""
    id: str
    name: str
    address: str
    rating: float
    coordinate: Coordinate
    photos: tuple[str, ...] = ()
    user_ratings_total: int | None = None
    available: bool = False
    price: Price | None = None
    match_score: float | None = None
    booking_id: str | None = None
    booking_url: str | None = None
    facilities: list[Any] = field(default_factory=list)
    policies: dict = field(default_factory=dict)
    rooms: list[Any] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def unpriced(cls, record: DiscoveryRecord, error: str | None = None) -> "MatchedHotel":
        return cls(
            id=record.id,
            name=record.name,
            address=record.address,
            rating=record.rating,
            coordinate=record.coordinate,
            photos=record.photos,
            user_ratings_total=record.user_ratings_total,
            error=error,
        )

    @classmethod
    def paired(cls, record: DiscoveryRecord, offer: PricingRecord, score: float) -> "MatchedHotel":
        return replace(
            cls.unpriced(record),
            available=True,
            price=offer.price,
            match_score=round(score, 4),
            booking_id=offer.id,
            booking_url=offer.booking_url,
            facilities=list(offer.facilities),
            policies=dict(offer.policies),
            rooms=list(offer.rooms),
        )

    @property
    def dedup_key(self) -> str:
        return f"{self.name.lower()}_{self.address.lower()}"

    @property
    def has_price(self) -> bool:
        return self.price is not None and self.price.amount > 0

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "rating": self.rating,
            "latitude": self.coordinate.latitude,
            "longitude": self.coordinate.longitude,
            "photos": list(self.photos),
            "user_ratings_total": self.user_ratings_total,
            "available": self.available,
            "price": self.price.to_dict() if self.price else None,
        }
        if self.available:
            data.update({
                "match_score": self.match_score,
                "booking_id": self.booking_id,
                "booking_url": self.booking_url,
                "facilities": list(self.facilities),
                "policies": dict(self.policies),
                "rooms": list(self.rooms),
            })
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MatchedHotel":
        return cls(
            id=data["id"],
            name=data["name"],
            address=data.get("address", ""),
            rating=float(data.get("rating") or 0),
            coordinate=Coordinate(float(data["latitude"]), float(data["longitude"])),
            photos=tuple(data.get("photos") or ()),
            user_ratings_total=data.get("user_ratings_total"),
            available=bool(data.get("available")),
            price=Price.from_dict(data.get("price")),
            match_score=data.get("match_score"),
            booking_id=data.get("booking_id"),
            booking_url=data.get("booking_url"),
            facilities=list(data.get("facilities") or []),
            policies=dict(data.get("policies") or {}),
            rooms=list(data.get("rooms") or []),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class SearchMetadata:
    total: int
    available: int
    unavailable: int
    with_pricing: int

    @classmethod
    def from_hotels(cls, hotels: list[MatchedHotel]) -> "SearchMetadata":
        available = sum(1 for h in hotels if h.available)
        return cls(
            total=len(hotels),
            available=available,
            unavailable=len(hotels) - available,
            with_pricing=sum(1 for h in hotels if h.has_price),
        )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "available": self.available,
            "unavailable": self.unavailable,
            "withPricing": self.with_pricing,
        }


@dataclass(frozen=True)
class HotelSearchResult:
    hotels: list[MatchedHotel]
    metadata: SearchMetadata
    location: GeoLocation | None = None

    def to_dict(self) -> dict:
        data = {
            "hotels": [h.to_dict() for h in self.hotels],
            "metadata": self.metadata.to_dict(),
        }
        if self.location:
            data["location"] = self.location.to_dict()
        return data


@dataclass(frozen=True)
class Review:
    author: str
    rating: float
    text: str = ""
    time: int | None = None
    relative_time_description: str | None = None

    def to_dict(self) -> dict:
        return {
            "author": self.author,
            "rating": self.rating,
            "text": self.text,
            "time": self.time,
            "relative_time_description": self.relative_time_description,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Review":
        return cls(
            author=data.get("author") or data.get("author_name") or "",
            rating=float(data.get("rating") or 0),
            text=data.get("text") or "",
            time=data.get("time"),
            relative_time_description=data.get("relative_time_description"),
        )
