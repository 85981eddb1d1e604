"""Match engine: pairs a discovered hotel with the pricing offer that denotes it.

The two providers share no identifiers, so a pairing is decided by a weighted
score over name similarity, geographic distance and rating similarity. An
exact (case-insensitive) name match short-circuits the scoring.
"""

import math
from dataclasses import dataclass

from hotel_search.config import settings
from hotel_search.schemas.hotel import Coordinate, DiscoveryRecord, PricingRecord

EARTH_RADIUS_M = 6_371_000
MAX_RATING = 5.0


@dataclass(frozen=True)
class MatchWeights:
    name: float = 0.5
    distance: float = 0.3
    rating: float = 0.2
    threshold: float = 0.7
    max_distance_m: float = 500.0

    @classmethod
    def from_settings(cls) -> "MatchWeights":
        return cls(
            name=settings.match_name_weight,
            distance=settings.match_distance_weight,
            rating=settings.match_rating_weight,
            threshold=settings.match_threshold,
            max_distance_m=settings.match_max_distance_m,
        )


@dataclass(frozen=True)
class MatchResult:
    offer: PricingRecord
    score: float


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost for insert, delete and substitute."""
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            if a[i - 1] == b[j - 1]:
                dp[i][j] = dp[i - 1][j - 1]
            else:
                dp[i][j] = 1 + min(dp[i - 1][j - 1], dp[i - 1][j], dp[i][j - 1])
    return dp[m][n]


def name_similarity(a: str, b: str) -> float:
    """1 - normalized edit distance between the lowercased names."""
    a, b = a.lower(), b.lower()
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - levenshtein(a, b) / longest


def haversine_distance(a: Coordinate, b: Coordinate) -> int:
    """Great-circle distance in metres, rounded to the nearest metre."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return round(EARTH_RADIUS_M * c)


def distance_score(distance_m: float, max_distance_m: float = 500.0) -> float:
    return max(0.0, 1 - distance_m / max_distance_m)


def rating_similarity(a: float | None, b: float | None) -> float:
    # Missing or zero ratings carry no signal
    if not a or not b:
        return 0.0
    return 1 - abs(a - b) / MAX_RATING


def match_score(
    hotel: DiscoveryRecord,
    offer: PricingRecord,
    weights: MatchWeights | None = None,
) -> float:
    if weights is None:
        weights = MatchWeights()

    distance = haversine_distance(hotel.coordinate, offer.coordinate)
    return (
        weights.name * name_similarity(hotel.name, offer.name)
        + weights.distance * distance_score(distance, weights.max_distance_m)
        + weights.rating * rating_similarity(hotel.rating, offer.rating)
    )


def best_match(
    hotel: DiscoveryRecord,
    offers: list[PricingRecord],
    weights: MatchWeights | None = None,
) -> MatchResult | None:
    """Return the single best offer for ``hotel`` above threshold, or None."""
    if not offers:
        return None
    if weights is None:
        weights = MatchWeights()

    name = hotel.name.lower()
    for offer in offers:
        if offer.name.lower() == name:
            return MatchResult(offer=offer, score=1.0)

    scored = [(match_score(hotel, offer, weights), offer) for offer in offers]
    # Stable sort: on ties the earliest offer wins
    scored.sort(key=lambda s: s[0], reverse=True)
    score, offer = scored[0]

    if score > weights.threshold:
        return MatchResult(offer=offer, score=min(score, 1.0))
    return None
