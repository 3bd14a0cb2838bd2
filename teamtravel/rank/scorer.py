"""Per-offer scoring against one traveller's preferences.

Every factor lands in [0, 1]; the offer score is their weighted sum. Batch
statistics are computed once by the ranker so each offer is scored relative
to the others it is shown next to.
"""

from typing import List, Optional, Tuple
from pydantic import BaseModel

from teamtravel.types import FlightOffer, UserPreferences, ScoreBreakdown
from teamtravel.rank.weights import RankingWeights, derive_weights

# [start, end) hour ranges; red_eye wraps midnight
TIME_WINDOWS = {
    "early_morning": (5, 8),
    "morning": (8, 12),
    "afternoon": (12, 17),
    "evening": (17, 21),
    "red_eye": (21, 5),
}
TIME_DECAY_PER_HOUR = 0.15


class BatchStats(BaseModel):
    min_price: float
    max_price: float
    min_duration: int
    max_duration: int
    max_stops: int

    @classmethod
    def from_offers(cls, offers: List[FlightOffer]) -> "BatchStats":
        if not offers:
            raise ValueError("batch statistics need at least one offer")
        prices = [o.total_price for o in offers]
        durations = [o.total_duration_minutes for o in offers]
        return cls(
            min_price=min(prices),
            max_price=max(prices),
            min_duration=min(durations),
            max_duration=max(durations),
            max_stops=max(o.stops for o in offers),
        )


def _normalised_low_is_good(value: float, low: float, high: float) -> float:
    spread = (high - low) or 1
    return 1 - (value - low) / spread


def _clock_distance(a: int, b: int) -> int:
    d = abs(a - b) % 24
    return min(d, 24 - d)


def _in_window(hour: int, window: Tuple[int, int]) -> bool:
    start, end = window
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def score_price(offer: FlightOffer, stats: BatchStats) -> float:
    return _normalised_low_is_good(offer.total_price, stats.min_price, stats.max_price)


def score_duration(offer: FlightOffer, stats: BatchStats) -> float:
    return _normalised_low_is_good(offer.total_duration_minutes, stats.min_duration, stats.max_duration)


def score_stops(offer: FlightOffer, stats: BatchStats) -> float:
    return 1 - offer.stops / max(stats.max_stops, 1)


def score_time_fit(offer: FlightOffer, prefs: UserPreferences) -> float:
    window = TIME_WINDOWS.get(prefs.time_preference)
    if window is None or not offer.segments:
        return 0.5
    hour = offer.segments[0].departure_time.hour
    if _in_window(hour, window):
        return 1.0
    start, end = window
    if start < end:
        distance = min(abs(hour - start), abs(hour - end))
    else:
        distance = min(_clock_distance(hour, start), _clock_distance(hour, end))
    return max(0.0, 1 - distance * TIME_DECAY_PER_HOUR)


def score_airline(offer: FlightOffer, prefs: UserPreferences) -> float:
    if not offer.segments:
        return 0.5
    airlines = set(offer.airlines)
    if airlines & set(prefs.avoid_airlines):
        return 0.0
    if not prefs.preferred_airlines:
        return 0.5
    preferred = len(airlines & set(prefs.preferred_airlines))
    if preferred == 0:
        return 0.3
    return 0.8 + (preferred / len(airlines)) * 0.2


def score_offer(
    offer: FlightOffer,
    prefs: UserPreferences,
    stats: BatchStats,
    weights: Optional[RankingWeights] = None,
) -> Tuple[float, ScoreBreakdown]:
    """Return (weighted total, per-factor breakdown) for one offer in its batch."""
    if weights is None:
        weights = derive_weights(prefs.budget_priority)

    breakdown = ScoreBreakdown(
        price=score_price(offer, stats),
        duration=score_duration(offer, stats),
        stops=score_stops(offer, stats),
        time_fit=score_time_fit(offer, prefs),
        airline=score_airline(offer, prefs),
    )
    total = (
        weights.price * breakdown.price
        + weights.duration * breakdown.duration
        + weights.stops * breakdown.stops
        + weights.time_fit * breakdown.time_fit
        + weights.airline * breakdown.airline
    )
    return total, breakdown
