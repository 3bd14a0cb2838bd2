from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.session.redis_store import open_store
from teamtravel.types import BookingChoice, FlightOffer, UserPreferences

HISTORY_LIMIT = 50


class PreferenceStore:
    """Per-user travel preferences and booking history in a keyed store.

    A first read returns (and persists) defaults; updates are partial and can
    never change the user id.
    """

    def __init__(self, store=None, history_store=None):
        ttl = settings.PREFERENCES_TTL_SECONDS
        self.store = store if store is not None else open_store("user_pref:", ttl)
        self.history_store = history_store if history_store is not None else open_store("user_hist:", ttl)

    def get(self, user_id: str) -> UserPreferences:
        raw = self.store.get(user_id)
        if raw:
            return UserPreferences.model_validate(raw)
        prefs = UserPreferences(user_id=user_id)
        self.store.set(user_id, prefs.model_dump(mode="json"))
        return prefs

    def update(self, user_id: str, partial: Dict[str, Any]) -> UserPreferences:
        current = self.get(user_id)
        merged = {
            **current.model_dump(),
            **{k: v for k, v in partial.items() if k in UserPreferences.model_fields},
            "user_id": user_id,
            "updated_at": datetime.now(),
        }
        prefs = UserPreferences.model_validate(merged)
        self.store.set(user_id, prefs.model_dump(mode="json"))
        log_event("preferences_updated", user_id=user_id,
                  fields=sorted(k for k in partial if k in UserPreferences.model_fields))
        return prefs

    def record_choice(self, choice: BookingChoice) -> None:
        rec = self.history_store.get(choice.user_id) or {"choices": []}
        rec["choices"].append(choice.model_dump(mode="json"))
        rec["choices"] = rec["choices"][-HISTORY_LIMIT:]
        self.history_store.set(choice.user_id, rec)

    def booking_history(self, user_id: str) -> List[BookingChoice]:
        rec = self.history_store.get(user_id) or {"choices": []}
        return [BookingChoice.model_validate(c) for c in rec["choices"]]


class PreferenceLearningResult(BaseModel):
    insights: List[str] = []
    updated_preferences: bool = False
    suggested_updates: Dict[str, Any] = {}


def _window_for_hour(hour: int) -> str:
    if 5 <= hour < 8:
        return "early_morning"
    if 8 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "red_eye"


class PreferenceLearner:
    """Nudges stored preferences toward what a user actually books."""

    AIRLINE_REPEAT_THRESHOLD = 3

    def __init__(self, store: PreferenceStore):
        self.store = store

    def learn_from_choice(self, user_id: str, chosen: FlightOffer,
                          alternatives: List[FlightOffer]) -> PreferenceLearningResult:
        prefs = self.store.get(user_id)
        history = self.store.booking_history(user_id)
        insights: List[str] = []
        updates: Dict[str, Any] = {}

        airline: Optional[str] = chosen.segments[0].airline if chosen.segments else None
        if airline:
            times = 1 + sum(1 for c in history if c.chosen_airline == airline)
            if times >= self.AIRLINE_REPEAT_THRESHOLD and airline not in prefs.preferred_airlines:
                updates["preferred_airlines"] = prefs.preferred_airlines + [airline]
                insights.append(f"You've chosen {airline} {times} times. Adding to preferred airlines.")

        cheaper = [a for a in alternatives if a.total_price < chosen.total_price]
        expensive_ratio = len(cheaper) / max(len(alternatives), 1)
        if expensive_ratio > 0.7 and prefs.budget_priority == "cheapest":
            updates["budget_priority"] = "best_value"
            insights.append("You tend to pick options balanced on value rather than strictly cheapest. Adjusting ranking.")
        elif expensive_ratio < 0.2 and prefs.budget_priority != "cheapest":
            updates["budget_priority"] = "cheapest"
            insights.append("You consistently pick the cheapest option. Adjusting ranking to prioritize price.")

        if len(history) >= 2 and chosen.segments:
            pattern = _window_for_hour(chosen.segments[0].departure_time.hour)
            if pattern != prefs.time_preference:
                updates["time_preference"] = pattern
                insights.append(f"Your booking pattern suggests you prefer {pattern.replace('_', ' ')} departures.")

        if chosen.stops == 0 and any(a.stops > 0 and a.total_price < chosen.total_price for a in alternatives):
            insights.append("You preferred a nonstop flight despite cheaper connecting options.")

        self.store.record_choice(BookingChoice(
            user_id=user_id,
            chosen_offer_id=chosen.id,
            chosen_airline=airline,
            price=chosen.total_price,
            offered_alternatives=[a.id for a in alternatives],
        ))
        if updates:
            self.store.update(user_id, updates)

        return PreferenceLearningResult(
            insights=insights,
            updated_preferences=bool(updates),
            suggested_updates=updates,
        )
