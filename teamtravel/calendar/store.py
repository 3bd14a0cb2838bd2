from typing import Dict, List
import threading

from teamtravel.types import CalendarEvent, TravelNeed


class CalendarStore:
    """Calendar events and detected travel needs, per user, in memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: Dict[str, CalendarEvent] = {}
        self._needs: Dict[str, List[TravelNeed]] = {}

    def save_events(self, events: List[CalendarEvent]) -> None:
        with self._lock:
            for e in events:
                self._events[e.id] = e

    def events_for_user(self, user_id: str) -> List[CalendarEvent]:
        with self._lock:
            events = [e for e in self._events.values() if e.user_id == user_id]
        return sorted(events, key=lambda e: e.start_time)

    def replace_travel_needs(self, user_id: str, needs: List[TravelNeed]) -> None:
        """A fresh scan supersedes whatever was detected before."""
        with self._lock:
            self._needs[user_id] = list(needs)

    def travel_needs_for_user(self, user_id: str) -> List[TravelNeed]:
        with self._lock:
            needs = list(self._needs.get(user_id, []))
        return sorted(needs, key=lambda n: n.departure_date)
