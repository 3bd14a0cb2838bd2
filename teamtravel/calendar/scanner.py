from datetime import datetime
from typing import List

from pydantic import BaseModel

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import inc_counter
from teamtravel.calendar.analyzer import EventAnalyzer
from teamtravel.calendar.mock import MockCalendarService
from teamtravel.calendar.store import CalendarStore
from teamtravel.types import TravelNeed
from teamtravel.user.directory import UserDirectory


class ScanResult(BaseModel):
    user_id: str
    events_scanned: int
    needs: List[TravelNeed]


class CalendarScanner:
    """Fetch a user's events, detect travel and keep both in the calendar store."""

    def __init__(self, store: CalendarStore, directory: UserDirectory,
                 analyzer: EventAnalyzer = None, calendar: MockCalendarService = None):
        self.store = store
        self.directory = directory
        self.analyzer = analyzer or EventAnalyzer()
        self.calendar = calendar or MockCalendarService()

    def scan(self, user_id: str, now: datetime = None) -> ScanResult:
        user = self.directory.get_user(user_id)
        home_city = (user.home_city if user else None) or settings.HOME_CITY_DEFAULT
        home_airport = (user.home_airport if user else None) or settings.HOME_AIRPORT_DEFAULT

        events = self.calendar.fetch_events(user_id, now=now)
        self.store.save_events(events)
        needs = self.analyzer.analyze(events, home_city, home_airport, now=now)
        self.store.replace_travel_needs(user_id, needs)

        inc_counter("calendar_scans_total")
        log_event("calendar_scanned", user_id=user_id, events=len(events), needs=len(needs))
        return ScanResult(user_id=user_id, events_scanned=len(events), needs=needs)
