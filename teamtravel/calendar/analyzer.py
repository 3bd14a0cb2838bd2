"""Calendar events -> travel needs.

Rule-based detection by default; with USE_MOCK_LLM off, events are classified
by an OpenAI chat model through langchain and the JSON answer is validated
into TravelNeed records.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
import json
import re

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.locations.airports import resolve_airport, city_for_airport, travel_distance
from teamtravel.types import CalendarEvent, TravelNeed
from teamtravel.utils.dates import parse_date

# phrase -> airport; matched on word boundaries so "la" never hits "planning"
TRAVEL_CITIES: Dict[str, str] = {
    "chicago": "ORD", "austin": "AUS", "las vegas": "LAS",
    "san francisco": "SFO", "denver": "DEN", "new york": "JFK",
    "nyc": "JFK", "boston": "BOS", "seattle": "SEA",
    "los angeles": "LAX", "miami": "MIA", "atlanta": "ATL",
    "dallas": "DFW", "houston": "IAH", "phoenix": "PHX", "portland": "PDX",
}
RULE_CONFIDENCE = 0.85

SYSTEM = """You are a travel detection system. Analyze calendar events and identify the ones
that require travel away from the user's home city. Only flag events that clearly imply
being physically present in another city.

The user lives in {home_city} (airport code: {home_airport}). Today is {today}.

For each travel event return: eventId, eventTitle, destinationCity, departureDate (YYYY-MM-DD,
usually the day before a morning event), returnDate (YYYY-MM-DD), urgency
(low >2 weeks away, medium 1-2 weeks, high <1 week, critical <3 days), confidence (0-1),
reasoning, requiresFlight.

Output JSON ONLY: {{"travelEvents": [...]}}. If nothing needs travel: {{"travelEvents": []}}"""

USER = """Events:
{events}"""


def urgency_for(days_until: int) -> str:
    if days_until < 3:
        return "critical"
    if days_until < 7:
        return "high"
    if days_until < 14:
        return "medium"
    return "low"


def _city_pattern(city: str) -> re.Pattern:
    return re.compile(rf"\b{re.escape(city)}\b", re.IGNORECASE)


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class EventAnalyzer:
    def __init__(self, use_llm: bool = None, llm: Optional[ChatOpenAI] = None):
        self.use_llm = (not settings.USE_MOCK_LLM) if use_llm is None else use_llm
        self._llm = llm

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0)
        return self._llm

    def analyze(self, events: List[CalendarEvent], home_city: str, home_airport: str,
                now: datetime = None) -> List[TravelNeed]:
        now = (now or datetime.now()).replace(tzinfo=None)
        if self.use_llm:
            needs = self._llm_analyze(events, home_city, home_airport, now)
        else:
            needs = self._rule_analyze(events, home_city, home_airport, now)
        log_event("calendar_analyzed", events=len(events), needs=len(needs), mode="llm" if self.use_llm else "rules")
        return needs

    # -- rules --

    def _detect_city(self, event: CalendarEvent, home_city: str) -> Optional[str]:
        text = f"{event.title} {event.description or ''} {event.location or ''}"
        for city in TRAVEL_CITIES:
            pattern = _city_pattern(city)
            if pattern.search(text) and not pattern.search(home_city):
                return city
        return None

    def _rule_analyze(self, events: List[CalendarEvent], home_city: str, home_airport: str,
                      now: datetime) -> List[TravelNeed]:
        needs = []
        for event in events:
            city = self._detect_city(event, home_city)
            if city is None:
                continue
            airport = TRAVEL_CITIES[city]
            if airport == home_airport:
                continue
            city_name = city_for_airport(airport) or city.title()

            start, end = event.start_time.replace(tzinfo=None), event.end_time.replace(tzinfo=None)
            departure = start.date() - timedelta(days=1) if start.hour < 12 else start.date()
            ret = end.date() + timedelta(days=1) if end.hour >= 15 else end.date()
            days_until = (start - now).days

            distance = travel_distance(home_city, city_name)
            requires_flight = distance["recommend_flight"] if distance else True
            needs.append(TravelNeed(
                id=f"need-{event.id}",
                user_id=event.user_id,
                calendar_event_id=event.id,
                event_title=event.title,
                origin_city=home_city,
                origin_airport=home_airport,
                destination_city=city_name,
                destination_airport=airport,
                departure_date=departure,
                return_date=ret,
                urgency=urgency_for(days_until),
                confidence=RULE_CONFIDENCE,
                reasoning=(f'Event "{event.title}" mentions {city_name}, which is different from '
                           f"home city {home_city}. Location: {event.location or 'not specified'}."),
                requires_flight=requires_flight,
                estimated_driving_minutes=distance["estimated_driving_minutes"] if distance else None,
            ))
        return needs

    # -- llm --

    def _llm_analyze(self, events: List[CalendarEvent], home_city: str, home_airport: str,
                     now: datetime) -> List[TravelNeed]:
        if not events:
            return []
        payload = [
            {
                "id": e.id,
                "title": e.title,
                "description": e.description,
                "location": e.location,
                "startTime": e.start_time.isoformat(),
                "endTime": e.end_time.isoformat(),
            }
            for e in events
        ]
        prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("user", USER)])
        msg = prompt.format_messages(
            home_city=home_city,
            home_airport=home_airport,
            today=now.date().isoformat(),
            events=json.dumps(payload, indent=2),
        )
        res = self.llm.invoke(msg)
        try:
            data = json.loads(_strip_fences(res.content))
        except (json.JSONDecodeError, TypeError) as e:
            log_event("calendar_llm_parse_failed", level="WARNING", error=str(e))
            return []
        if not isinstance(data, dict) or not isinstance(data.get("travelEvents", []), list):
            log_event("calendar_llm_parse_failed", level="WARNING", error="unexpected answer shape")
            return []

        by_id = {e.id: e for e in events}
        needs = []
        for item in data.get("travelEvents", []):
            if not isinstance(item, dict):
                continue
            event = by_id.get(item.get("eventId"))
            departure = self._as_date(item.get("departureDate"))
            city = item.get("destinationCity")
            if event is None or departure is None or not city:
                continue
            try:
                needs.append(TravelNeed(
                    id=f"need-{event.id}",
                    user_id=event.user_id,
                    calendar_event_id=event.id,
                    event_title=item.get("eventTitle") or event.title,
                    origin_city=home_city,
                    origin_airport=home_airport,
                    destination_city=city,
                    destination_airport=resolve_airport(city),
                    departure_date=departure,
                    return_date=self._as_date(item.get("returnDate")),
                    urgency=item.get("urgency") or urgency_for((event.start_time.replace(tzinfo=None) - now).days),
                    confidence=float(item.get("confidence", RULE_CONFIDENCE)),
                    reasoning=item.get("reasoning") or "",
                    requires_flight=bool(item.get("requiresFlight", True)),
                ))
            except ValueError as e:
                log_event("calendar_llm_item_rejected", level="WARNING", event_id=event.id, error=str(e))
        return needs

    @staticmethod
    def _as_date(value) -> Optional[date]:
        if not value:
            return None
        try:
            return date.fromisoformat(value)
        except (TypeError, ValueError):
            return parse_date(str(value))
