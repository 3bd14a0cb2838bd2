"""Chat entry point: routes a free-text message to the right capability.

Order matters. An active group flow owns the conversation; after that the
group trigger, calendar scan, flight search, preference updates and help are
tried in turn before falling back to a greeting or a general reply.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import inc_counter
from teamtravel.calendar.scanner import CalendarScanner
from teamtravel.calendar.store import CalendarStore
from teamtravel.conversation.group_flow.manager import GroupFlowManager
from teamtravel.flights.base import FlightSearchError, FlightSource
from teamtravel.formatters import messages
from teamtravel.infrastructure.resilience import CircuitOpenError
from teamtravel.locations.airports import resolve_airport, travel_distance
from teamtravel.parse.intents import (
    CALENDAR_SCAN,
    FLIGHT_SEARCH,
    GREETING,
    GROUP_TRAVEL,
    HELP,
    PREFERENCE_UPDATE,
    IntentClassifier,
)
from teamtravel.rank.selector import generate_comparison, rank_flights
from teamtravel.types import FlightSearchRequest, TravelNeed
from teamtravel.user.preferences import PreferenceStore
from teamtravel.user.directory import UserDirectory

URGENCY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}

AIRLINE_NAMES = [
    ("united", "UA"),
    ("american", "AA"),
    ("delta", "DL"),
    ("southwest", "WN"),
    ("jetblue", "B6"),
    ("alaska", "AS"),
]
AVOID_WORDS = ("avoid", "don't", "dont", "never")

SYSTEM = """You are a business travel assistant for a team. Be honest about prices, rankings and
trade-offs, rank only by what is best for the traveller, never invent urgency, and link to the
airline's own site for booking.

Current user: {name}
Home city: {home_city} (airport: {home_airport})
Preferences: {preferences}
Detected travel needs: {needs}"""

USER = """{message}"""


def parse_preference_message(message: str, preferred: List[str], avoided: List[str]):
    """Free text -> (partial preference update, confirmation lines)."""
    text = message.lower()
    updates: Dict[str, Any] = {}
    confirmations: List[str] = []

    if "aisle" in text:
        updates["seat_preference"] = "aisle"
        confirmations.append("seat preference to aisle")
    elif "window" in text:
        updates["seat_preference"] = "window"
        confirmations.append("seat preference to window")

    if "early morning" in text:
        updates["time_preference"] = "early_morning"
        confirmations.append("departure time to early morning (5am-8am)")
    elif "morning" in text:
        updates["time_preference"] = "morning"
        confirmations.append("departure time to morning (8am-12pm)")
    elif "afternoon" in text:
        updates["time_preference"] = "afternoon"
        confirmations.append("departure time to afternoon (12pm-5pm)")
    elif "evening" in text:
        updates["time_preference"] = "evening"
        confirmations.append("departure time to evening (5pm-9pm)")
    elif "red eye" in text or "red-eye" in text:
        updates["time_preference"] = "red_eye"
        confirmations.append("departure time to red-eye (after 9pm)")

    if "cheapest" in text or "budget" in text:
        updates["budget_priority"] = "cheapest"
        confirmations.append("budget priority to cheapest")
    elif "best experience" in text or "premium" in text:
        updates["budget_priority"] = "best_experience"
        confirmations.append("budget priority to best experience")

    avoiding = any(w in text for w in AVOID_WORDS)
    for name, code in AIRLINE_NAMES:
        if name not in text:
            continue
        if avoiding:
            avoided = list(dict.fromkeys(avoided + [code]))
            updates["avoid_airlines"] = avoided
            confirmations.append(f"added {code} to avoided airlines")
        else:
            preferred = list(dict.fromkeys(preferred + [code]))
            updates["preferred_airlines"] = preferred
            confirmations.append(f"added {code} to preferred airlines")

    return updates, confirmations


def most_urgent(needs: List[TravelNeed]) -> Optional[TravelNeed]:
    if not needs:
        return None
    return sorted(needs, key=lambda n: URGENCY_ORDER.get(n.urgency, len(URGENCY_ORDER)))[0]


class TravelAssistant:
    def __init__(
        self,
        directory: UserDirectory,
        calendar_store: CalendarStore,
        scanner: CalendarScanner,
        preferences: PreferenceStore,
        flight_source: FlightSource,
        group_flow: GroupFlowManager,
        classifier: IntentClassifier = None,
        llm: Optional[ChatOpenAI] = None,
    ):
        self.directory = directory
        self.calendar_store = calendar_store
        self.scanner = scanner
        self.preferences = preferences
        self.flight_source = flight_source
        self.group_flow = group_flow
        self.classifier = classifier or IntentClassifier()
        self._llm = llm

    @property
    def llm(self) -> ChatOpenAI:
        if self._llm is None:
            self._llm = ChatOpenAI(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0.3)
        return self._llm

    async def handle_message(self, user_id: str, message: str) -> str:
        self.directory.ensure_user(user_id)
        text = (message or "").strip()

        if self.group_flow.is_active(user_id):
            route = "group_flow"
            reply = await self.group_flow.handle_group_flow_message(user_id, text)
        elif self.classifier.matches(text, GROUP_TRAVEL):
            route = GROUP_TRAVEL
            reply = await self.group_flow.start_group_flow(user_id)
        elif self.classifier.matches(text, CALENDAR_SCAN):
            route = CALENDAR_SCAN
            reply = messages.format_scan_summary(self.scanner.scan(user_id).needs)
        elif self.classifier.matches(text, FLIGHT_SEARCH):
            route = FLIGHT_SEARCH
            reply = await self.handle_flight_search(user_id)
        elif self.classifier.matches(text, PREFERENCE_UPDATE):
            route = PREFERENCE_UPDATE
            reply = self.handle_preference_message(user_id, text)
        elif self.classifier.matches(text, HELP):
            route = HELP
            reply = messages.HELP_TEXT
        elif not settings.USE_MOCK_LLM:
            route = "llm"
            reply = await self.llm_reply(user_id, text)
        elif self.classifier.matches(text, GREETING):
            route = GREETING
            user = self.directory.get_user(user_id)
            reply = messages.format_greeting(user.name if user else None)
        else:
            route = "fallback"
            reply = messages.format_fallback(text)

        inc_counter("chat_messages_total", {"route": route})
        log_event("chat_routed", user_id=user_id, route=route)
        return reply

    async def handle_flight_search(self, user_id: str) -> str:
        need = most_urgent(self.calendar_store.travel_needs_for_user(user_id))
        if need is None:
            return messages.NO_NEEDS_FOR_SEARCH
        result = await self.search_for_need(user_id, need)
        return f"Searching flights for \"{need.event_title}\" in {need.destination_city}...\n\n{result}"

    async def search_for_need(self, user_id: str, need: TravelNeed) -> str:
        prefs = self.preferences.get(user_id)
        origin = need.origin_airport or resolve_airport(need.origin_city, prefs.preferred_airports)
        if not origin:
            return messages.format_unresolved_airport(need.origin_city)
        destination = need.destination_airport or resolve_airport(need.destination_city, prefs.preferred_airports)
        if not destination:
            return messages.format_unresolved_airport(need.destination_city)

        note = ""
        distance = travel_distance(need.origin_city, need.destination_city)
        if distance and not distance["recommend_flight"]:
            note = messages.format_driving_note(
                need.destination_city, distance["distance_miles"], distance["estimated_driving_minutes"]
            ) + "\n\n"

        request = FlightSearchRequest(
            origin=origin,
            destination=destination,
            departure_date=need.departure_date,
            return_date=need.return_date,
            passengers=1,
            cabin_class=prefs.preferred_cabin,
            max_price=prefs.max_budget,
            preferred_airlines=prefs.preferred_airlines or None,
        )
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self.flight_source.search, request)
        except (FlightSearchError, CircuitOpenError) as e:
            log_event("flight_search_failed", level="WARNING", user_id=user_id,
                      origin=origin, destination=destination, error=str(e))
            return "I couldn't reach the flight search service just now. Please try again in a moment."

        return note + generate_comparison(rank_flights(result.offers, prefs))

    def handle_preference_message(self, user_id: str, message: str) -> str:
        current = self.preferences.get(user_id)
        updates, confirmations = parse_preference_message(
            message, list(current.preferred_airlines), list(current.avoid_airlines)
        )
        if not confirmations:
            return messages.PREFERENCE_HINT
        self.preferences.update(user_id, updates)
        return messages.format_preference_update(confirmations)

    async def llm_reply(self, user_id: str, message: str) -> str:
        user = self.directory.get_user(user_id)
        prefs = self.preferences.get(user_id)
        needs = self.calendar_store.travel_needs_for_user(user_id)

        prompt = ChatPromptTemplate.from_messages([("system", SYSTEM), ("user", USER)])
        msgs = prompt.format_messages(
            name=user.name if user else "Unknown",
            home_city=(user.home_city if user else None) or "Not set",
            home_airport=(user.home_airport if user else None) or "Not set",
            preferences=json.dumps(prefs.model_dump(mode="json")),
            needs=json.dumps([n.model_dump(mode="json") for n in needs]) if needs else "None detected yet",
            message=message,
        )
        try:
            res = await self.llm.ainvoke(msgs)
        except Exception as e:
            log_event("llm_reply_failed", level="ERROR", user_id=user_id, error=str(e))
            return messages.format_fallback(message)
        return res.content or messages.format_fallback(message)
