from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Dict, Literal
from datetime import date, datetime
import uuid

TravelUrgency = Literal["low", "medium", "high", "critical"]
SeatPreference = Literal["aisle", "window", "middle", "no_preference"]
TimePreference = Literal["early_morning", "morning", "afternoon", "evening", "red_eye", "no_preference"]
BudgetPriority = Literal["cheapest", "best_value", "best_experience", "no_preference"]
CabinClass = Literal["economy", "premium_economy", "business", "first"]


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now()


def _airline_codes(codes: List[str]) -> List[str]:
    # upper-case and de-duplicated, first occurrence wins
    return list(dict.fromkeys(str(c).strip().upper() for c in codes if str(c).strip()))


# ---- Directory ----

class Organization(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    domain: Optional[str] = None
    max_budget_per_trip: Optional[float] = None
    preferred_airlines: List[str] = []
    created_at: datetime = Field(default_factory=_now)


class User(BaseModel):
    id: str = Field(default_factory=_new_id)
    email: str
    name: str
    organization_id: Optional[str] = None
    role: Literal["admin", "member", "viewer"] = "member"
    home_airport: Optional[str] = None
    home_city: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


# ---- Calendar & travel needs ----

class CalendarEvent(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    attendees: List[str] = []
    is_all_day: bool = False


class TravelNeed(BaseModel):
    """One traveller's inferred obligation to be somewhere else. Never mutated."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    user_id: str
    calendar_event_id: str = ""
    event_title: str = ""
    origin_city: str
    origin_airport: Optional[str] = None
    destination_city: str
    destination_airport: Optional[str] = None
    departure_date: date
    return_date: Optional[date] = None
    urgency: TravelUrgency = "medium"
    confidence: float = Field(0.85, ge=0.0, le=1.0)
    reasoning: str = ""
    requires_flight: bool = True
    estimated_driving_minutes: Optional[int] = None
    created_at: datetime = Field(default_factory=_now)


# ---- Flights ----

class FlightSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    airline: str                 # IATA carrier code, e.g. 'UA'
    airline_name: str
    flight_number: str
    origin: str
    origin_name: str = ""
    destination: str
    destination_name: str = ""
    departure_time: datetime     # local wall-clock time at the departure airport
    arrival_time: datetime
    duration_minutes: int
    aircraft: Optional[str] = None
    cabin: Optional[str] = None


class FlightOffer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    source: str = "unknown"
    segments: List[FlightSegment] = []
    total_price: float
    currency: str = "USD"
    stops: int = 0
    total_duration_minutes: int
    booking_url: Optional[str] = None
    deep_link: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def airlines(self) -> List[str]:
        return list(dict.fromkeys(s.airline.upper() for s in self.segments))


class FlightSearchRequest(BaseModel):
    origin: str = Field(..., min_length=3, max_length=3)
    destination: str = Field(..., min_length=3, max_length=3)
    departure_date: date
    return_date: Optional[date] = None
    passengers: int = Field(1, ge=1, le=9)
    cabin_class: CabinClass = "economy"
    max_price: Optional[float] = None
    preferred_airlines: Optional[List[str]] = None

    def cache_key(self) -> str:
        parts = [
            self.origin.upper(),
            self.destination.upper(),
            self.departure_date.isoformat(),
            self.return_date.isoformat() if self.return_date else "ONEWAY",
            str(self.passengers),
            self.cabin_class,
            str(self.max_price or ""),
            ",".join(sorted(self.preferred_airlines or [])),
        ]
        return "|".join(parts)


class FlightSearchResult(BaseModel):
    search_id: str = Field(default_factory=_new_id)
    request: FlightSearchRequest
    offers: List[FlightOffer] = []
    searched_at: datetime = Field(default_factory=_now)
    source: str = "unknown"


# ---- Preferences ----

class UserPreferences(BaseModel):
    user_id: str
    preferred_airlines: List[str] = []
    avoid_airlines: List[str] = []
    loyalty_programs: Dict[str, str] = {}
    seat_preference: SeatPreference = "no_preference"
    time_preference: TimePreference = "no_preference"
    budget_priority: BudgetPriority = "best_value"
    max_layover_minutes: int = Field(180, gt=0)
    preferred_cabin: CabinClass = "economy"
    preferred_airports: Dict[str, str] = {}
    max_budget: Optional[float] = Field(None, gt=0)
    updated_at: datetime = Field(default_factory=_now)

    @field_validator("preferred_airlines", "avoid_airlines")
    @classmethod
    def _normalise_airlines(cls, v: List[str]) -> List[str]:
        return _airline_codes(v)


class BookingChoice(BaseModel):
    user_id: str
    search_id: Optional[str] = None
    chosen_offer_id: str
    chosen_airline: Optional[str] = None
    price: Optional[float] = None
    offered_alternatives: List[str] = []
    chosen_at: datetime = Field(default_factory=_now)


# ---- Ranking ----

class ScoreBreakdown(BaseModel):
    price: float
    duration: float
    stops: float
    time_fit: float
    airline: float


class RankedOffer(BaseModel):
    offer: FlightOffer
    score: float
    rank: int
    reasoning: List[str] = []
    breakdown: ScoreBreakdown


# ---- Group travel ----

class TravelGroup(BaseModel):
    """Needs from at least two travellers sharing a destination and date window."""
    model_config = ConfigDict(frozen=True)

    key: str
    destination_city: str
    departure_date: date
    needs: List[TravelNeed]

    @model_validator(mode="after")
    def _at_least_two_travellers(self) -> "TravelGroup":
        if len({n.user_id for n in self.needs}) < 2:
            raise ValueError("a travel group needs travellers from at least two users")
        return self

    @property
    def traveler_ids(self) -> List[str]:
        return list(dict.fromkeys(n.user_id for n in self.needs))


class MemberAssignment(BaseModel):
    user_id: str
    home_airport: str


class GroupMemberPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    user_name: str
    home_airport: str
    preferences: UserPreferences
    recommended_flight: Optional[FlightOffer] = None
    alternative_flights: List[FlightOffer] = Field(default_factory=list, max_length=3)
    notes: List[str] = []
    is_local: bool = False


class GroupTravelPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    organization_id: str
    event_title: str
    destination: str
    destination_airport: str
    departure_date: date
    return_date: Optional[date] = None
    members: List[GroupMemberPlan]
    shared_flight_options: List[FlightOffer] = []
    total_estimated_cost: float
    summary: str


class ClarificationNeeded(BaseModel):
    """Returned instead of a result when a location cannot be resolved."""
    field: Literal["origin_airport", "destination_airport"]
    query: str
    message: str


# ---- Group flow ----

class ConferenceInfo(BaseModel):
    title: str
    city: str
    airport: Optional[str] = None
    start_date: date
    end_date: date


class TeamMember(BaseModel):
    user_id: str
    name: str
    home_airport: str
    home_city: str


class GroupFlowState(BaseModel):
    # plain str so an unknown stored value can still be loaded and reset
    step: str
    conferences: List[ConferenceInfo] = []
    team_members: Optional[List[TeamMember]] = None
    org_id: Optional[str] = None
    plans: Optional[List[GroupTravelPlan]] = None
    back_to_back_note: Optional[str] = None
