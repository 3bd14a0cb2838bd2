from datetime import datetime, time, timedelta
from typing import List
import random

from teamtravel.types import FlightOffer, FlightSegment, FlightSearchRequest, FlightSearchResult
from teamtravel.flights.base import apply_request_filters
from teamtravel.locations.airports import AIRPORTS

MOCK_AIRLINES = [
    ("UA", "United Airlines", "ORD"),
    ("AA", "American Airlines", "DFW"),
    ("DL", "Delta Air Lines", "ATL"),
    ("WN", "Southwest Airlines", "MDW"),
    ("B6", "JetBlue Airways", "JFK"),
    ("AS", "Alaska Airlines", "SEA"),
]
# used when an airline's hub is one of the endpoints
FALLBACK_HUBS = ["DEN", "ATL", "DFW", "ORD"]

CABIN_MULTIPLIER = {
    "economy": 1.0,
    "premium_economy": 1.6,
    "business": 3.2,
    "first": 5.5,
}
AIRCRAFT = ["Boeing 737-800", "Airbus A320", "Boeing 737 MAX 8", "Embraer E175"]
NONSTOP_COUNT = 3


def _airport_name(code: str) -> str:
    a = AIRPORTS.get(code)
    return a.name if a else code


class MockFlightSource:
    """Deterministic offline flight source.

    The same request always yields the same offers: the generator is seeded
    from the request's cache key.
    """

    name = "mock"

    def _hub(self, preferred: str, request: FlightSearchRequest) -> str:
        endpoints = {request.origin, request.destination}
        for hub in [preferred] + FALLBACK_HUBS:
            if hub not in endpoints:
                return hub
        return preferred

    def _offer(self, rng: random.Random, i: int, request: FlightSearchRequest) -> FlightOffer:
        code, airline_name, hub = MOCK_AIRLINES[i % len(MOCK_AIRLINES)]
        nonstop = i < NONSTOP_COUNT
        departs = datetime.combine(request.departure_date, time(6 + rng.randrange(14), rng.choice([0, 15, 30, 45])))
        duration = 120 + rng.randrange(180) if nonstop else 240 + rng.randrange(240)

        def flight_no() -> str:
            return f"{code}{1000 + rng.randrange(9000)}"

        if nonstop:
            segments = [FlightSegment(
                airline=code, airline_name=airline_name, flight_number=flight_no(),
                origin=request.origin, origin_name=_airport_name(request.origin),
                destination=request.destination, destination_name=_airport_name(request.destination),
                departure_time=departs, arrival_time=departs + timedelta(minutes=duration),
                duration_minutes=duration, aircraft=rng.choice(AIRCRAFT), cabin=request.cabin_class,
            )]
        else:
            via = self._hub(hub, request)
            leg1 = int(duration * 0.45)
            layover = 60 + rng.randrange(90)
            leg2 = duration - leg1 - layover
            leg1_arrival = departs + timedelta(minutes=leg1)
            leg2_departure = leg1_arrival + timedelta(minutes=layover)
            segments = [
                FlightSegment(
                    airline=code, airline_name=airline_name, flight_number=flight_no(),
                    origin=request.origin, origin_name=_airport_name(request.origin),
                    destination=via, destination_name=_airport_name(via),
                    departure_time=departs, arrival_time=leg1_arrival,
                    duration_minutes=leg1, aircraft="Boeing 737-800", cabin=request.cabin_class,
                ),
                FlightSegment(
                    airline=code, airline_name=airline_name, flight_number=flight_no(),
                    origin=via, origin_name=_airport_name(via),
                    destination=request.destination, destination_name=_airport_name(request.destination),
                    departure_time=leg2_departure, arrival_time=leg2_departure + timedelta(minutes=leg2),
                    duration_minutes=leg2, aircraft="Embraer E175", cabin=request.cabin_class,
                ),
            ]

        base = 150 + rng.randrange(300)
        premium = 50 + rng.randrange(100) if nonstop else 0
        price = round((base + premium) * CABIN_MULTIPLIER.get(request.cabin_class, 1.0) * request.passengers)
        slug = airline_name.lower().replace(" ", "")
        link = (f"https://www.{slug}.com/booking?origin={request.origin}"
                f"&dest={request.destination}&date={request.departure_date.isoformat()}")
        return FlightOffer(
            id=f"mock-{request.origin}-{request.destination}-{request.departure_date:%Y%m%d}-{i}",
            source=self.name,
            segments=segments,
            total_price=float(price),
            currency="USD",
            stops=0 if nonstop else 1,
            total_duration_minutes=duration,
            booking_url=link,
            deep_link=link,
            expires_at=datetime.combine(request.departure_date, time(0, 0)),
        )

    def search(self, request: FlightSearchRequest) -> FlightSearchResult:
        rng = random.Random(request.cache_key())
        count = 6 + rng.randrange(3)
        offers: List[FlightOffer] = [self._offer(rng, i, request) for i in range(count)]
        offers.sort(key=lambda o: o.total_price)
        return FlightSearchResult(
            request=request,
            offers=apply_request_filters(offers, request),
            source=self.name,
        )
