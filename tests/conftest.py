import os
import sys
import asyncio
import inspect
from datetime import date, datetime, timedelta

import pytest

# Ensure project root is on sys.path so `import teamtravel` works in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from teamtravel.obs.metrics import reset_metrics
from teamtravel.types import FlightOffer, FlightSegment, TravelNeed


def pytest_pyfunc_call(pyfuncitem):
    """Allow running async tests without pytest-asyncio.

    If the test function is a coroutine, run it in a fresh event loop.
    """
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        funcargs = pyfuncitem.funcargs
        sig = inspect.signature(testfunction)
        # Filter only the parameters that the test function expects
        allowed = {name: funcargs[name] for name in sig.parameters.keys() if name in funcargs}
        asyncio.run(testfunction(**allowed))
        return True
    return None


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


def build_offer(offer_id="o1", price=300.0, duration=180, stops=0, airline="UA",
                airline_name="United Airlines", origin="JFK", destination="ORD",
                departs=None, deep_link=None) -> FlightOffer:
    departs = departs or datetime(2026, 3, 5, 9, 0)
    segment = FlightSegment(
        airline=airline,
        airline_name=airline_name,
        flight_number=f"{airline}100",
        origin=origin,
        destination=destination,
        departure_time=departs,
        arrival_time=departs + timedelta(minutes=duration),
        duration_minutes=duration,
    )
    return FlightOffer(
        id=offer_id,
        source="test",
        segments=[segment],
        total_price=price,
        stops=stops,
        total_duration_minutes=duration,
        deep_link=deep_link,
    )


def build_need(user_id="u1", destination_city="Chicago", destination_airport="ORD",
               departure=date(2026, 3, 5), return_date=None, origin_city="New York",
               origin_airport="JFK", title="Chicago Client Meeting", urgency="medium") -> TravelNeed:
    return TravelNeed(
        user_id=user_id,
        event_title=title,
        origin_city=origin_city,
        origin_airport=origin_airport,
        destination_city=destination_city,
        destination_airport=destination_airport,
        departure_date=departure,
        return_date=return_date,
        urgency=urgency,
    )


@pytest.fixture
def make_offer():
    return build_offer


@pytest.fixture
def make_need():
    return build_need
