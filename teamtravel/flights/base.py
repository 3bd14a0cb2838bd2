from typing import List, Protocol

from teamtravel.types import FlightOffer, FlightSearchRequest, FlightSearchResult


class FlightSource(Protocol):
    """Anything that can answer a single origin/destination/date search."""

    name: str

    def search(self, request: FlightSearchRequest) -> FlightSearchResult:
        ...


class FlightSearchError(Exception):
    """A flight source could not answer a search."""


def apply_request_filters(offers: List[FlightOffer], request: FlightSearchRequest) -> List[FlightOffer]:
    """Drop offers over max_price and float preferred-airline offers to the top, order otherwise kept."""
    if request.max_price is not None:
        offers = [o for o in offers if o.total_price <= request.max_price]
    preferred = {a.upper() for a in (request.preferred_airlines or [])}
    if preferred:
        offers = sorted(offers, key=lambda o: 0 if preferred & set(o.airlines) else 1)
    return offers
