"""Concurrent fan-out search across the origin airports of a group.

One search per distinct origin, all issued together and joined with a full
barrier. A failure, timeout or empty answer for one origin is recorded for
that origin only and never cancels its siblings.
"""

import asyncio
import time
from datetime import date
from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import inc_counter, record_timing
from teamtravel.locations.airports import resolve_airport
from teamtravel.flights.base import FlightSource
from teamtravel.types import (
    FlightOffer,
    FlightSearchRequest,
    FlightSearchResult,
    MemberAssignment,
    TravelNeed,
)


class OriginSearchOutcome(BaseModel):
    origin: str
    status: Literal["ok", "empty", "failed", "timeout"]
    result: Optional[FlightSearchResult] = None
    error: Optional[str] = None
    elapsed_ms: float = 0.0

    @property
    def offers(self) -> List[FlightOffer]:
        return self.result.offers if self.result else []


class AggregatedSearch(BaseModel):
    destination_airport: str
    departure_date: date
    return_date: Optional[date] = None
    outcomes: Dict[str, OriginSearchOutcome] = {}
    local_origins: List[str] = []

    def offers_for(self, origin: str) -> List[FlightOffer]:
        outcome = self.outcomes.get(origin)
        return outcome.offers if outcome else []

    @property
    def all_offers(self) -> List[FlightOffer]:
        return [o for outcome in self.outcomes.values() for o in outcome.offers]


def resolve_member_airports(
    needs: List[TravelNeed],
    assignments: Optional[List[MemberAssignment]] = None,
) -> Dict[str, Optional[str]]:
    """user_id -> home airport, in first-seen order.

    An explicit assignment list is the roster; otherwise each need's owner
    flies from the need's recorded origin (resolved from its city when the
    airport is missing). None marks an origin that could not be resolved.
    """
    airports: Dict[str, Optional[str]] = {}
    if assignments:
        for a in assignments:
            airports.setdefault(a.user_id, a.home_airport.upper())
        return airports
    for need in needs:
        if need.user_id in airports:
            continue
        code = need.origin_airport or resolve_airport(need.origin_city)
        airports[need.user_id] = code.upper() if code else None
    return airports


class MultiOriginSearchAggregator:
    def __init__(self, source: FlightSource, max_concurrent: int = None, timeout_seconds: float = None):
        self.source = source
        self.max_concurrent = max_concurrent or settings.MAX_CONCURRENT_SEARCHES
        self.timeout_seconds = timeout_seconds or settings.SEARCH_TIMEOUT_SECONDS

    async def _fetch_async(self, request: FlightSearchRequest) -> FlightSearchResult:
        if asyncio.iscoroutinefunction(self.source.search):
            return await self.source.search(request)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.source.search, request)

    async def _search_origin(self, semaphore: asyncio.Semaphore, origin: str, destination: str,
                             departure_date: date, return_date: Optional[date]) -> OriginSearchOutcome:
        request = FlightSearchRequest(
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            return_date=return_date,
            passengers=1,
            cabin_class="economy",
        )
        async with semaphore:
            start = time.monotonic()
            try:
                result = await asyncio.wait_for(self._fetch_async(request), timeout=self.timeout_seconds)
                status = "ok" if result.offers else "empty"
                outcome = OriginSearchOutcome(origin=origin, status=status, result=result)
            except asyncio.TimeoutError:
                outcome = OriginSearchOutcome(origin=origin, status="timeout",
                                              error=f"no answer within {self.timeout_seconds}s")
            except Exception as e:
                outcome = OriginSearchOutcome(origin=origin, status="failed", error=str(e) or type(e).__name__)
            outcome.elapsed_ms = (time.monotonic() - start) * 1000.0

        inc_counter("flight_searches_total", {"status": outcome.status})
        record_timing("flight_search_ms", outcome.elapsed_ms, {"source": getattr(self.source, "name", "unknown")})
        if outcome.status in ("failed", "timeout"):
            log_event("origin_search_failed", level="WARNING", origin=origin,
                      destination=destination, status=outcome.status, error=outcome.error)
        return outcome

    async def search_all(self, destination_airport: str, departure_date: date,
                         return_date: Optional[date], member_airports: Iterable[str]) -> AggregatedSearch:
        destination = destination_airport.upper()
        origins = list(dict.fromkeys(a.upper() for a in member_airports if a))
        local = [o for o in origins if o == destination]
        remote = [o for o in origins if o != destination]

        semaphore = asyncio.Semaphore(self.max_concurrent)
        results = await asyncio.gather(
            *[self._search_origin(semaphore, o, destination, departure_date, return_date) for o in remote],
            return_exceptions=True,
        )

        outcomes: Dict[str, OriginSearchOutcome] = {}
        for origin, res in zip(remote, results):
            if isinstance(res, BaseException):
                res = OriginSearchOutcome(origin=origin, status="failed", error=str(res) or type(res).__name__)
            outcomes[origin] = res

        log_event("group_search_joined", destination=destination, searched=len(remote), local=len(local),
                  failed=sum(1 for o in outcomes.values() if o.status in ("failed", "timeout")))
        return AggregatedSearch(
            destination_airport=destination,
            departure_date=departure_date,
            return_date=return_date,
            outcomes=outcomes,
            local_origins=local,
        )
