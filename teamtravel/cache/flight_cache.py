import hashlib
import threading
from typing import Dict, Optional, Any
from datetime import datetime, timedelta

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import inc_counter
from teamtravel.types import FlightSearchRequest, FlightSearchResult
from teamtravel.flights.base import FlightSource
from teamtravel.flights.client import AmadeusClient
from teamtravel.flights.mock import MockFlightSource
from teamtravel.session.redis_store import open_store
from teamtravel.infrastructure.resilience import CircuitBreaker


class CachedFlightSource:
    """Wraps a flight source with a keyed-store cache and an optional circuit breaker.

    A failed fetch falls back to a stale cached result when one exists.
    """

    def __init__(self, source: FlightSource, store, breaker: Optional[CircuitBreaker] = None,
                 max_age_minutes: int = None):
        self.source = source
        self.store = store
        self.breaker = breaker
        self.name = f"cached-{source.name}"
        self.max_age_minutes = max_age_minutes or settings.REDIS_CACHE_TTL_SECONDS // 60
        self.cache_stats = {"hits": 0, "misses": 0}
        self._stats_lock = threading.Lock()

    def create_cache_key(self, request: FlightSearchRequest) -> str:
        return hashlib.md5(request.cache_key().encode()).hexdigest()

    def _is_cache_fresh(self, cached: Dict[str, Any]) -> bool:
        cached_at = cached.get("cached_at")
        if not cached_at:
            return True
        age = datetime.now() - datetime.fromisoformat(cached_at)
        return age < timedelta(minutes=self.max_age_minutes)

    def _fetch(self, request: FlightSearchRequest) -> FlightSearchResult:
        if self.breaker is not None:
            return self.breaker.call(self.source.search, request)
        return self.source.search(request)

    def _record(self, outcome: str) -> None:
        with self._stats_lock:
            self.cache_stats[outcome] += 1
        inc_counter("flight_cache_total", {"result": "hit" if outcome == "hits" else "miss"})

    def search(self, request: FlightSearchRequest) -> FlightSearchResult:
        key = self.create_cache_key(request)
        cached = self.store.get(key)
        if cached and self._is_cache_fresh(cached):
            self._record("hits")
            return FlightSearchResult.model_validate(cached["result"])

        self._record("misses")
        try:
            result = self._fetch(request)
        except Exception as e:
            if cached:
                log_event("flight_cache_stale_served", level="WARNING",
                          origin=request.origin, destination=request.destination, error=str(e))
                return FlightSearchResult.model_validate(cached["result"])
            raise

        self.store.set(key, {
            "result": result.model_dump(mode="json"),
            "cached_at": datetime.now().isoformat(),
        })
        return result

    def get_cache_stats(self) -> Dict:
        with self._stats_lock:
            hits, misses = self.cache_stats["hits"], self.cache_stats["misses"]
        total = hits + misses
        hit_rate = hits / total * 100 if total else 0
        return {
            "hits": hits,
            "misses": misses,
            "hit_rate": f"{hit_rate:.1f}%",
        }


def build_flight_source(store=None) -> CachedFlightSource:
    """Mock or Amadeus source per USE_MOCK_FLIGHTS, cached; the live source sits behind a breaker."""
    if store is None:
        store = open_store("flight:", settings.REDIS_CACHE_TTL_SECONDS)
    if settings.USE_MOCK_FLIGHTS:
        return CachedFlightSource(MockFlightSource(), store)
    breaker = CircuitBreaker("amadeus", failure_threshold=3, recovery_timeout=60)
    return CachedFlightSource(AmadeusClient(), store, breaker=breaker)
