import httpx
import time
from typing import Dict, Any, List, Optional

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.types import FlightSearchRequest, FlightSearchResult
from teamtravel.flights.base import FlightSearchError, apply_request_filters
from teamtravel.flights.transform import from_amadeus

_CABINS = {
    "economy": "ECONOMY",
    "premium_economy": "PREMIUM_ECONOMY",
    "business": "BUSINESS",
    "first": "FIRST",
}


class AmadeusClient:
    """Live flight source backed by the Amadeus Flight Offers Search API."""

    name = "amadeus"

    def __init__(self, client_id: str = None, client_secret: str = None,
                 env: str = None, http: Optional[httpx.Client] = None):
        self.client_id = client_id or settings.AMADEUS_CLIENT_ID
        self.client_secret = client_secret or settings.AMADEUS_CLIENT_SECRET
        env = env or settings.AMADEUS_ENV
        self.base_url = "https://api.amadeus.com" if env == "production" else "https://test.api.amadeus.com"
        self._token = None
        self._exp = 0.0
        # Persistent HTTP client with HTTP/2 and sensible timeouts
        self._http = http or httpx.Client(
            http2=True,
            timeout=httpx.Timeout(connect=3.0, read=12.0, write=12.0, pool=12.0),
        )

    def _get_token(self) -> str:
        if self._token and time.time() < self._exp - 60:
            return self._token
        if not (self.client_id and self.client_secret):
            raise FlightSearchError("Amadeus credentials are not configured")
        r = self._http.post(
            f"{self.base_url}/v1/security/oauth2/token",
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        r.raise_for_status()
        j = r.json()
        self._token = j["access_token"]
        self._exp = time.time() + j.get("expires_in", 1799)
        return self._token

    def _build_travelers(self, adults: int) -> List[Dict[str, Any]]:
        count = max(1, int(adults) if adults is not None else 1)
        return [{"id": str(i + 1), "travelerType": "ADULT"} for i in range(count)]

    def _build_origin_destinations(self, request: FlightSearchRequest) -> List[Dict[str, Any]]:
        """One leg for one-way, a reverse second leg when a return date is given."""
        legs: List[Dict[str, Any]] = [
            {
                "id": "1",
                "originLocationCode": request.origin,
                "destinationLocationCode": request.destination,
                "departureDateTimeRange": {"date": request.departure_date.isoformat()},
            }
        ]
        if request.return_date:
            legs.append({
                "id": "2",
                "originLocationCode": request.destination,
                "destinationLocationCode": request.origin,
                "departureDateTimeRange": {"date": request.return_date.isoformat()},
            })
        return legs

    def build_body(self, request: FlightSearchRequest) -> Dict[str, Any]:
        legs = self._build_origin_destinations(request)
        criteria: Dict[str, Any] = {
            "maxFlightOffers": 20,
            "flightFilters": {
                "cabinRestrictions": [{
                    "cabin": _CABINS[request.cabin_class],
                    "coverage": "MOST_SEGMENTS",
                    "originDestinationIds": [leg["id"] for leg in legs],
                }],
            },
        }
        if request.preferred_airlines:
            criteria["flightFilters"]["carrierRestrictions"] = {
                "includedCarrierCodes": list(request.preferred_airlines),
            }
        return {
            "currencyCode": "USD",
            "originDestinations": legs,
            "travelers": self._build_travelers(request.passengers),
            "sources": ["GDS"],
            "searchCriteria": criteria,
        }

    def search_raw(self, request: FlightSearchRequest) -> Dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._get_token()}",
            "Content-Type": "application/json",
        }
        body = self.build_body(request)

        # one retry for 5xx and transport timeouts
        attempt = 0
        last_err: Optional[Exception] = None
        while attempt < 2:
            try:
                r = self._http.post(
                    f"{self.base_url}/v2/shopping/flight-offers",
                    json=body,
                    headers=headers,
                    timeout=httpx.Timeout(connect=3.0, read=45.0, write=45.0, pool=12.0),
                )
                r.raise_for_status()
                return r.json()
            except httpx.HTTPStatusError as e:
                log_event("amadeus_http_error", level="ERROR",
                          status=e.response.status_code, attempt=attempt)
                if 500 <= e.response.status_code < 600 and attempt == 0:
                    attempt += 1
                    time.sleep(1.5)
                    last_err = e
                    continue
                raise FlightSearchError(f"Amadeus returned {e.response.status_code}") from e
            except (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.RemoteProtocolError) as e:
                log_event("amadeus_transport_error", level="ERROR",
                          error=type(e).__name__, attempt=attempt)
                if attempt == 0:
                    attempt += 1
                    time.sleep(1.5)
                    last_err = e
                    continue
                raise FlightSearchError(f"Amadeus unreachable: {type(e).__name__}") from e
        raise FlightSearchError("Flight search failed") from last_err

    def search(self, request: FlightSearchRequest) -> FlightSearchResult:
        raw = self.search_raw(request)
        offers = apply_request_filters(from_amadeus(raw), request)
        log_event("flight_search_live", origin=request.origin,
                  destination=request.destination, offers=len(offers))
        return FlightSearchResult(request=request, offers=offers, source=self.name)
