from datetime import date
from unittest.mock import MagicMock, patch

import httpx
import pytest

from teamtravel.flights.base import FlightSearchError
from teamtravel.flights.client import AmadeusClient
from teamtravel.flights.transform import from_amadeus, iso_to_minutes
from teamtravel.types import FlightSearchRequest


class DummyResponse:
    def __init__(self, status_code=200, json_data=None):
        self.status_code = status_code
        self._json_data = json_data or {"data": []}

    def raise_for_status(self):
        if not (200 <= self.status_code < 300):
            request = httpx.Request("POST", "https://test.api.amadeus.com")
            raise httpx.HTTPStatusError(f"HTTP {self.status_code}", request=request,
                                        response=httpx.Response(self.status_code, request=request))

    def json(self):
        return self._json_data


SAMPLE = {
    "data": [{
        "id": "1",
        "lastTicketingDate": "2026-03-01",
        "price": {"grandTotal": "412.30", "currency": "USD"},
        "itineraries": [{
            "duration": "PT5H10M",
            "segments": [
                {"carrierCode": "UA", "number": "101", "duration": "PT2H",
                 "departure": {"iataCode": "JFK", "at": "2026-03-05T08:00:00"},
                 "arrival": {"iataCode": "ORD", "at": "2026-03-05T10:00:00"},
                 "aircraft": {"code": "738"}},
                {"carrierCode": "UA", "number": "202", "duration": "PT2H10M",
                 "departure": {"iataCode": "ORD", "at": "2026-03-05T11:00:00"},
                 "arrival": {"iataCode": "DEN", "at": "2026-03-05T13:10:00"}},
            ],
        }],
        "travelerPricings": [{"fareDetailsBySegment": [{"cabin": "ECONOMY"}]}],
    }],
    "dictionaries": {"carriers": {"UA": "UNITED AIRLINES"}},
}


def request(**kw):
    base = dict(origin="JFK", destination="DEN", departure_date=date(2026, 3, 5))
    base.update(kw)
    return FlightSearchRequest(**base)


@pytest.fixture
def http():
    return MagicMock()


def make_client(http):
    client = AmadeusClient(client_id="id", client_secret="secret", env="sandbox", http=http)
    client._get_token = MagicMock(return_value="TEST_TOKEN")
    return client


class TestBuildBody:
    def test_one_way_body(self, http):
        body = make_client(http).build_body(request(passengers=2))
        assert body["currencyCode"] == "USD"
        assert body["sources"] == ["GDS"]
        legs = body["originDestinations"]
        assert len(legs) == 1
        assert legs[0]["originLocationCode"] == "JFK"
        assert legs[0]["departureDateTimeRange"]["date"] == "2026-03-05"
        assert body["travelers"] == [{"id": "1", "travelerType": "ADULT"}, {"id": "2", "travelerType": "ADULT"}]

    def test_return_leg_and_filters(self, http):
        body = make_client(http).build_body(request(return_date=date(2026, 3, 8), cabin_class="business",
                                                    preferred_airlines=["DL"]))
        legs = body["originDestinations"]
        assert legs[1]["originLocationCode"] == "DEN"
        assert legs[1]["destinationLocationCode"] == "JFK"
        filters = body["searchCriteria"]["flightFilters"]
        assert filters["cabinRestrictions"][0]["cabin"] == "BUSINESS"
        assert filters["carrierRestrictions"]["includedCarrierCodes"] == ["DL"]


class TestSearch:
    def test_posts_with_bearer_token_and_transforms(self, http):
        http.post.return_value = DummyResponse(200, SAMPLE)
        result = make_client(http).search(request())

        url = http.post.call_args.args[0]
        assert url.endswith("/v2/shopping/flight-offers")
        assert http.post.call_args.kwargs["headers"]["Authorization"] == "Bearer TEST_TOKEN"
        assert result.source == "amadeus"
        assert result.offers[0].id == "amadeus-1"
        assert result.offers[0].total_price == 412.30

    def test_retries_once_on_5xx(self, http):
        http.post.side_effect = [DummyResponse(503), DummyResponse(200, SAMPLE)]
        with patch("teamtravel.flights.client.time.sleep"):
            result = make_client(http).search(request())
        assert http.post.call_count == 2
        assert len(result.offers) == 1

    def test_client_error_is_not_retried(self, http):
        http.post.return_value = DummyResponse(400)
        with pytest.raises(FlightSearchError):
            make_client(http).search(request())
        assert http.post.call_count == 1

    def test_missing_credentials(self, http):
        client = AmadeusClient(client_id=None, client_secret=None, http=http)
        client.client_id = client.client_secret = None
        with pytest.raises(FlightSearchError):
            client.search(request())


class TestTransform:
    def test_iso_durations(self):
        assert iso_to_minutes("PT5H40M") == 340
        assert iso_to_minutes("PT45M") == 45
        assert iso_to_minutes(None) == 0

    def test_segments_flattened(self):
        offer = from_amadeus(SAMPLE)[0]
        assert offer.stops == 1
        assert offer.total_duration_minutes == 310
        assert [s.flight_number for s in offer.segments] == ["UA101", "UA202"]
        assert offer.segments[0].airline_name == "UNITED AIRLINES"
        assert offer.segments[0].cabin == "economy"
        assert offer.airlines == ["UA"]
