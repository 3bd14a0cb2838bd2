import pytest

from teamtravel.locations.airports import (
    city_for_airport,
    find_airport_for_city,
    resolve_airport,
    travel_distance,
)


class TestResolveAirport:
    @pytest.mark.parametrize("city,code", [
        ("Chicago", "ORD"),
        ("  las vegas ", "LAS"),
        ("NYC", "JFK"),
        ("vegas", "LAS"),
        ("Bay Area", "SFO"),
        ("Austin, TX", "AUS"),
        ("Downtown Chicago", "ORD"),
        ("sea", "SEA"),
    ])
    def test_known_cities(self, city, code):
        assert resolve_airport(city) == code

    @pytest.mark.parametrize("city", ["Atlantis", "", "   ", None])
    def test_unknown_is_none(self, city):
        assert resolve_airport(city) is None

    def test_preferred_airport_wins(self):
        assert resolve_airport("Chicago", {"chicago": "mdw"}) == "MDW"
        assert resolve_airport("NYC", {"New York": "LGA"}) == "LGA"
        assert resolve_airport("Austin", {"Chicago": "MDW"}) == "AUS"

    def test_city_for_airport(self):
        assert city_for_airport("sfo") == "San Francisco"
        assert city_for_airport("XXX") is None

    def test_airport_record(self):
        airport = find_airport_for_city("Denver")
        assert airport.code == "DEN"
        assert airport.state == "CO"


class TestTravelDistance:
    def test_long_trip_recommends_flight(self):
        d = travel_distance("New York", "Las Vegas")
        assert d["recommend_flight"]
        assert d["distance_miles"] > 2000
        assert d["origin_airport"] == "JFK"
        assert d["destination_airport"] == "LAS"

    def test_short_trip_is_drivable(self):
        d = travel_distance("New York", "Philadelphia")
        assert not d["recommend_flight"]
        assert d["estimated_driving_minutes"] < 240

    def test_unknown_city(self):
        assert travel_distance("New York", "Atlantis") is None
