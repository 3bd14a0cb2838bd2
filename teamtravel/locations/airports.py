from typing import Dict, Optional, NamedTuple
import math


class Airport(NamedTuple):
    code: str
    name: str
    city: str
    state: str
    lat: float
    lng: float


# Major US airports. Coordinates are used for the drive-vs-fly estimate only.
AIRPORTS: Dict[str, Airport] = {a.code: a for a in [
    Airport("ATL", "Hartsfield-Jackson Atlanta International", "Atlanta", "GA", 33.6407, -84.4277),
    Airport("AUS", "Austin-Bergstrom International", "Austin", "TX", 30.1975, -97.6664),
    Airport("BOS", "Boston Logan International", "Boston", "MA", 42.3656, -71.0096),
    Airport("BWI", "Baltimore/Washington International", "Baltimore", "MD", 39.1754, -76.6684),
    Airport("CLT", "Charlotte Douglas International", "Charlotte", "NC", 35.2140, -80.9431),
    Airport("DCA", "Ronald Reagan Washington National", "Washington", "DC", 38.8521, -77.0377),
    Airport("DEN", "Denver International", "Denver", "CO", 39.8561, -104.6737),
    Airport("DFW", "Dallas/Fort Worth International", "Dallas", "TX", 32.8998, -97.0403),
    Airport("DTW", "Detroit Metropolitan Wayne County", "Detroit", "MI", 42.2124, -83.3534),
    Airport("EWR", "Newark Liberty International", "Newark", "NJ", 40.6925, -74.1687),
    Airport("FLL", "Fort Lauderdale-Hollywood International", "Fort Lauderdale", "FL", 26.0726, -80.1527),
    Airport("IAD", "Washington Dulles International", "Washington", "DC", 38.9445, -77.4558),
    Airport("IAH", "George Bush Intercontinental", "Houston", "TX", 29.9902, -95.3368),
    Airport("JFK", "John F. Kennedy International", "New York", "NY", 40.6413, -73.7781),
    Airport("LAS", "Harry Reid International", "Las Vegas", "NV", 36.0840, -115.1537),
    Airport("LAX", "Los Angeles International", "Los Angeles", "CA", 33.9425, -118.4081),
    Airport("LGA", "LaGuardia", "New York", "NY", 40.7769, -73.8740),
    Airport("MCO", "Orlando International", "Orlando", "FL", 28.4312, -81.3081),
    Airport("MDW", "Chicago Midway International", "Chicago", "IL", 41.7860, -87.7524),
    Airport("MIA", "Miami International", "Miami", "FL", 25.7959, -80.2870),
    Airport("MSP", "Minneapolis-Saint Paul International", "Minneapolis", "MN", 44.8820, -93.2218),
    Airport("ORD", "O'Hare International", "Chicago", "IL", 41.9742, -87.9073),
    Airport("PDX", "Portland International", "Portland", "OR", 45.5898, -122.5951),
    Airport("PHL", "Philadelphia International", "Philadelphia", "PA", 39.8744, -75.2424),
    Airport("PHX", "Phoenix Sky Harbor International", "Phoenix", "AZ", 33.4373, -112.0078),
    Airport("SEA", "Seattle-Tacoma International", "Seattle", "WA", 47.4502, -122.3088),
    Airport("SFO", "San Francisco International", "San Francisco", "CA", 37.6213, -122.3790),
    Airport("SLC", "Salt Lake City International", "Salt Lake City", "UT", 40.7899, -111.9791),
    Airport("TPA", "Tampa International", "Tampa", "FL", 27.9755, -82.5332),
]}

# Primary airport per city (lower-case keys)
CITY_TO_AIRPORT: Dict[str, str] = {
    "atlanta": "ATL",
    "austin": "AUS",
    "baltimore": "BWI",
    "boston": "BOS",
    "charlotte": "CLT",
    "chicago": "ORD",
    "dallas": "DFW",
    "denver": "DEN",
    "detroit": "DTW",
    "fort lauderdale": "FLL",
    "houston": "IAH",
    "las vegas": "LAS",
    "los angeles": "LAX",
    "miami": "MIA",
    "minneapolis": "MSP",
    "new york": "JFK",
    "newark": "EWR",
    "orlando": "MCO",
    "philadelphia": "PHL",
    "phoenix": "PHX",
    "portland": "PDX",
    "salt lake city": "SLC",
    "san francisco": "SFO",
    "seattle": "SEA",
    "tampa": "TPA",
    "washington": "DCA",
}

# Everyday phrasing -> canonical city
CITY_ALIASES: Dict[str, str] = {
    "ny": "new york",
    "nyc": "new york",
    "new york city": "new york",
    "manhattan": "new york",
    "sf": "san francisco",
    "bay area": "san francisco",
    "la": "los angeles",
    "vegas": "las vegas",
    "chi": "chicago",
    "dc": "washington",
    "washington dc": "washington",
    "washington d.c.": "washington",
    "philly": "philadelphia",
    "slc": "salt lake city",
}

EARTH_RADIUS_MILES = 3959
DRIVING_SPEED_MPH = 50
MAX_DRIVING_MINUTES = 240  # longer than this and a flight is recommended


def _normalise_city(city: str) -> str:
    q = " ".join(city.lower().replace(",", " ").split())
    return CITY_ALIASES.get(q, q)


def find_airport_for_city(city: str) -> Optional[Airport]:
    """Primary airport for a city name, IATA code or alias; None when unknown."""
    if not city or not city.strip():
        return None
    raw = city.strip()
    if raw.upper() in AIRPORTS:
        return AIRPORTS[raw.upper()]

    normalised = _normalise_city(raw)
    code = CITY_TO_AIRPORT.get(normalised)
    if code:
        return AIRPORTS[code]

    # partial match, e.g. "Downtown Chicago" or "Austin, TX"
    if len(normalised) >= 3:
        for name, code in CITY_TO_AIRPORT.items():
            if name in normalised or normalised in name:
                return AIRPORTS[code]

    for airport in AIRPORTS.values():
        if airport.city.lower() == normalised:
            return airport
    return None


def resolve_airport(city: str, preferred_airports: Optional[Dict[str, str]] = None) -> Optional[str]:
    """Airport code for a city, honouring a user's per-city airport choices."""
    if preferred_airports and city:
        wanted = _normalise_city(city)
        for pref_city, code in preferred_airports.items():
            if _normalise_city(pref_city) == wanted:
                return code.upper()
    airport = find_airport_for_city(city)
    return airport.code if airport else None


def city_for_airport(code: str) -> Optional[str]:
    airport = AIRPORTS.get((code or "").upper())
    return airport.city if airport else None


def distance_miles(a: Airport, b: Airport) -> float:
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2)
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def estimate_driving_minutes(miles: float) -> int:
    return round(miles / DRIVING_SPEED_MPH * 60)


def travel_distance(origin_city: str, destination_city: str) -> Optional[Dict]:
    """Distance, drive time and whether flying makes sense; None if either city is unknown."""
    origin = find_airport_for_city(origin_city)
    dest = find_airport_for_city(destination_city)
    if origin is None or dest is None:
        return None
    miles = distance_miles(origin, dest)
    driving = estimate_driving_minutes(miles)
    return {
        "distance_miles": round(miles),
        "estimated_driving_minutes": driving,
        "recommend_flight": driving > MAX_DRIVING_MINUTES,
        "origin_airport": origin.code,
        "destination_airport": dest.code,
    }
