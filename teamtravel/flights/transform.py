from typing import Any, Dict, List, Optional
from datetime import datetime
import re

from teamtravel.types import FlightOffer, FlightSegment

_ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?")


def iso_to_minutes(dur: Optional[str]) -> int:
    """'PT5H40M' -> 340; anything unparseable -> 0."""
    m = _ISO_DURATION.match(dur or "")
    if not m:
        return 0
    return int(m.group(1) or 0) * 60 + int(m.group(2) or 0)


def _segment(s: Dict[str, Any], carriers: Dict[str, str], cabin: Optional[str]) -> FlightSegment:
    carrier = s.get("carrierCode", "")
    return FlightSegment(
        airline=carrier,
        airline_name=carriers.get(carrier, carrier),
        flight_number=f"{carrier}{s.get('number', '')}",
        origin=s["departure"]["iataCode"],
        destination=s["arrival"]["iataCode"],
        departure_time=datetime.fromisoformat(s["departure"]["at"]),
        arrival_time=datetime.fromisoformat(s["arrival"]["at"]),
        duration_minutes=iso_to_minutes(s.get("duration")),
        aircraft=(s.get("aircraft") or {}).get("code"),
        cabin=cabin,
    )


def _cabin(offer: Dict[str, Any]) -> Optional[str]:
    try:
        return offer["travelerPricings"][0]["fareDetailsBySegment"][0]["cabin"].lower()
    except (KeyError, IndexError, AttributeError):
        return None


def from_amadeus(json_obj: Dict[str, Any]) -> List[FlightOffer]:
    """Flight Offers Search response -> FlightOffer list (all itineraries flattened into segments)."""
    carriers = (json_obj.get("dictionaries") or {}).get("carriers", {})
    items = []
    for o in json_obj.get("data", []):
        cabin = _cabin(o)
        itineraries = o.get("itineraries", [])
        segments = [_segment(s, carriers, cabin) for it in itineraries for s in it.get("segments", [])]
        stops = sum(max(0, len(it.get("segments", [])) - 1) for it in itineraries)
        total_min = sum(iso_to_minutes(it.get("duration")) for it in itineraries)
        expires = o.get("lastTicketingDate")
        items.append(FlightOffer(
            id=f"amadeus-{o.get('id', '')}",
            source="amadeus",
            segments=segments,
            total_price=float(o["price"]["grandTotal"]),
            currency=o["price"].get("currency", "USD"),
            stops=stops,
            total_duration_minutes=total_min,
            expires_at=datetime.fromisoformat(expires) if expires else None,
        ))
    return items
