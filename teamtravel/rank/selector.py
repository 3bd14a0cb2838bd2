from typing import List

from teamtravel.types import FlightOffer, UserPreferences, RankedOffer
from teamtravel.rank.weights import derive_weights
from teamtravel.rank.scorer import BatchStats, score_offer
from teamtravel.utils.dates import format_duration_minutes, format_clock

TRADE_OFF_PREFIX = "Trade-off:"


def _pct(score: float) -> int:
    return round(score * 100)


def rank_flights(offers: List[FlightOffer], prefs: UserPreferences) -> List[RankedOffer]:
    """Score a batch of offers for one traveller, best first, with the reasons spelled out."""
    if not offers:
        return []

    weights = derive_weights(prefs.budget_priority)
    stats = BatchStats.from_offers(offers)
    avoided = set(prefs.avoid_airlines)

    scored = []
    for offer in offers:
        total, b = score_offer(offer, prefs, stats, weights)
        reasoning = [
            f"Price: ${offer.total_price:,.2f} ({_pct(b.price)}% score)",
            f"Duration: {format_duration_minutes(offer.total_duration_minutes)} ({_pct(b.duration)}% score)",
            f"Stops: {offer.stops} ({_pct(b.stops)}% score)",
            f"Departure time fit: {_pct(b.time_fit)}%",
        ]
        if b.airline > 0.5:
            reasoning.append("Preferred airline match")
        vetoed = [a for a in offer.airlines if a in avoided]
        if vetoed:
            reasoning.append(f"Uses an airline you avoid ({', '.join(vetoed)})")

        if b.price > 0.8 and b.duration < 0.4:
            reasoning.append(f"{TRADE_OFF_PREFIX} cheapest option but longer travel time")
        if b.duration > 0.8 and b.price < 0.4:
            reasoning.append(f"{TRADE_OFF_PREFIX} fastest option but higher price")
        if offer.stops == 0 and b.price < 0.5:
            reasoning.append(f"{TRADE_OFF_PREFIX} nonstop but costs more")

        scored.append((total, offer, reasoning, b))

    # sorted() is stable, so equal scores keep input order
    ordered = sorted(scored, key=lambda item: item[0], reverse=True)
    return [
        RankedOffer(offer=offer, score=total, rank=i, reasoning=reasoning, breakdown=b)
        for i, (total, offer, reasoning, b) in enumerate(ordered, start=1)
    ]


def _stops_label(stops: int) -> str:
    if stops == 0:
        return "Nonstop"
    return f"{stops} stop{'s' if stops > 1 else ''}"


def generate_comparison(ranked: List[RankedOffer], limit: int = 5) -> str:
    """Plain-text rundown of the top options and their trade-offs."""
    if not ranked:
        return "No flights found for this route and date."

    lines = ["Here are your top flight options, ranked by your preferences:", ""]
    for item in ranked[:limit]:
        offer = item.offer
        if offer.segments:
            first, last = offer.segments[0], offer.segments[-1]
            carrier = first.airline_name
            route = (f"{first.origin} {format_clock(first.departure_time)} -> "
                     f"{last.destination} {format_clock(last.arrival_time)}")
        else:
            carrier, route = offer.source, ""
        trade_offs = [r for r in item.reasoning if r.startswith(TRADE_OFF_PREFIX)]

        lines.append(f"#{item.rank}. {carrier} - ${offer.total_price:,.2f}")
        if route:
            lines.append(f"   {route}")
        lines.append(f"   {format_duration_minutes(offer.total_duration_minutes)} | {_stops_label(offer.stops)}")
        lines.append(f"   {'. '.join(trade_offs) or 'Good all-around option'}")
        if offer.deep_link:
            lines.append(f"   Book directly: {offer.deep_link}")
        lines.append("")

    return "\n".join(lines).rstrip()
