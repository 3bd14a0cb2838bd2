import math
import random
import uuid
from typing import Dict, List, Optional

from teamtravel.types import ConferenceInfo, GroupTravelPlan, TeamMember, TravelNeed
from teamtravel.utils.dates import format_day

_URGENCY_MARKERS = {"critical": "[URGENT]", "high": "[SOON]"}

CARD_LIMIT_BUFFER = 1.1

NO_CONFERENCES = (
    "I scanned your calendar but didn't find any upcoming conferences. Try \"scan my calendar\" "
    "to see all detected travel, or tell me about a specific conference you're planning for."
)
TEAM_REPROMPT = (
    "Just say \"the whole team\" to send everyone, or I can assign specific people per conference. "
    "Who's going?"
)
APPROVAL_REPROMPT = (
    "Would you like me to book these flights? Say \"approve\" to confirm, or tell me what you'd like to change."
)
RESTART = "Something went wrong with the group flow. Let's start over: say \"conference season\" to try again."
ALREADY_CONFIRMED = (
    "Those bookings are already confirmed. Say \"conference season\" to plan another round."
)

NO_NEEDS_FOR_SEARCH = (
    "I don't have any travel needs detected from your calendar yet. You can:\n\n"
    "1. Say \"scan my calendar\" to check for upcoming travel\n"
    "2. Tell me directly: \"Search flights from JFK to ORD on March 15\"\n"
    "3. Give me a city pair: \"I need to get to Chicago next Tuesday\""
)

PREFERENCE_HINT = (
    "I'm not sure what preference you want to update. You can tell me things like:\n"
    "- \"I prefer aisle seats\"\n"
    "- \"I like morning flights\"\n"
    "- \"I want the cheapest option\"\n"
    "- \"I prefer United\"\n"
    "- \"Avoid Spirit\""
)

HELP_TEXT = """Here's what I can do:

Calendar & Travel Detection
- "Scan my calendar" - I'll check your upcoming events for travel needs
- "What trips do I have coming up?" - See detected travel

Flight Search
- "Search flights" - I'll search for your most urgent detected trip
- "I need to get to Chicago" - Search for a detected trip

Group Travel
- "Plan conference season" - Find conferences and plan flights for the whole team

Preferences
- "I prefer United" - Set preferred airline
- "I like morning flights" - Set time preference
- "I want aisle seats" - Set seat preference
- "Find me the cheapest option" - Set budget priority

Every recommendation explains its trade-offs and links straight to the airline for booking."""


def money(amount: float) -> str:
    return f"${amount:,.2f}"


def format_scan_summary(needs: List[TravelNeed]) -> str:
    if not needs:
        return ("I scanned your upcoming calendar events and did not detect any that require travel. "
                "If I missed something, let me know and I can search flights manually.")

    lines = []
    for n in needs:
        marker = _URGENCY_MARKERS.get(n.urgency)
        prefix = f"{marker} " if marker else ""
        dates = f"depart {n.departure_date.isoformat()}"
        if n.return_date:
            dates += f", return {n.return_date.isoformat()}"
        lines.append(f"- {prefix}\"{n.event_title}\" -> {n.destination_city} ({dates}) "
                     f"[{round(n.confidence * 100)}% confidence]")

    plural = len(needs) > 1
    return (f"I found {len(needs)} upcoming event{'s' if plural else ''} that "
            f"{'appear' if plural else 'appears'} to require travel:\n\n"
            + "\n".join(lines)
            + "\n\nWould you like me to search for flights for any of these trips? "
              "I can also adjust if I misidentified anything.")


def format_back_to_back(first: ConferenceInfo, second: ConferenceInfo, gap_days: int) -> str:
    return (f"Back-to-back alert: \"{first.title}\" and \"{second.title}\" are only {gap_days} days apart. "
            f"We can optimize flights between them.")


def format_conferences_detected(conferences: List[ConferenceInfo], back_to_back_note: Optional[str]) -> str:
    lines = [
        f"{i}. {c.title} - {c.city} ({c.airport or 'airport unknown'}), "
        f"{format_day(c.start_date)}-{format_day(c.end_date)}"
        for i, c in enumerate(conferences, start=1)
    ]
    out = f"I found {len(conferences)} conferences on your calendar:\n\n" + "\n".join(lines)
    if back_to_back_note:
        out += f"\n\n{back_to_back_note}"
    out += "\n\nWho's going to these? You can say \"the whole team\" or assign specific people per conference."
    return out


def format_team(members: List[TeamMember]) -> str:
    return "\n".join(f"- {m.name} - {m.home_city} ({m.home_airport})" for m in members)


def format_conference_results(plans: List[GroupTravelPlan], members: List[TeamMember],
                              back_to_back_note: Optional[str] = None,
                              clarifications: Optional[List[str]] = None) -> str:
    by_id: Dict[str, TeamMember] = {m.user_id: m for m in members}
    out = ["Conference Season Flight Summary", ""]
    grand_total = 0.0

    for plan in plans:
        out.append(f"{plan.event_title} - {plan.destination} ({format_day(plan.departure_date)})")
        for mp in plan.members:
            member = by_id.get(mp.user_id)
            name = member.name if member else mp.user_name
            flight = mp.recommended_flight
            if flight is None:
                out.append(f"  {name}: {mp.notes[0] if mp.notes else 'No flight needed'}")
                continue
            airline = flight.segments[0].airline_name if flight.segments else "Unknown"
            out.append(f"  {name}: {money(flight.total_price)} "
                       f"({airline}, {mp.home_airport} -> {plan.destination_airport})")
        out.append(f"  Subtotal: {money(plan.total_estimated_cost)}")
        out.append("")
        grand_total += plan.total_estimated_cost

    for line in clarifications or []:
        out.append(line)
    if clarifications:
        out.append("")

    if back_to_back_note:
        out.append(back_to_back_note)
        out.append("")

    out.append(f"Grand Total: {money(grand_total)} for {len(members)} team members "
               f"across {len(plans)} conferences")
    return "\n".join(out)


def format_team_results(members: List[TeamMember], conference_count: int, results: str) -> str:
    return (f"Great! Here's your team:\n\n{format_team(members)}\n\n"
            f"Searching flights for {conference_count} conferences from each team member's home city...\n\n"
            f"{results}\n\n"
            "Shall I book all of these? Say \"approve\" or \"book it\" to confirm, or ask me to adjust.")


def new_confirmation_id() -> str:
    return f"BTS-{uuid.uuid4().hex[:10].upper()}"


def new_card_last4() -> str:
    return str(random.randint(1000, 9999))


def card_limit(total: float) -> int:
    return math.ceil(round(total * CARD_LIMIT_BUFFER, 2))


def format_booking_confirmation(conferences: List[ConferenceInfo], plans: List[GroupTravelPlan],
                                confirmation_id: str = None, card_last4: str = None) -> str:
    confirmation_id = confirmation_id or new_confirmation_id()
    card_last4 = card_last4 or new_card_last4()
    total = sum(p.total_estimated_cost for p in plans)
    flights = sum(1 for p in plans for m in p.members if m.recommended_flight)

    out = [
        "Booking Confirmed!",
        "",
        f"Confirmation: {confirmation_id}",
        f"Flights booked: {flights}",
        f"Total cost: {money(total)}",
        "",
        "Virtual Card Issued",
        f"Card ending: ****{card_last4}",
        f"Spending limit: ${card_limit(total):,}",
        "Category: Business Travel - Conferences",
        f"Auto-tags: {', '.join(c.title for c in conferences)}",
        "",
        "Expense Auto-Categorization",
    ]
    out += [f"- {p.event_title}: {money(p.total_estimated_cost)} -> \"Conference Travel\"" for p in plans]
    out += ["", "All team members will receive their itineraries via email. Have a great conference season!"]
    return "\n".join(out)


def format_driving_note(city: str, miles: float, driving_minutes: int) -> str:
    return (f"Note: {city} is about {round(miles)} miles away (roughly {round(driving_minutes / 60)} hours "
            "driving). You might consider driving instead of flying. But here are flight options if you prefer:")


def format_unresolved_airport(city: str) -> str:
    return f"I could not determine the airport for {city}. Could you tell me which airport you'd fly into?"


def format_preference_update(confirmations: List[str]) -> str:
    return ("Updated your preferences:\n" + "\n".join(f"- {c}" for c in confirmations)
            + "\n\nThese will be applied to all future flight searches.")


def format_greeting(name: Optional[str]) -> str:
    first = name.split()[0] if name else "there"
    return (f"Hello {first}! I'm your team travel assistant. I can scan your calendar for upcoming travel, "
            "search for flights, and help you find the best options based on your preferences.\n\n"
            "What would you like to do? You can say \"scan my calendar\" to get started, "
            "or ask me to search for flights.")


def format_fallback(message: str) -> str:
    return (f"I understand you're asking about: \"{message}\"\n\n"
            "Here's what I can help with:\n"
            "- Say \"scan my calendar\" to check for upcoming travel needs\n"
            "- Say \"search flights\" to find flights for detected trips\n"
            "- Say \"help\" for a full list of commands")
