from typing import Dict, List, Optional, Union

from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import inc_counter
from teamtravel.calendar.store import CalendarStore
from teamtravel.group.aggregator import AggregatedSearch, MultiOriginSearchAggregator, resolve_member_airports
from teamtravel.group.clustering import cluster_travel_needs
from teamtravel.locations.airports import resolve_airport
from teamtravel.rank.selector import rank_flights
from teamtravel.types import (
    ClarificationNeeded,
    GroupMemberPlan,
    GroupTravelPlan,
    MemberAssignment,
    TravelGroup,
    TravelNeed,
)
from teamtravel.user.preferences import PreferenceStore
from teamtravel.user.directory import UserDirectory

ALTERNATIVES = 3
SHARED_OPTIONS = 3


def local_note(airport: str) -> str:
    return f"Local ({airport}), no flight needed"


def no_flights_note(airport: str) -> str:
    return f"No flights found from {airport}"


class GroupPlanBuilder:
    """Turns one joined multi-origin search into a per-member plan.

    Each member is ranked on their own preferences. Built once, never edited.
    """

    def __init__(self, preferences: PreferenceStore, directory: UserDirectory):
        self.preferences = preferences
        self.directory = directory

    def _member(self, user_id: str, airport: str, destination_airport: str,
                search: AggregatedSearch) -> GroupMemberPlan:
        user = self.directory.get_user(user_id)
        name = user.name if user else user_id
        prefs = self.preferences.get(user_id)

        if airport == destination_airport:
            return GroupMemberPlan(user_id=user_id, user_name=name, home_airport=airport,
                                   preferences=prefs, notes=[local_note(airport)], is_local=True)

        ranked = rank_flights(search.offers_for(airport), prefs)
        if not ranked:
            return GroupMemberPlan(user_id=user_id, user_name=name, home_airport=airport,
                                   preferences=prefs, notes=[no_flights_note(airport)])

        notes = [f"Flying from {airport}"]
        if prefs.preferred_airlines:
            notes.append(f"Prefers: {', '.join(prefs.preferred_airlines)}")
        return GroupMemberPlan(
            user_id=user_id,
            user_name=name,
            home_airport=airport,
            preferences=prefs,
            recommended_flight=ranked[0].offer,
            alternative_flights=[r.offer for r in ranked[1:1 + ALTERNATIVES]],
            notes=notes,
        )

    def build(self, org_id: str, title: str, destination: str, roster: Dict[str, str],
              search: AggregatedSearch) -> GroupTravelPlan:
        members = [self._member(uid, airport, search.destination_airport, search)
                   for uid, airport in roster.items()]
        total = sum(m.recommended_flight.total_price for m in members if m.recommended_flight)

        lines = []
        for m in members:
            if m.recommended_flight is None:
                lines.append(f"- {m.user_name}: {m.notes[0] if m.notes else 'No flight'}")
            else:
                lines.append(f"- {m.user_name}: ${m.recommended_flight.total_price:,.2f} ({', '.join(m.notes)})")
        summary = (f"Group travel plan for {len(members)} team members to {title}:\n"
                   + "\n".join(lines)
                   + f"\n\nEstimated total: ${total:,.2f}")

        return GroupTravelPlan(
            organization_id=org_id,
            event_title=title,
            destination=destination,
            destination_airport=search.destination_airport,
            departure_date=search.departure_date,
            return_date=search.return_date,
            members=members,
            shared_flight_options=search.all_offers[:SHARED_OPTIONS],
            total_estimated_cost=total,
            summary=summary,
        )


class GroupTravelCoordinator:
    """Detects overlapping trips inside an organization and plans them together."""

    def __init__(self, directory: UserDirectory, calendar_store: CalendarStore,
                 preferences: PreferenceStore, aggregator: MultiOriginSearchAggregator,
                 builder: Optional[GroupPlanBuilder] = None):
        self.directory = directory
        self.calendar_store = calendar_store
        self.preferences = preferences
        self.aggregator = aggregator
        self.builder = builder or GroupPlanBuilder(preferences, directory)

    def detect_groups(self, org_id: str) -> List[TravelGroup]:
        needs: List[TravelNeed] = []
        for user in self.directory.users_in_organization(org_id):
            needs.extend(self.calendar_store.travel_needs_for_user(user.id))
        groups = cluster_travel_needs(needs)
        log_event("groups_detected", org_id=org_id, needs=len(needs), groups=len(groups))
        return groups

    async def plan_group_travel(
        self,
        org_id: str,
        needs: List[TravelNeed],
        assignments: Optional[List[MemberAssignment]] = None,
        title: Optional[str] = None,
    ) -> Union[GroupTravelPlan, ClarificationNeeded]:
        if not needs:
            raise ValueError("plan_group_travel needs at least one travel need")

        first = needs[0]
        destination_airport = first.destination_airport or resolve_airport(
            first.destination_city, self.preferences.get(first.user_id).preferred_airports
        )
        if not destination_airport:
            return ClarificationNeeded(
                field="destination_airport",
                query=first.destination_city,
                message=f"Which airport should I use for {first.destination_city}? Reply with the 3-letter code.",
            )

        roster = resolve_member_airports(needs, assignments)
        unresolved = [uid for uid, airport in roster.items() if not airport]
        if unresolved:
            city = next((n.origin_city for n in needs if n.user_id == unresolved[0]), unresolved[0])
            return ClarificationNeeded(
                field="origin_airport",
                query=city,
                message=f"Which airport does the traveller from {city} fly out of? Reply with the 3-letter code.",
            )

        search = await self.aggregator.search_all(
            destination_airport, first.departure_date, first.return_date, roster.values()
        )
        plan = self.builder.build(
            org_id=org_id,
            title=title or first.destination_city,
            destination=first.destination_city,
            roster=roster,
            search=search,
        )
        inc_counter("group_plans_total")
        log_event("group_plan_built", org_id=org_id, plan_id=plan.id, members=len(plan.members),
                  destination=plan.destination_airport, total=plan.total_estimated_cost)
        return plan
