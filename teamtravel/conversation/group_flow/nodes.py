"""
Group Flow Nodes

Each node handles one step of the conference-season flow and returns a partial
state update: the new stored flow (None clears it) and the reply text.
"""

from typing import Any, Dict, List, Optional

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import inc_counter
from teamtravel.calendar.scanner import CalendarScanner
from teamtravel.calendar.store import CalendarStore
from teamtravel.conversation.group_flow.state import (
    AWAITING_APPROVAL,
    AWAITING_TEAM,
    COMPLETE,
    CONFERENCES_DETECTED,
    SHOWING_RESULTS,
    GroupFlowGraphState,
)
from teamtravel.formatters import messages
from teamtravel.group.planner import GroupTravelCoordinator
from teamtravel.locations.airports import resolve_airport
from teamtravel.parse.intents import APPROVAL, WHOLE_TEAM, IntentClassifier, is_conference_title
from teamtravel.types import (
    BookingChoice,
    ClarificationNeeded,
    ConferenceInfo,
    GroupFlowState,
    GroupTravelPlan,
    MemberAssignment,
    TeamMember,
    TravelNeed,
)
from teamtravel.user.preferences import PreferenceStore
from teamtravel.user.directory import UserDirectory

BACK_TO_BACK_MAX_GAP_DAYS = 5
CONFERENCE_CONFIDENCE = 0.95


def _dump(flow: GroupFlowState) -> Dict[str, Any]:
    return flow.model_dump(mode="json")


def _transition(user_id: str, flow: GroupFlowState, step: str) -> None:
    inc_counter("group_flow_transitions_total", {"from": flow.step, "to": step})
    log_event("group_flow_transition", user_id=user_id, from_step=flow.step, to_step=step)
    flow.step = step


def find_back_to_back(conferences: List[ConferenceInfo],
                      max_gap_days: int = BACK_TO_BACK_MAX_GAP_DAYS) -> Optional[str]:
    """Advisory for the first adjacent pair (by start date) with a 0..max_gap_days gap."""
    ordered = sorted(conferences, key=lambda c: c.start_date)
    for current, following in zip(ordered, ordered[1:]):
        gap = (following.start_date - current.end_date).days
        if 0 <= gap <= max_gap_days:
            return messages.format_back_to_back(current, following, gap)
    return None


class DetectConferencesNode:
    """Entry step: find conference trips in the user's detected travel"""

    def __init__(self, scanner: CalendarScanner, calendar_store: CalendarStore, preferences: PreferenceStore):
        self.scanner = scanner
        self.calendar_store = calendar_store
        self.preferences = preferences

    async def __call__(self, state: GroupFlowGraphState) -> Dict[str, Any]:
        user_id = state["user_id"]
        needs = self.calendar_store.travel_needs_for_user(user_id)
        if not needs:
            needs = self.scanner.scan(user_id).needs

        conference_needs = [n for n in needs if is_conference_title(n.event_title)]
        if not conference_needs:
            log_event("group_flow_no_conferences", user_id=user_id, needs=len(needs))
            return {"flow": None, "response": messages.NO_CONFERENCES}

        preferred = self.preferences.get(user_id).preferred_airports
        conferences = [
            ConferenceInfo(
                title=n.event_title,
                city=n.destination_city,
                airport=n.destination_airport or resolve_airport(n.destination_city, preferred),
                start_date=n.departure_date,
                end_date=n.return_date or n.departure_date,
            )
            for n in conference_needs
        ]
        note = find_back_to_back(conferences)
        flow = GroupFlowState(step=CONFERENCES_DETECTED, conferences=conferences, back_to_back_note=note)

        inc_counter("group_flow_transitions_total", {"from": "idle", "to": CONFERENCES_DETECTED})
        log_event("group_flow_started", user_id=user_id, conferences=len(conferences), back_to_back=bool(note))
        return {"flow": _dump(flow), "response": messages.format_conferences_detected(conferences, note)}


class AssignTeamNode:
    """Waits for a whole-team answer, then plans every conference for the roster"""

    def __init__(self, classifier: IntentClassifier, directory: UserDirectory,
                 coordinator: GroupTravelCoordinator):
        self.classifier = classifier
        self.directory = directory
        self.coordinator = coordinator

    def _roster(self, user_id: str):
        org_id, member_ids = self.directory.seed_or_create_demo_org(user_id)
        lead = self.directory.get_user(user_id)
        roster = [TeamMember(
            user_id=user_id,
            name=lead.name if lead else "You",
            home_airport=(lead.home_airport if lead else None) or settings.HOME_AIRPORT_DEFAULT,
            home_city=(lead.home_city if lead else None) or settings.HOME_CITY_DEFAULT,
        )]
        for member_id in member_ids:
            user = self.directory.get_user(member_id)
            if user is None:
                continue
            roster.append(TeamMember(
                user_id=user.id,
                name=user.name,
                home_airport=user.home_airport or settings.HOME_AIRPORT_DEFAULT,
                home_city=user.home_city or "Unknown",
            ))
        return org_id, roster

    @staticmethod
    def _conference_need(lead: TeamMember, conf: ConferenceInfo) -> TravelNeed:
        return TravelNeed(
            user_id=lead.user_id,
            calendar_event_id=f"conf-{conf.title}",
            event_title=conf.title,
            origin_city=lead.home_city,
            origin_airport=lead.home_airport,
            destination_city=conf.city,
            destination_airport=conf.airport,
            departure_date=conf.start_date,
            return_date=conf.end_date,
            urgency="medium",
            confidence=CONFERENCE_CONFIDENCE,
            reasoning="Conference attendance",
        )

    async def __call__(self, state: GroupFlowGraphState) -> Dict[str, Any]:
        user_id = state["user_id"]
        flow = GroupFlowState.model_validate(state["flow"])

        if not self.classifier.matches(state["message"], WHOLE_TEAM):
            if flow.step != AWAITING_TEAM:
                _transition(user_id, flow, AWAITING_TEAM)
            return {"flow": _dump(flow), "response": messages.TEAM_REPROMPT}

        org_id, roster = self._roster(user_id)
        flow.org_id = org_id
        flow.team_members = roster
        _transition(user_id, flow, SHOWING_RESULTS)

        assignments = [MemberAssignment(user_id=m.user_id, home_airport=m.home_airport) for m in roster]
        plans: List[GroupTravelPlan] = []
        clarifications: List[str] = []
        for conf in flow.conferences:
            result = await self.coordinator.plan_group_travel(
                org_id, [self._conference_need(roster[0], conf)], assignments, conf.title
            )
            if isinstance(result, ClarificationNeeded):
                clarifications.append(f"{conf.title}: {result.message}")
                continue
            plans.append(result)

        flow.plans = plans
        _transition(user_id, flow, AWAITING_APPROVAL)

        grid = messages.format_conference_results(plans, roster, flow.back_to_back_note, clarifications)
        return {
            "flow": _dump(flow),
            "response": messages.format_team_results(roster, len(flow.conferences), grid),
        }


class ApproveNode:
    """Confirms the stored plans on an approval answer; the flow ends here"""

    def __init__(self, classifier: IntentClassifier, preferences: PreferenceStore):
        self.classifier = classifier
        self.preferences = preferences

    def _record_choices(self, plans: List[GroupTravelPlan]) -> int:
        recorded = 0
        for plan in plans:
            for member in plan.members:
                offer = member.recommended_flight
                if offer is None:
                    continue
                self.preferences.record_choice(BookingChoice(
                    user_id=member.user_id,
                    search_id=plan.id,
                    chosen_offer_id=offer.id,
                    chosen_airline=offer.segments[0].airline if offer.segments else None,
                    price=offer.total_price,
                    offered_alternatives=[a.id for a in member.alternative_flights],
                ))
                recorded += 1
        return recorded

    async def __call__(self, state: GroupFlowGraphState) -> Dict[str, Any]:
        user_id = state["user_id"]
        if not self.classifier.matches(state["message"], APPROVAL):
            return {"response": messages.APPROVAL_REPROMPT}

        flow = GroupFlowState.model_validate(state["flow"])
        plans = flow.plans or []
        _transition(user_id, flow, COMPLETE)
        booked = self._record_choices(plans)

        inc_counter("group_bookings_total")
        log_event("group_flow_completed", user_id=user_id, plans=len(plans), flights=booked,
                  total=sum(p.total_estimated_cost for p in plans))
        return {"flow": None, "response": messages.format_booking_confirmation(flow.conferences, plans)}


class FinishedNode:
    async def __call__(self, state: GroupFlowGraphState) -> Dict[str, Any]:
        return {"flow": None, "response": messages.ALREADY_CONFIRMED}


class ResetNode:
    """Unknown stored step: drop it and ask the user to start again"""

    async def __call__(self, state: GroupFlowGraphState) -> Dict[str, Any]:
        step = (state.get("flow") or {}).get("step")
        inc_counter("group_flow_resets_total")
        log_event("group_flow_reset", level="WARNING", user_id=state["user_id"], step=step)
        return {"flow": None, "response": messages.RESTART}
