from datetime import date

import pytest

from teamtravel.calendar.store import CalendarStore
from teamtravel.flights.mock import MockFlightSource
from teamtravel.group.aggregator import MultiOriginSearchAggregator
from teamtravel.group.planner import GroupTravelCoordinator, local_note, no_flights_note
from teamtravel.session.store import SessionStore
from teamtravel.types import ClarificationNeeded, GroupTravelPlan, MemberAssignment, Organization, User
from teamtravel.user.preferences import PreferenceStore
from teamtravel.user.directory import UserDirectory

from test_aggregator import RecordingSource


@pytest.fixture
def directory():
    d = UserDirectory()
    org = d.create_organization(Organization(id="org1", name="Acme"))
    d.create_user(User(id="u1", email="ann@acme.test", name="Ann Lee", organization_id=org.id,
                       home_city="New York", home_airport="JFK"))
    d.create_user(User(id="u2", email="bo@acme.test", name="Bo Diaz", organization_id=org.id,
                       home_city="Chicago", home_airport="ORD"))
    return d


@pytest.fixture
def preferences():
    return PreferenceStore(store=SessionStore(ttl_seconds=60), history_store=SessionStore(ttl_seconds=60))


def make_coordinator(directory, preferences, source, calendar_store=None):
    aggregator = MultiOriginSearchAggregator(source, max_concurrent=4, timeout_seconds=2)
    return GroupTravelCoordinator(directory, calendar_store or CalendarStore(), preferences, aggregator)


class TestPlanGroupTravel:
    async def test_local_member_and_total(self, directory, preferences, make_need):
        source = RecordingSource()
        coordinator = make_coordinator(directory, preferences, source)
        needs = [
            make_need("u1", origin_airport="JFK", departure=date(2026, 3, 5)),
            make_need("u2", origin_airport="ORD", departure=date(2026, 3, 5)),
        ]
        plan = await coordinator.plan_group_travel("org1", needs)

        assert isinstance(plan, GroupTravelPlan)
        assert source.calls == [("JFK", "ORD")]
        members = {m.user_id: m for m in plan.members}
        assert members["u2"].recommended_flight is None
        assert members["u2"].is_local
        assert members["u2"].notes == [local_note("ORD")]
        assert members["u1"].recommended_flight is not None
        assert plan.total_estimated_cost == members["u1"].recommended_flight.total_price
        assert "Estimated total: $250.00" in plan.summary

    async def test_members_ranked_on_own_preferences(self, directory, preferences, make_need):
        preferences.update("u1", {"preferred_airlines": ["DL"], "budget_priority": "best_experience"})
        coordinator = make_coordinator(directory, preferences, MockFlightSource())
        plan = await coordinator.plan_group_travel("org1", [make_need("u1"), make_need("u2")], title="Chicago Summit")
        u1 = next(m for m in plan.members if m.user_id == "u1")
        assert "Prefers: DL" in u1.notes
        assert len(u1.alternative_flights) <= 3
        assert plan.event_title == "Chicago Summit"
        assert plan.shared_flight_options

    async def test_failed_origin_gets_note_not_error(self, directory, preferences, make_need):
        source = RecordingSource(fail_for={"JFK"})
        coordinator = make_coordinator(directory, preferences, source)
        plan = await coordinator.plan_group_travel("org1", [make_need("u1"), make_need("u2", origin_airport="ORD")])
        u1 = next(m for m in plan.members if m.user_id == "u1")
        assert u1.recommended_flight is None
        assert u1.notes == [no_flights_note("JFK")]
        assert plan.total_estimated_cost == 0

    async def test_assignments_override_need_origins(self, directory, preferences, make_need):
        source = RecordingSource()
        coordinator = make_coordinator(directory, preferences, source)
        assignments = [
            MemberAssignment(user_id="u1", home_airport="BOS"),
            MemberAssignment(user_id="u2", home_airport="SFO"),
        ]
        plan = await coordinator.plan_group_travel("org1", [make_need("u1")], assignments)
        assert sorted(source.calls) == [("BOS", "ORD"), ("SFO", "ORD")]
        assert {m.home_airport for m in plan.members} == {"BOS", "SFO"}

    async def test_unresolved_destination_asks_for_clarification(self, directory, preferences, make_need):
        source = RecordingSource()
        coordinator = make_coordinator(directory, preferences, source)
        need = make_need("u1", destination_city="Atlantis", destination_airport=None)
        result = await coordinator.plan_group_travel("org1", [need])
        assert isinstance(result, ClarificationNeeded)
        assert result.field == "destination_airport"
        assert source.calls == []

    async def test_destination_honours_preferred_airport(self, directory, preferences, make_need):
        preferences.update("u1", {"preferred_airports": {"Chicago": "MDW"}})
        source = RecordingSource()
        coordinator = make_coordinator(directory, preferences, source)
        need = make_need("u1", destination_airport=None)
        plan = await coordinator.plan_group_travel("org1", [need])
        assert plan.destination_airport == "MDW"

    async def test_unresolved_origin_asks_for_clarification(self, directory, preferences, make_need):
        coordinator = make_coordinator(directory, preferences, RecordingSource())
        need = make_need("u1", origin_airport=None, origin_city="Atlantis")
        result = await coordinator.plan_group_travel("org1", [need])
        assert isinstance(result, ClarificationNeeded)
        assert result.field == "origin_airport"
        assert result.query == "Atlantis"

    async def test_empty_needs_is_a_caller_error(self, directory, preferences):
        coordinator = make_coordinator(directory, preferences, RecordingSource())
        with pytest.raises(ValueError):
            await coordinator.plan_group_travel("org1", [])


class TestDetectGroups:
    def test_groups_from_organization_needs(self, directory, preferences, make_need):
        store = CalendarStore()
        store.replace_travel_needs("u1", [make_need("u1", departure=date(2026, 3, 5))])
        store.replace_travel_needs("u2", [make_need("u2", origin_airport="ORD", destination_city="Chicago",
                                                    departure=date(2026, 3, 6))])
        coordinator = make_coordinator(directory, preferences, RecordingSource(), calendar_store=store)
        groups = coordinator.detect_groups("org1")
        assert len(groups) == 1
        assert set(groups[0].traveler_ids) == {"u1", "u2"}
