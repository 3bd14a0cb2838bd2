from datetime import date

import pytest

from teamtravel.obs.metrics import get_counter
from teamtravel.calendar.scanner import CalendarScanner
from teamtravel.calendar.store import CalendarStore
from teamtravel.conversation.group_flow.graph import route_step
from teamtravel.conversation.group_flow.manager import GroupFlowManager
from teamtravel.conversation.group_flow.nodes import find_back_to_back
from teamtravel.conversation.group_flow.store import GroupFlowStore
from teamtravel.formatters import messages
from teamtravel.group.aggregator import MultiOriginSearchAggregator
from teamtravel.group.planner import GroupTravelCoordinator
from teamtravel.session.store import SessionStore
from teamtravel.types import ConferenceInfo
from teamtravel.user.preferences import PreferenceStore
from teamtravel.user.directory import UserDirectory

from test_aggregator import RecordingSource


def conference(title, start, end, city="San Francisco", airport="SFO"):
    return ConferenceInfo(title=title, city=city, airport=airport, start_date=start, end_date=end)


@pytest.fixture
def env(make_need):
    directory = UserDirectory()
    calendar_store = CalendarStore()
    preferences = PreferenceStore(store=SessionStore(ttl_seconds=60), history_store=SessionStore(ttl_seconds=60))
    source = RecordingSource()
    coordinator = GroupTravelCoordinator(
        directory, calendar_store, preferences,
        MultiOriginSearchAggregator(source, max_concurrent=4, timeout_seconds=2),
    )
    store = GroupFlowStore(store=SessionStore(ttl_seconds=60))
    manager = GroupFlowManager(
        store=store,
        scanner=CalendarScanner(calendar_store, directory),
        calendar_store=calendar_store,
        directory=directory,
        coordinator=coordinator,
        preferences=preferences,
    )
    calendar_store.replace_travel_needs("lead", [
        make_need("lead", title="SaaS Connect West", destination_city="San Francisco",
                  destination_airport="SFO", departure=date(2026, 3, 5), return_date=date(2026, 3, 7)),
        make_need("lead", title="Chicago Client Meeting", departure=date(2026, 3, 8)),
        make_need("lead", title="TechCrunch Disrupt", destination_city="Las Vegas",
                  destination_airport="LAS", departure=date(2026, 3, 10), return_date=date(2026, 3, 12)),
    ])
    return {
        "manager": manager,
        "store": store,
        "calendar_store": calendar_store,
        "preferences": preferences,
        "source": source,
    }


class TestBackToBack:
    def test_three_day_gap_flagged(self):
        note = find_back_to_back([
            conference("A", date(2026, 3, 1), date(2026, 3, 3)),
            conference("B", date(2026, 3, 6), date(2026, 3, 8)),
        ])
        assert note
        assert "3 days apart" in note

    def test_ten_day_gap_ignored(self):
        assert find_back_to_back([
            conference("A", date(2026, 3, 1), date(2026, 3, 3)),
            conference("B", date(2026, 3, 13), date(2026, 3, 15)),
        ]) is None

    def test_first_qualifying_pair_reported(self):
        note = find_back_to_back([
            conference("C", date(2026, 3, 10), date(2026, 3, 11)),
            conference("A", date(2026, 3, 1), date(2026, 3, 3)),
            conference("B", date(2026, 3, 5), date(2026, 3, 7)),
        ])
        assert '"A" and "B"' in note

    def test_overlap_is_not_back_to_back(self):
        assert find_back_to_back([
            conference("A", date(2026, 3, 1), date(2026, 3, 5)),
            conference("B", date(2026, 3, 3), date(2026, 3, 6)),
        ]) is None


class TestRouteStep:
    @pytest.mark.parametrize("flow,expected", [
        (None, "detect_conferences"),
        ({"step": "conferences_detected"}, "assign_team"),
        ({"step": "awaiting_team"}, "assign_team"),
        ({"step": "showing_results"}, "approve"),
        ({"step": "awaiting_approval"}, "approve"),
        ({"step": "complete"}, "finished"),
        ({"step": "teleporting"}, "reset"),
    ])
    def test_routes(self, flow, expected):
        assert route_step({"user_id": "u", "message": "", "flow": flow, "response": ""}) == expected


class TestGroupFlow:
    async def test_detection_lists_conferences_only(self, env):
        reply = await env["manager"].start_group_flow("lead")
        assert "I found 2 conferences" in reply
        assert "Chicago Client Meeting" not in reply
        assert "Back-to-back alert" in reply
        flow = env["store"].load("lead")
        assert flow.step == "conferences_detected"
        assert [c.title for c in flow.conferences] == ["SaaS Connect West", "TechCrunch Disrupt"]
        assert env["manager"].is_active("lead")

    async def test_no_conferences_stores_nothing(self, env, make_need):
        env["calendar_store"].replace_travel_needs("lead", [make_need("lead", title="Chicago Client Meeting")])
        reply = await env["manager"].start_group_flow("lead")
        assert reply == messages.NO_CONFERENCES
        assert env["store"].get("lead") is None
        assert not env["manager"].is_active("lead")

    async def test_unrelated_message_while_awaiting_team(self, env):
        manager = env["manager"]
        await manager.start_group_flow("lead")
        await manager.handle_group_flow_message("lead", "what is the weather like")
        reply = await manager.handle_group_flow_message("lead", "not sure yet")
        assert reply == messages.TEAM_REPROMPT
        flow = env["store"].load("lead")
        assert flow.step == "awaiting_team"
        assert flow.plans is None
        assert get_counter("group_plans_total") == 0
        assert env["source"].calls == []

    async def test_whole_team_plans_every_conference(self, env):
        manager = env["manager"]
        await manager.start_group_flow("lead")
        reply = await manager.handle_group_flow_message("lead", "send the whole team")

        flow = env["store"].load("lead")
        assert flow.step == "awaiting_approval"
        assert len(flow.plans) == 2
        assert len(flow.team_members) == 5
        assert "Conference Season Flight Summary" in reply
        assert "Grand Total" in reply
        assert "Sarah Chen" in reply
        sf_plan = next(p for p in flow.plans if p.destination_airport == "SFO")
        sarah = next(m for m in sf_plan.members if m.user_name == "Sarah Chen")
        assert sarah.is_local

    async def test_approval_required_then_completes(self, env):
        manager = env["manager"]
        await manager.start_group_flow("lead")
        await manager.handle_group_flow_message("lead", "everyone")

        reply = await manager.handle_group_flow_message("lead", "hmm, let me think")
        assert reply == messages.APPROVAL_REPROMPT
        assert env["store"].load("lead").step == "awaiting_approval"

        reply = await manager.handle_group_flow_message("lead", "approve")
        assert "Booking Confirmed!" in reply
        assert "Spending limit" in reply
        assert env["store"].get("lead") is None
        assert not manager.is_active("lead")
        assert len(env["preferences"].booking_history("lead")) == 2

    async def test_unknown_step_resets(self, env):
        env["store"].save("lead", {"step": "teleporting"})
        reply = await env["manager"].handle_group_flow_message("lead", "the whole team")
        assert reply == messages.RESTART
        assert env["store"].get("lead") is None

    async def test_corrupt_flow_resets(self, env):
        env["store"].save("lead", {"step": "awaiting_team", "conferences": "not-a-list"})
        reply = await env["manager"].handle_group_flow_message("lead", "the whole team")
        assert reply == messages.RESTART
        assert env["store"].get("lead") is None

    async def test_complete_flow_is_cleared(self, env):
        env["store"].save("lead", {"step": "complete"})
        assert not env["manager"].is_active("lead")
        reply = await env["manager"].handle_group_flow_message("lead", "approve")
        assert reply == messages.ALREADY_CONFIRMED
        assert env["store"].get("lead") is None

    async def test_unresolved_conference_airport_is_skipped(self, env, make_need):
        env["calendar_store"].replace_travel_needs("lead", [
            make_need("lead", title="Atlantis Summit", destination_city="Atlantis",
                      destination_airport=None, departure=date(2026, 4, 1), return_date=date(2026, 4, 2)),
            make_need("lead", title="TechCrunch Disrupt", destination_city="Las Vegas",
                      destination_airport="LAS", departure=date(2026, 4, 10), return_date=date(2026, 4, 12)),
        ])
        manager = env["manager"]
        await manager.start_group_flow("lead")
        reply = await manager.handle_group_flow_message("lead", "the whole team")
        flow = env["store"].load("lead")
        assert [p.event_title for p in flow.plans] == ["TechCrunch Disrupt"]
        assert "Atlantis Summit: Which airport should I use for Atlantis?" in reply
