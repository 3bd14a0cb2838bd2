from datetime import date

import pytest

from teamtravel.formatters import messages
from teamtravel.types import (
    ConferenceInfo,
    GroupMemberPlan,
    GroupTravelPlan,
    TeamMember,
    UserPreferences,
)

from conftest import build_need, build_offer


def member_plan(user_id, name, airport, price=None, notes=None):
    return GroupMemberPlan(
        user_id=user_id,
        user_name=name,
        home_airport=airport,
        preferences=UserPreferences(user_id=user_id),
        recommended_flight=build_offer(f"{user_id}-f", price=price, origin=airport, destination="SFO") if price else None,
        notes=notes or [],
        is_local=price is None,
    )


@pytest.fixture
def plan():
    return GroupTravelPlan(
        organization_id="org1",
        event_title="SaaS Connect West",
        destination="San Francisco",
        destination_airport="SFO",
        departure_date=date(2026, 3, 5),
        members=[
            member_plan("u1", "Ann Lee", "JFK", price=412.5),
            member_plan("u2", "Bo Diaz", "SFO", notes=["Based in SFO, no flight needed"]),
        ],
        total_estimated_cost=412.5,
        summary="",
    )


@pytest.fixture
def team():
    return [
        TeamMember(user_id="u1", name="Ann Lee", home_airport="JFK", home_city="New York"),
        TeamMember(user_id="u2", name="Bo Diaz", home_airport="SFO", home_city="San Francisco"),
    ]


class TestMoney:
    def test_two_decimals_with_grouping(self):
        assert messages.money(1234.5) == "$1,234.50"
        assert messages.money(0) == "$0.00"


class TestScanSummary:
    def test_no_needs(self):
        assert "did not detect" in messages.format_scan_summary([])

    def test_markers_and_confidence(self):
        text = messages.format_scan_summary([
            build_need(urgency="critical", return_date=date(2026, 3, 7)),
            build_need(title="Austin QBR", destination_city="Austin", urgency="low"),
        ])
        assert "I found 2 upcoming events that appear to require travel" in text
        assert '[URGENT] "Chicago Client Meeting" -> Chicago (depart 2026-03-05, return 2026-03-07)' in text
        assert '- "Austin QBR" -> Austin (depart 2026-03-05)' in text
        assert "[85% confidence]" in text

    def test_singular(self):
        assert "1 upcoming event that appears" in messages.format_scan_summary([build_need()])


class TestConferenceResults:
    def test_totals_and_local_member(self, plan, team):
        text = messages.format_conference_results([plan], team, clarifications=["Atlantis Summit: which airport?"])
        assert text.startswith("Conference Season Flight Summary")
        assert "SaaS Connect West - San Francisco (Mar 5)" in text
        assert "Ann Lee: $412.50 (United Airlines, JFK -> SFO)" in text
        assert "Bo Diaz: Based in SFO, no flight needed" in text
        assert "Subtotal: $412.50" in text
        assert "Atlantis Summit: which airport?" in text
        assert text.endswith("Grand Total: $412.50 for 2 team members across 1 conferences")

    def test_detected_listing(self):
        confs = [ConferenceInfo(title="Disrupt", city="Las Vegas", airport="LAS",
                                start_date=date(2026, 4, 1), end_date=date(2026, 4, 3))]
        text = messages.format_conferences_detected(confs, "Back-to-back alert: close")
        assert "I found 1 conferences on your calendar" in text
        assert "1. Disrupt - Las Vegas (LAS), Apr 1-Apr 3" in text
        assert "Back-to-back alert: close" in text


class TestBookingConfirmation:
    def test_card_limit_rounds_up_with_buffer(self):
        assert messages.card_limit(1000) == 1100
        assert messages.card_limit(412.5) == 454
        assert messages.card_limit(0) == 0

    def test_confirmation_content(self, plan):
        conf = ConferenceInfo(title="SaaS Connect West", city="San Francisco", airport="SFO",
                              start_date=date(2026, 3, 5), end_date=date(2026, 3, 7))
        text = messages.format_booking_confirmation([conf], [plan], confirmation_id="BTS-TEST", card_last4="4242")
        assert "Confirmation: BTS-TEST" in text
        assert "Flights booked: 1" in text
        assert "Total cost: $412.50" in text
        assert "Card ending: ****4242" in text
        assert "Spending limit: $454" in text
        assert "Auto-tags: SaaS Connect West" in text
        assert '- SaaS Connect West: $412.50 -> "Conference Travel"' in text

    def test_generated_ids(self):
        cid = messages.new_confirmation_id()
        assert cid.startswith("BTS-")
        assert len(cid) == 14
        assert cid != messages.new_confirmation_id()
        assert 1000 <= int(messages.new_card_last4()) <= 9999


class TestSmallMessages:
    def test_greeting_uses_first_name(self):
        assert messages.format_greeting("Sarah Chen").startswith("Hello Sarah!")
        assert messages.format_greeting(None).startswith("Hello there!")

    def test_driving_note(self):
        note = messages.format_driving_note("Philadelphia", 94.4, 113)
        assert "about 94 miles away" in note
        assert "roughly 2 hours" in note

    def test_preference_update(self):
        text = messages.format_preference_update(["Seat preference: aisle"])
        assert "- Seat preference: aisle" in text
