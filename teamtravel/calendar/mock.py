from datetime import datetime, timedelta
from typing import List

from teamtravel.types import CalendarEvent

# (title, description, location, day offset, start h:m, end day offset, end h:m, attendees)
_SAMPLE_EVENTS = [
    ("Client Meeting - Chicago Office",
     "Quarterly review with Acme Corp leadership team at their Chicago headquarters",
     "233 S Wacker Dr, Chicago, IL 60606", 5, (10, 0), 5, (16, 0),
     ["john@acmecorp.com", "sarah@acmecorp.com"]),
    ("QBR with DataFlow Inc - Austin",
     "Quarterly business review. Meeting at their new Austin campus.",
     "DataFlow Inc, 500 W 2nd St, Austin, TX 78701", 12, (9, 0), 12, (17, 0),
     ["mike@dataflow.io"]),
    ("Annual Sales Conference - Las Vegas",
     "Company-wide annual sales kickoff at The Venetian",
     "The Venetian Resort, Las Vegas, NV", 20, (8, 0), 22, (18, 0), []),
    ("Board Meeting - San Francisco",
     "Monthly board meeting at SF headquarters",
     "1 Market St, San Francisco, CA 94105", 8, (14, 0), 8, (17, 0),
     ["ceo@company.com", "cfo@company.com"]),
    ("Engineering Team Offsite - Denver",
     "Two-day engineering team offsite and hackathon",
     "WeWork, 1550 Wewatta St, Denver, CO", 15, (9, 0), 16, (17, 0),
     ["eng-team@company.com"]),
    ("Weekly Team Standup", "Regular Monday standup", "Conference Room A",
     1, (9, 30), 1, (10, 0), ["team@company.com"]),
    ("Lunch with Product Team", "Casual lunch to discuss roadmap", None,
     3, (12, 0), 3, (13, 0), []),
    ("1:1 with Manager", "Regular 1:1", None, 2, (14, 0), 2, (14, 30), ["manager@company.com"]),
    ("Dentist Appointment", "Regular checkup", "456 Main St", 4, (15, 0), 4, (16, 0), []),
    ("Sprint Planning", "Sprint 14 planning session", "Zoom", 6, (10, 0), 6, (11, 30),
     ["eng-team@company.com"]),
    # conference season
    ("SaaS Connect West 2026",
     "Annual SaaS industry conference. Panels on PLG, pricing strategy, and partner ecosystems.",
     "Moscone Center, 747 Howard St, San Francisco, CA 94103", 25, (8, 0), 27, (17, 0),
     ["events@saasconnect.io"]),
    ("TechCrunch Disrupt 2026",
     "Startup showcase and networking. Our team is presenting at the enterprise track.",
     "Las Vegas Convention Center, 3150 Paradise Rd, Las Vegas, NV 89109", 35, (9, 0), 37, (18, 0),
     ["speakers@techcrunch.com"]),
    ("Enterprise Connect Summit",
     "Enterprise SaaS summit focused on collaboration and unified communications.",
     "McCormick Place, 2301 S Lake Shore Dr, Chicago, IL 60616", 50, (8, 0), 52, (17, 0),
     ["info@enterpriseconnect.com"]),
    ("AWS re:Invent 2026",
     "AWS annual conference. Full team attendance for cloud infrastructure track.",
     "The Venetian Expo, 201 Sands Ave, Las Vegas, NV 89169", 55, (8, 0), 58, (18, 0),
     ["reinvent@amazon.com"]),
]


def _at(base: datetime, days: int, hm) -> datetime:
    d = base + timedelta(days=days)
    return d.replace(hour=hm[0], minute=hm[1], second=0, microsecond=0)


class MockCalendarService:
    """Sample calendar: a few trips, local meetings and a run of conferences."""

    def fetch_events(self, user_id: str, now: datetime = None) -> List[CalendarEvent]:
        base = (now or datetime.now()).replace(tzinfo=None)
        events = []
        for i, (title, desc, loc, d0, t0, d1, t1, attendees) in enumerate(_SAMPLE_EVENTS):
            events.append(CalendarEvent(
                id=f"{user_id}-evt-{i}",
                user_id=user_id,
                title=title,
                description=desc,
                location=loc,
                start_time=_at(base, d0, t0),
                end_time=_at(base, d1, t1),
                attendees=attendees,
            ))
        return events
