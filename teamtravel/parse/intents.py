import re
from typing import Dict, List, Optional, Pattern, Tuple

GROUP_TRAVEL = "group_travel"
WHOLE_TEAM = "whole_team"
APPROVAL = "approval"
CALENDAR_SCAN = "calendar_scan"
FLIGHT_SEARCH = "flight_search"
PREFERENCE_UPDATE = "preference_update"
HELP = "help"
GREETING = "greeting"

# Checked in order; the first tag with a matching pattern wins in classify().
DEFAULT_PATTERNS: List[Tuple[str, List[str]]] = [
    (GROUP_TRAVEL, [
        r"conference season",
        r"team travel",
        r"travel options for.*conference",
        r"group travel",
        r"plan.*conferences",
    ]),
    (WHOLE_TEAM, [
        r"whole team",
        r"\beveryone\b",
        r"entire team",
        r"all of us",
        r"\bthe team\b",
    ]),
    (APPROVAL, [
        r"\byes\b",
        r"\bapprove",
        r"book it",
        r"\bconfirm",
        r"go ahead",
        r"let'?s do it",
        r"book them",
    ]),
    (CALENDAR_SCAN, [
        r"scan.*calendar",
        r"check.*calendar",
        r"upcoming.*(trips|travel)",
        r"what.*trips",
        r"my.*events",
    ]),
    (FLIGHT_SEARCH, [
        r"search.*flight",
        r"find.*flight",
        r"book.*flight",
        r"flights? (from|to)",
        r"need.*fly",
        r"get to",
    ]),
    (PREFERENCE_UPDATE, [
        r"prefer",
        r"favou?rite",
        r"\blike\b",
        r"\bavoid\b",
        r"don'?t fly",
        r"\bbudget\b",
        r"cheapest",
        r"\baisle\b",
        r"\bwindow\b",
        r"morning",
        r"evening",
        r"red.eye",
    ]),
    (HELP, [
        r"^\s*(help|what can you do|commands|how|getting started)\??\s*$",
    ]),
    (GREETING, [
        r"^\s*(hi|hello|hey|good morning|good afternoon|good evening|howdy|greetings)\b",
    ]),
]

CONFERENCE_KEYWORDS = re.compile(
    r"conference|summit|connect|disrupt|re:invent|expo|convention|keynote|hackathon",
    re.IGNORECASE,
)


def is_conference_title(title: str) -> bool:
    return bool(CONFERENCE_KEYWORDS.search(title or ""))


class IntentClassifier:
    """Ordered pattern sets mapped to intent tags.

    The conversation layer only ever asks for tags, so phrasing can change here
    without touching the flow logic.
    """

    def __init__(self, patterns: Optional[List[Tuple[str, List[str]]]] = None):
        self._patterns: Dict[str, List[Pattern]] = {}
        self._order: List[str] = []
        for tag, regexes in patterns or DEFAULT_PATTERNS:
            self._order.append(tag)
            self._patterns[tag] = [re.compile(r, re.IGNORECASE) for r in regexes]

    @property
    def tags(self) -> List[str]:
        return list(self._order)

    def matches(self, text: str, tag: str) -> bool:
        return any(p.search(text or "") for p in self._patterns.get(tag, []))

    def classify(self, text: str) -> Optional[str]:
        for tag in self._order:
            if self.matches(text, tag):
                return tag
        return None
