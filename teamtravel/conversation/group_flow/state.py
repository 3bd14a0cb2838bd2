"""
Group Flow Graph State

One turn of the conference-season flow: the inbound message, the stored flow
(JSON-dumped GroupFlowState, None when nothing is stored) and the reply.
"""

from typing import Any, Dict, Optional
from typing_extensions import TypedDict

CONFERENCES_DETECTED = "conferences_detected"
AWAITING_TEAM = "awaiting_team"
SHOWING_RESULTS = "showing_results"
AWAITING_APPROVAL = "awaiting_approval"
COMPLETE = "complete"


class GroupFlowGraphState(TypedDict):
    """State passed through the group flow graph for a single message"""

    user_id: str
    message: str
    flow: Optional[Dict[str, Any]]
    response: str


def create_turn_state(user_id: str, message: str, flow: Optional[Dict[str, Any]]) -> GroupFlowGraphState:
    return GroupFlowGraphState(user_id=user_id, message=message, flow=flow, response="")
