from typing import Any, Dict, Optional

from pydantic import ValidationError

from teamtravel.obs.logger import log_event
from teamtravel.calendar.scanner import CalendarScanner
from teamtravel.calendar.store import CalendarStore
from teamtravel.conversation.group_flow.graph import compile_group_flow_graph
from teamtravel.conversation.group_flow.nodes import ApproveNode, AssignTeamNode, DetectConferencesNode
from teamtravel.conversation.group_flow.state import COMPLETE, create_turn_state
from teamtravel.conversation.group_flow.store import GroupFlowStore
from teamtravel.group.planner import GroupTravelCoordinator
from teamtravel.parse.intents import IntentClassifier
from teamtravel.types import GroupFlowState
from teamtravel.user.preferences import PreferenceStore
from teamtravel.user.directory import UserDirectory

INVALID_STEP = "invalid"


class GroupFlowManager:
    """Runs the conference-season flow one message at a time.

    The stored flow is read before the turn and written (or cleared) after it;
    nodes never touch the store.
    """

    def __init__(
        self,
        store: GroupFlowStore,
        scanner: CalendarScanner,
        calendar_store: CalendarStore,
        directory: UserDirectory,
        coordinator: GroupTravelCoordinator,
        preferences: PreferenceStore,
        classifier: IntentClassifier = None,
    ):
        self.store = store
        self.classifier = classifier or IntentClassifier()
        self.graph = compile_group_flow_graph(
            detect=DetectConferencesNode(scanner, calendar_store, preferences),
            assign=AssignTeamNode(self.classifier, directory, coordinator),
            approve=ApproveNode(self.classifier, preferences),
        )

    def _load(self, user_id: str) -> Optional[Dict[str, Any]]:
        raw = self.store.get(user_id)
        if raw is None:
            return None
        try:
            return GroupFlowState.model_validate(raw).model_dump(mode="json")
        except ValidationError as e:
            log_event("group_flow_corrupt", level="WARNING", user_id=user_id, error=str(e))
            return {"step": INVALID_STEP}

    async def _run(self, user_id: str, message: str, flow: Optional[Dict[str, Any]]) -> str:
        result = await self.graph.ainvoke(create_turn_state(user_id, message, flow))
        next_flow = result.get("flow")
        if next_flow is None:
            self.store.clear(user_id)
        else:
            self.store.save(user_id, next_flow)
        return result.get("response") or ""

    def is_active(self, user_id: str) -> bool:
        raw = self.store.get(user_id)
        return raw is not None and raw.get("step") != COMPLETE

    def get_flow(self, user_id: str) -> Optional[GroupFlowState]:
        return self.store.load(user_id)

    def reset(self, user_id: str) -> bool:
        existed = self.store.get(user_id) is not None
        self.store.clear(user_id)
        return existed

    async def start_group_flow(self, user_id: str) -> str:
        """Detect conferences and enter the flow; any earlier flow is replaced"""
        return await self._run(user_id, "", None)

    async def handle_group_flow_message(self, user_id: str, message: str) -> str:
        return await self._run(user_id, message, self._load(user_id))
