from typing import Any, Dict, Optional

from pydantic import ValidationError

from teamtravel.config import settings
from teamtravel.obs.logger import log_event
from teamtravel.session.redis_store import open_store
from teamtravel.types import GroupFlowState


class GroupFlowStore:
    """One stored group flow per user; abandoned flows expire with the store TTL."""

    def __init__(self, store=None):
        self.store = store if store is not None else open_store("group_flow:", settings.REDIS_TTL_SECONDS)

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.store.get(user_id)

    def load(self, user_id: str) -> Optional[GroupFlowState]:
        raw = self.store.get(user_id)
        if raw is None:
            return None
        try:
            return GroupFlowState.model_validate(raw)
        except ValidationError as e:
            log_event("group_flow_corrupt", level="WARNING", user_id=user_id, error=str(e))
            return None

    def save(self, user_id: str, flow: Dict[str, Any]) -> None:
        self.store.set(user_id, flow)

    def clear(self, user_id: str) -> None:
        self.store.clear(user_id)
