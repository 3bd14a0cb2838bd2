"""Request-scoped identifiers carried through ContextVars."""

from contextvars import ContextVar
from typing import Optional


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def clear_context() -> None:
    request_id_var.set(None)
    user_id_var.set(None)
