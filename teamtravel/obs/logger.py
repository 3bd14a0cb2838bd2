"""Structured JSON logging to stdout.

One JSON object per line, enriched with the request context. E-mail addresses
are masked before anything is written.
"""

from typing import Any, Dict
from datetime import datetime, timezone
import json

from teamtravel.obs.context import request_id_var, user_id_var

_EMAIL_FIELDS = ("email", "user_email", "attendee")


def _redact_email(value: Any) -> Any:
    s = str(value) if value is not None else ""
    if not s or "@" not in s:
        return s
    local, _, domain = s.partition("@")
    return f"{local[:1]}***@{domain}"


def log_event(event: str, **fields: Any) -> None:
    now = datetime.now(timezone.utc).isoformat()
    payload: Dict[str, Any] = {
        "ts": now,
        "level": fields.pop("level", "INFO"),
        "event": event,
        "request_id": request_id_var.get(),
    }
    if "user_id" not in fields:
        payload["user_id"] = user_id_var.get()

    for k, v in fields.items():
        if k in _EMAIL_FIELDS:
            payload[k] = _redact_email(v)
        else:
            payload[k] = v

    try:
        print(json.dumps(payload, separators=(",", ":"), default=str))
    except (TypeError, ValueError):
        # never let logging take the request down
        pass
