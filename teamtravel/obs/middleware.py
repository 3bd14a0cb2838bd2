"""ASGI middleware that tags every HTTP request with an id, times it and logs it."""

from typing import Callable, Any
import time
import uuid

from fastapi import FastAPI

from teamtravel.obs.context import request_id_var, user_id_var
from teamtravel.obs.logger import log_event
from teamtravel.obs.metrics import record_timing, inc_counter


class ObservabilityMiddleware:
    def __init__(self, app: FastAPI):
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable[[dict], Any]):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        headers = dict(scope.get("headers") or [])
        req_id = headers.get(b"x-request-id", b"").decode() or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set(None)
        method = scope.get("method", "")
        route = scope.get("path", "")
        start = time.monotonic()
        status_code = 500

        async def send_wrapper(message: dict):
            nonlocal status_code
            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 200))
                raw = list(message.get("headers") or [])
                raw.append((b"x-request-id", req_id.encode()))
                message = {**message, "headers": raw}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000.0
            record_timing("request_latency_ms", elapsed_ms, {"route": route})
            inc_counter("requests_total", {"route": route, "status": str(status_code)})
            log_event(
                "request",
                method=method,
                route=route,
                status=status_code,
                ms_total=round(elapsed_ms, 2),
            )
