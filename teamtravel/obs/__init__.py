"""Observability helpers: request context, structured logs, in-process metrics
and the ASGI middleware that ties them together."""

__all__ = [
    "middleware",
    "metrics",
    "logger",
    "context",
]
