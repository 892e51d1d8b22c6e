"""
Per-request context carried in contextvars.

The request tracking middleware stores the request ID here; the JSON log
formatter reads it back, so every log line of a request (moderation call,
forwarding, and the streamed relay) carries the same ID.
"""

from contextvars import ContextVar

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def set_request_id(request_id: str) -> None:
    """Bind a request ID to the current context."""
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    """Request ID bound to the current context, if any."""
    return _request_id_var.get()
