"""
Where: lambda_gateway/http_protocol.py
What: uvicorn h11 protocol that keeps header names as the client sent them.
Why: ASGI scopes carry lowercased header names; function events must not.
"""

from typing import List, Optional, Tuple

import h11
from uvicorn.protocols.http.h11_impl import H11Protocol

RAW_HEADERS_EXTENSION = "lambda_gateway.raw_headers"


class _RecordingConnection(h11.Connection):
    """h11 connection that remembers the raw header list of the last request."""

    last_raw_headers: Optional[List[Tuple[bytes, bytes]]] = None

    def next_event(self):
        event = super().next_event()
        if isinstance(event, h11.Request):
            self.last_raw_headers = event.headers.raw_items()
        return event


class RawHeaderH11Protocol(H11Protocol):
    """
    H11Protocol that adds the request's raw headers to the scope under
    scope["extensions"][RAW_HEADERS_EXTENSION] as (name, value) str pairs.

    scope["headers"] stays lowercased; Starlette relies on that.
    """

    def __init__(self, config, *args, **kwargs):
        super().__init__(config, *args, **kwargs)
        max_event_size = getattr(config, "h11_max_incomplete_event_size", None)
        if max_event_size is not None:
            self.conn = _RecordingConnection(h11.SERVER, max_event_size)
        else:
            self.conn = _RecordingConnection(h11.SERVER)

    def handle_events(self) -> None:
        super().handle_events()

        # h11 pauses after each request, so one call builds at most one scope;
        # its task has not started yet.
        raw = self.conn.last_raw_headers
        if raw is None:
            return
        self.conn.last_raw_headers = None
        scope = getattr(self, "scope", None)
        if scope is not None:
            scope.setdefault("extensions", {})[RAW_HEADERS_EXTENSION] = [
                (name.decode("latin-1"), value.decode("latin-1")) for name, value in raw
            ]


def raw_header_pairs(scope: dict) -> Optional[List[Tuple[str, str]]]:
    """Raw headers recorded by RawHeaderH11Protocol, or None under other servers."""
    return (scope.get("extensions") or {}).get(RAW_HEADERS_EXTENSION)
