"""
RequestContext management.
Use ContextVar to share the correlation id across async execution.
"""

import secrets
import time
from contextvars import ContextVar
from typing import Optional


# Context variable for the correlation id of the invocation being served.
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_correlation_id() -> str:
    """
    Generate a new correlation id.

    A millisecond hex timestamp followed by random hex, laid out like a UUID.
    """
    raw = (f"{int(time.time() * 1000):x}" + secrets.token_hex(16))[:32]
    return f"{raw[:8]}-{raw[8:12]}-{raw[12:16]}-{raw[16:20]}-{raw[20:]}"


def get_request_id() -> Optional[str]:
    """Get the current correlation id."""
    return _request_id_var.get()


def set_request_id(request_id: str) -> str:
    """Set the correlation id for the current context."""
    _request_id_var.set(request_id)
    return request_id


def clear_request_id() -> None:
    """Clear the correlation id context."""
    _request_id_var.set(None)
