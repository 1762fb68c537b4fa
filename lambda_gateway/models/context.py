"""
Input context models.

Encapsulates all data required to build an event from an incoming request.
"""

from typing import List, Tuple

from pydantic import BaseModel, Field


class InputContext(BaseModel):
    """
    Raw view of an incoming request.

    This model decouples event building from FastAPI's Request object.
    `target` is the request target as received (path plus query string);
    `raw_headers` keeps every header occurrence in arrival order.
    """

    method: str
    target: str
    raw_headers: List[Tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""
