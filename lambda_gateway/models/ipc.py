"""
IPC message models.

The gateway and a worker process exchange exactly two messages per
invocation, one per direction, as newline-delimited JSON over the channel
socket.
"""

from typing import Any, Dict, Literal, Union

from pydantic import BaseModel, ConfigDict

from .aws_v1 import ProxyResult

CHANNEL_FD_ENV = "LAMBDA_GATEWAY_CHANNEL_FD"


class EventMessage(BaseModel):
    """Gateway -> worker."""

    type: Literal["event"] = "event"
    id: str
    eventObject: Dict[str, Any]

    def encode(self) -> bytes:
        return (self.model_dump_json() + "\n").encode("utf-8")


class ResultMessage(BaseModel):
    """Worker -> gateway."""

    model_config = ConfigDict(strict=True)

    type: Literal["result"]
    id: str
    result: ProxyResult
    memoryUsedBytes: Union[int, float]

    @classmethod
    def decode(cls, line: bytes) -> "ResultMessage":
        """Parse one channel line. Raises pydantic.ValidationError on any mismatch."""
        return cls.model_validate_json(line)
