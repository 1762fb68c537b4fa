"""
Function domain models.

Defines a route registration (path pattern -> function entry) as a Pydantic model.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import config

DEFAULT_HANDLER = "handler"
PROXY_MARKER = "+}"


class FunctionEntity(BaseModel):
    """
    Core domain entity for a routed function.

    stdout/stderr are text sinks (anything with write()); None means the
    gateway default for that stream.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str
    entry: str
    handler: str = DEFAULT_HANDLER
    environment: Dict[str, str] = Field(default_factory=dict)
    stdout: Optional[Any] = None
    stderr: Optional[Any] = None
    memory_size: int = Field(default_factory=lambda: config.GATEWAY_DEFAULT_MEMORY_SIZE)

    @property
    def is_proxy(self) -> bool:
        """True for prefix+wildcard patterns such as /api/{proxy+}."""
        return self.path.endswith(PROXY_MARKER)

    @property
    def prefix(self) -> str:
        """Literal part of a proxy pattern (everything before the last '{')."""
        if not self.is_proxy:
            return self.path
        return self.path[: self.path.rindex("{")]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FunctionEntity":
        """Factory to create from an options dict, tolerating explicit None values."""
        cleaned = {k: v for k, v in data.items() if v is not None}
        return cls(**cleaned)
