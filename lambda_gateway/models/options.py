"""
Gateway construction options.

Mirrors what a caller passes when embedding the gateway: listener ports, TLS
material, worker environment, and the function table.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..config import config
from .aws_v1 import APIGatewayProxyEvent
from .function import FunctionEntity

PopulateRequestContextFn = Callable[[APIGatewayProxyEvent], Union[Any, Awaitable[Any]]]


class GatewayOptions(BaseModel):
    """
    Options for GatewayServer.

    Either `routes` (path -> entry) or `functions` (expanded entries) must be
    given; `routes` wins when both are set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    port: int = 0
    host: str = Field(default_factory=lambda: config.GATEWAY_BIND_HOST)
    https_port: Optional[int] = None
    https_key: Optional[str] = None
    https_cert: Optional[str] = None
    env: Dict[str, str] = Field(default_factory=dict)
    bin: Optional[str] = None
    routes: Optional[Dict[str, str]] = None
    functions: List[FunctionEntity] = Field(default_factory=list)
    enable_cors: bool = False
    silent: bool = False
    populate_request_context: Optional[PopulateRequestContextFn] = None
    tmp: str = Field(default_factory=lambda: config.GATEWAY_TMP_DIR)
    # Reserved execution mode; workers always run as local processes.
    docker: bool = True

    @model_validator(mode="before")
    @classmethod
    def _expand_functions(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        functions = data.get("functions") or []
        data = dict(data)
        data["functions"] = [
            FunctionEntity.from_dict(f) if isinstance(f, dict) else f for f in functions
        ]
        return data

    @model_validator(mode="after")
    def _routes_to_functions(self) -> "GatewayOptions":
        if self.routes:
            self.functions = [
                FunctionEntity(path=path, entry=entry) for path, entry in self.routes.items()
            ]
        return self

    @property
    def tls_enabled(self) -> bool:
        return bool(self.https_key and self.https_cert and self.https_port is not None)
