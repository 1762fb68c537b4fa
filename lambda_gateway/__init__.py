"""
Local emulator of API Gateway proxy integrations backed by per-invocation
worker processes.
"""

from .models.aws_v1 import APIGatewayProxyEvent, ProxyResult
from .models.function import FunctionEntity
from .models.options import GatewayOptions
from .server import GatewayServer

__all__ = [
    "APIGatewayProxyEvent",
    "ProxyResult",
    "FunctionEntity",
    "GatewayOptions",
    "GatewayServer",
]
