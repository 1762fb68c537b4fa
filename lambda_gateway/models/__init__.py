"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .aws_v1 import APIGatewayProxyEvent, ProxyResult
from .function import FunctionEntity
from .ipc import EventMessage, ResultMessage
from .options import GatewayOptions

__all__ = [
    "APIGatewayProxyEvent",
    "ProxyResult",
    "FunctionEntity",
    "EventMessage",
    "ResultMessage",
    "GatewayOptions",
]
