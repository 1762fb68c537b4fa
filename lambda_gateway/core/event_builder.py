from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Tuple
from urllib.parse import urlsplit

from starlette.datastructures import QueryParams

from ..models.aws_v1 import APIGatewayProxyEvent
from ..models.context import InputContext


def single_value_pairs(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """First occurrence of each key wins; later duplicates are dropped."""
    out: Dict[str, str] = {}
    for key, value in pairs:
        if key not in out:
            out[key] = value
    return out


def multi_value_pairs(pairs: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    """Every occurrence of each key, in arrival order."""
    out: Dict[str, List[str]] = {}
    for key, value in pairs:
        out.setdefault(key, []).append(value)
    return out


class EventBuilder(ABC):
    @abstractmethod
    def build(self, context: InputContext) -> APIGatewayProxyEvent:
        """
        Build an event from an InputContext.
        """
        pass


class V1ProxyEventBuilder(EventBuilder):
    """API Gateway V1 (REST API) compatible event builder."""

    def build(self, context: InputContext) -> APIGatewayProxyEvent:
        """
        Build an API Gateway Lambda Proxy Integration-compatible event object from context.

        pathParameters, stageVariables and requestContext start empty; the
        request-context hook may fill in the latter afterwards.
        """
        query_pairs = QueryParams(urlsplit(context.target).query).multi_items()

        return APIGatewayProxyEvent(
            resource="/{proxy+}",
            path=context.target or "/",
            httpMethod=context.method or "GET",
            headers=single_value_pairs(context.raw_headers),
            multiValueHeaders=multi_value_pairs(context.raw_headers),
            queryStringParameters=single_value_pairs(query_pairs),
            multiValueQueryStringParameters=multi_value_pairs(query_pairs),
            pathParameters={},
            stageVariables={},
            requestContext={},
            body=context.body.decode("utf-8", errors="replace"),
            isBase64Encoded=False,
        )
