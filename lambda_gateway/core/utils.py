"""
Gateway Utility Module
"""

import json
import logging
from typing import Any

from starlette.responses import Response

from ..models.aws_v1 import ProxyResult

logger = logging.getLogger("gateway.utils")

FORBIDDEN_BODY = json.dumps({"message": "Forbidden"})


def forbidden_result() -> ProxyResult:
    """The result API Gateway returns when no route matches."""
    return ProxyResult(
        isBase64Encoded=False,
        statusCode=403,
        headers={},
        body=FORBIDDEN_BODY,
        multiValueHeaders={},
    )


def _header_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_http_response(result: ProxyResult) -> Response:
    """
    Convert a function result into the HTTP response.

    Single-valued headers are written first, then multi-valued headers; a
    multi-valued entry replaces a single-valued header of the same name.
    Base64-encoded bodies are not supported: the client gets a 400 whatever
    the function answered.
    """
    response = Response(status_code=result.statusCode)

    for key, value in result.headers.items():
        response.headers[key] = _header_value(value)

    for key, values in (result.multiValueHeaders or {}).items():
        if key in response.headers:
            del response.headers[key]
        if not isinstance(values, list):
            values = [values]
        for value in values:
            response.headers.append(key, _header_value(value))

    if result.isBase64Encoded:
        logger.warning("Rejected base64-encoded function result (statusCode=%s)", result.statusCode)
        response.status_code = 400
        body = FORBIDDEN_BODY
    else:
        body = result.body

    response.body = response.render(body)
    if response.status_code >= 200 and response.status_code not in (204, 304):
        response.headers["content-length"] = str(len(response.body))
    return response
