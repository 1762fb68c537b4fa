"""
Lambda Gateway - API Gateway compatible front door

Replicates AWS API Gateway proxy-integration behavior and forwards every
request to a function running in its own worker process.
"""

import json
import logging
from typing import List, Tuple

from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.types import Receive, Scope, Send

from .core.security import is_preflight, verify_local_request
from .core.utils import build_http_response
from .exceptions import register_exception_handlers
from .http_protocol import raw_header_pairs
from .middleware import access_log_middleware, cors_middleware
from .models.context import InputContext
from .services.processor import GatewayRequestProcessor

logger = logging.getLogger("gateway.main")

def _request_target(request: Request) -> str:
    """Request target as the client sent it: raw path plus query string."""
    raw_path = request.scope.get("raw_path") or request.url.path.encode("utf-8")
    target = raw_path.decode("latin-1")
    query = request.scope.get("query_string", b"")
    if query:
        target = f"{target}?{query.decode('latin-1')}"
    return target


def _raw_headers(request: Request) -> List[Tuple[str, str]]:
    """Every header in arrival order, with the client's name casing when the server kept it."""
    pairs = raw_header_pairs(request.scope)
    if pairs is not None:
        return pairs
    return [(key.decode("latin-1"), value.decode("latin-1")) for key, value in request.headers.raw]


class GatewayEndpoint:
    """
    ASGI endpoint for the catch-all route.

    Starlette only restricts methods on function endpoints, so a route built
    on this accepts every method, including non-standard ones like XMODIFY.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = await gateway_handler(Request(scope, receive))
        await response(scope, receive, send)


async def gateway_handler(request: Request) -> Response:
    """
    Catch-all route: security checks, then hand the request to a function.

    Accepts any method on any path.
    """
    enable_cors = request.app.state.enable_cors

    if enable_cors and is_preflight(request.method):
        return Response(status_code=200)

    rejection = verify_local_request(
        request.headers.get("referer"), request.headers.get("host"), enable_cors
    )
    if rejection:
        logger.warning(
            f"Rejected request: {rejection}",
            extra={"host": request.headers.get("host"), "referer": request.headers.get("referer")},
        )
        return Response(
            content=json.dumps({"message": rejection}, indent=2),
            status_code=403,
            media_type="application/json",
        )

    body = await request.body()
    context = InputContext(
        method=request.method,
        target=_request_target(request),
        raw_headers=_raw_headers(request),
        body=body,
    )

    processor: GatewayRequestProcessor = request.app.state.processor
    result = await processor.process_request(context)
    return build_http_response(result)


def create_app(processor: GatewayRequestProcessor, enable_cors: bool = False) -> FastAPI:
    """
    Assemble the gateway application.

    The docs and OpenAPI routes are disabled: every path belongs to functions.
    """
    app = FastAPI(
        title="Lambda Gateway",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.processor = processor
    app.state.enable_cors = enable_cors

    # Registration order: the last one added runs first.
    app.middleware("http")(cors_middleware)
    app.middleware("http")(access_log_middleware)

    register_exception_handlers(app)

    app.add_route("/{path:path}", GatewayEndpoint(), include_in_schema=False)
    return app
