"""
Where: lambda_gateway/middleware.py
What: Gateway HTTP middleware for CORS headers and access logging.
Why: Keep per-response concerns out of the catch-all handler.
"""

import logging
import time

from fastapi import Request

from .core.security import cors_headers

logger = logging.getLogger("gateway.access")


async def cors_middleware(request: Request, call_next):
    """
    Put CORS headers on every response when CORS is enabled.
    Headers a function set itself win over the defaults.
    """
    response = await call_next(request)
    if request.app.state.enable_cors:
        for key, value in cors_headers(request.headers.get("origin")).items():
            if key not in response.headers:
                response.headers[key] = value
    return response


async def access_log_middleware(request: Request, call_next):
    """One JSON access record per request, written after the response is ready."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    logger.info(
        f"{request.method} {target} -> {response.status_code}",
        extra={
            "method": request.method,
            "target": target,
            "status": response.status_code,
            "latency_ms": elapsed_ms,
            "origin": request.headers.get("origin"),
            "peer": request.client.host if request.client else None,
        },
    )
    return response
