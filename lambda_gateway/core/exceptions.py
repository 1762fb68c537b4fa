"""
Custom exception classes.

Represent errors related to function invocation and their HTTP mapping.
"""

import json
import logging
from typing import List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger("gateway.exceptions")


class LambdaInvokeError(Exception):
    """Base exception class for function invocation."""

    pass


class WorkerCrashError(LambdaInvokeError):
    """Raised when a worker process exits before delivering a result."""

    def __init__(
        self,
        message: str = "Internal Server Error",
        stack_lines: Optional[List[str]] = None,
        exit_code: Optional[int] = None,
    ):
        self.message = message
        self.stack_lines = stack_lines if stack_lines is not None else []
        self.exit_code = exit_code
        super().__init__(message)


class WorkerSpawnError(LambdaInvokeError):
    """Raised when the OS fails to start or talk to a worker process."""

    def __init__(self, entry: str, cause: Exception):
        self.entry = entry
        self.cause = cause
        super().__init__(f"Failed to start worker for {entry}: {cause}")


class ProtocolViolationError(LambdaInvokeError):
    """Raised when a worker sends a malformed or unexpected IPC message."""

    def __init__(self, detail: str, request_id: Optional[str] = None):
        self.detail = detail
        self.request_id = request_id
        super().__init__(f"IPC protocol violation: {detail}")


class InvariantViolationError(LambdaInvokeError):
    """A result was delivered for an unknown or already resolved correlation id."""

    def __init__(self, request_id: str, detail: str = "response without request"):
        self.request_id = request_id
        super().__init__(f"{detail}: {request_id}")


class ContextHookError(LambdaInvokeError):
    """Raised when the request-context augmentation hook fails."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"populate_request_context failed: {cause}")


# ===========================================
# Exception Handlers
# ===========================================


def _pretty_json(status_code: int, content: dict) -> Response:
    return Response(
        content=json.dumps(content, indent=2),
        status_code=status_code,
        media_type="application/json",
    )


async def worker_crash_handler(request: Request, exc: WorkerCrashError):
    """
    Worker crashed before replying. The captured stderr goes back to the
    client; callers are local and trusted.
    """
    return _pretty_json(500, {"message": exc.message, "stack": exc.stack_lines})


async def worker_spawn_handler(request: Request, exc: WorkerSpawnError):
    logger.error(
        f"Worker spawn failed: {exc}",
        extra={"path": request.url.path, "entry": exc.entry},
    )
    return _pretty_json(500, {"message": str(exc), "stack": []})


async def protocol_violation_handler(request: Request, exc: ProtocolViolationError):
    logger.critical(
        f"Aborted invocation: {exc}",
        extra={"path": request.url.path, "request_id": exc.request_id},
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"message": "Bad Gateway", "detail": exc.detail},
    )


async def context_hook_handler(request: Request, exc: ContextHookError):
    logger.error(
        f"Request context hook failed: {exc.cause}",
        exc_info=exc.cause,
        extra={"path": request.url.path, "method": request.method},
    )
    return _pretty_json(500, {"message": str(exc)})


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "detail": str(exc)},
    )
