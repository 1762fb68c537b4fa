"""
Where: lambda_gateway/exceptions.py
What: Gateway exception handler registration.
Why: Keep error handling setup isolated from route and lifecycle concerns.
"""

from fastapi import FastAPI

from .core.exceptions import (
    ContextHookError,
    ProtocolViolationError,
    WorkerCrashError,
    WorkerSpawnError,
    context_hook_handler,
    global_exception_handler,
    protocol_violation_handler,
    worker_crash_handler,
    worker_spawn_handler,
)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(WorkerCrashError, worker_crash_handler)
    app.add_exception_handler(WorkerSpawnError, worker_spawn_handler)
    app.add_exception_handler(ProtocolViolationError, protocol_violation_handler)
    app.add_exception_handler(ContextHookError, context_hook_handler)
