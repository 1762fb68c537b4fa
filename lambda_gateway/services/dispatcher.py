"""
Dispatcher - request correlation and routing to worker supervisors

Every accepted request gets a correlation id and a pending entry (a future
the HTTP handler awaits). The invocation runs as its own task, so a client
that disconnects does not cancel the worker; the result is then dropped.

All state lives on the gateway's event loop; the pending map needs no lock.
"""

import asyncio
import logging
from typing import Dict, Optional, Set, Tuple

from ..core.exceptions import InvariantViolationError
from ..core.request_context import generate_correlation_id, set_request_id
from ..core.utils import forbidden_result
from ..models.aws_v1 import APIGatewayProxyEvent, ProxyResult
from .function_registry import FunctionRegistry
from .route_matcher import RouteMatcher

logger = logging.getLogger("gateway.dispatcher")


def request_pathname(target: str) -> str:
    """Path part of a request target, without query string or fragment."""
    path = target.partition("?")[0].partition("#")[0]
    return path or "/"


class Dispatcher:
    def __init__(self, registry: FunctionRegistry, route_matcher: Optional[RouteMatcher] = None):
        self.registry = registry
        self.route_matcher = route_matcher or RouteMatcher(registry)
        self.pending: Dict[str, asyncio.Future] = {}
        self._tasks: Set[asyncio.Task] = set()

    def has_pending_request(self, request_id: str) -> bool:
        return request_id in self.pending

    def submit(self, event: APIGatewayProxyEvent) -> Tuple[str, asyncio.Future]:
        """
        Register a pending entry for the event and start dispatching it.

        Returns:
            (correlation id, future resolved with a ProxyResult or the failure)
        """
        request_id = generate_correlation_id()
        if request_id in self.pending:
            raise InvariantViolationError(request_id, "duplicate correlation id")

        future = asyncio.get_running_loop().create_future()
        self.pending[request_id] = future

        task = asyncio.create_task(self._run(request_id, event))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return request_id, future

    async def dispatch(self, request_id: str, event: APIGatewayProxyEvent) -> ProxyResult:
        """
        Route the event and invoke the matched function.

        A path without a route gets API Gateway's 403 and never spawns a worker.
        """
        pathname = request_pathname(event.path)
        function = self.route_matcher.match_route(pathname)
        if function is None:
            return forbidden_result()

        worker = self.registry.get_worker(function)
        if worker is None:
            raise LookupError(f"no worker registered for {function.path}")
        return await worker.invoke(request_id, event)

    def handle_result(
        self,
        request_id: str,
        result: Optional[ProxyResult] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """
        Resolve and remove the pending entry for request_id.

        Raises:
            InvariantViolationError: no entry exists (unknown or already resolved)
        """
        future = self.pending.pop(request_id, None)
        if future is None:
            raise InvariantViolationError(request_id)

        if future.done():
            logger.info(
                "Dropping result for a request whose client went away",
                extra={"request_id": request_id},
            )
            return

        if isinstance(error, asyncio.CancelledError):
            future.cancel()
        elif error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    async def _run(self, request_id: str, event: APIGatewayProxyEvent) -> None:
        set_request_id(request_id)
        try:
            result = await self.dispatch(request_id, event)
        except asyncio.CancelledError:
            self.handle_result(request_id, error=asyncio.CancelledError())
            raise
        except Exception as exc:
            self.handle_result(request_id, error=exc)
        else:
            self.handle_result(request_id, result)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.critical(f"Dispatch task failed: {exc}", exc_info=exc)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the dispatch tasks started so far.

        Returns:
            True when none are left running
        """
        if self._tasks:
            await asyncio.wait(list(self._tasks), timeout=timeout)
        return not self._tasks
