"""
Gateway Request Processor - Service Layer

Standardizes the flow: InputContext -> Event -> (request context) -> ProxyResult.
"""

import inspect
import logging
from typing import Optional

from ..core.event_builder import EventBuilder
from ..core.exceptions import ContextHookError
from ..models.aws_v1 import APIGatewayProxyEvent, ProxyResult
from ..models.context import InputContext
from ..models.options import PopulateRequestContextFn
from .dispatcher import Dispatcher

logger = logging.getLogger("gateway.processor")


class GatewayRequestProcessor:
    """
    Orchestrates the request processing lifecycle.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        event_builder: EventBuilder,
        populate_request_context: Optional[PopulateRequestContextFn] = None,
    ):
        self.dispatcher = dispatcher
        self.event_builder = event_builder
        self.populate_request_context = populate_request_context

    async def process_request(self, context: InputContext) -> ProxyResult:
        """
        Process a request from InputContext to ProxyResult.

        Worker failures propagate as LambdaInvokeError subclasses; the app's
        exception handlers turn them into responses.
        """
        event = self.event_builder.build(context)

        if self.populate_request_context is not None:
            event = await self._populate(event)

        request_id, future = self.dispatcher.submit(event)
        logger.info(
            f"Dispatching {context.method} {context.target}",
            extra={"request_id": request_id},
        )
        return await future

    async def _populate(self, event: APIGatewayProxyEvent) -> APIGatewayProxyEvent:
        """Run the hook, waiting for it when it hands back an awaitable."""
        try:
            value = self.populate_request_context(event)
            if inspect.isawaitable(value):
                value = await value
        except Exception as e:
            raise ContextHookError(e) from e

        return event.model_copy(update={"requestContext": value})
