"""
GatewayServer - embeddable gateway emulator

Owns the function table, the dispatcher and the HTTP/HTTPS listeners.

Usage:
    gateway = GatewayServer(routes={"/hello": "functions/hello.py"})
    host_port = await gateway.start()   # "localhost:<port>"
    ...
    await gateway.close()
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional, Union

from .config import config
from .core.event_builder import V1ProxyEventBuilder
from .core.logging_config import setup_logging
from .lifecycle import Listener, materialize_pem, stop_listeners
from .main import create_app
from .models.aws_v1 import APIGatewayProxyEvent, ProxyResult
from .models.function import FunctionEntity
from .models.options import GatewayOptions
from .services.dispatcher import Dispatcher
from .services.function_registry import FunctionRegistry
from .services.process_worker import ProcessWorker
from .services.processor import GatewayRequestProcessor
from .services.route_matcher import RouteMatcher

logger = logging.getLogger("gateway.server")

# How often close() re-sweeps workers while dispatch tasks wind down.
_CLOSE_SWEEP_INTERVAL = 0.1


class GatewayServer:
    def __init__(self, options: Optional[GatewayOptions] = None, **kwargs: Any):
        """
        Args:
            options: GatewayOptions; keyword arguments build one when omitted
        """
        self.options = options or GatewayOptions(**kwargs)
        opts = self.options

        if not opts.silent:
            setup_logging(config.LOG_CONFIG_PATH, config.LOG_LEVEL)

        self.port = opts.port
        self.https_port = opts.https_port
        self.host = opts.host
        self.env = opts.env
        self.enable_cors = opts.enable_cors
        self.silent = opts.silent
        self.docker = opts.docker

        self.registry = FunctionRegistry(env=opts.env, tmp=opts.tmp, bin=opts.bin, silent=opts.silent)
        for function in opts.functions:
            self.add_worker(function)

        self.route_matcher = RouteMatcher(self.registry)
        self.dispatcher = Dispatcher(self.registry, self.route_matcher)
        self.processor = GatewayRequestProcessor(
            self.dispatcher, V1ProxyEventBuilder(), opts.populate_request_context
        )
        self.app = create_app(self.processor, enable_cors=opts.enable_cors)

        self.http_listener: Optional[Listener] = None
        self.https_listener: Optional[Listener] = None
        self.host_port: Optional[str] = None
        self._pem_files: List[str] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Function table
    # ------------------------------------------------------------------

    @property
    def functions(self) -> List[FunctionEntity]:
        return self.registry.functions

    def add_worker(self, function: Union[FunctionEntity, Dict[str, Any]]) -> ProcessWorker:
        """Register a function (entity or options dict) and return its worker."""
        if isinstance(function, dict):
            function = FunctionEntity.from_dict(function)
        return self.registry.register(function)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(self, request_id: str, event: APIGatewayProxyEvent) -> ProxyResult:
        return await self.dispatcher.dispatch(request_id, event)

    def has_pending_request(self, request_id: str) -> bool:
        return self.dispatcher.has_pending_request(request_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> str:
        """
        Start the listeners.

        Returns:
            "localhost:<port>" of the plain HTTP listener
        """
        if self._closed:
            raise RuntimeError("cannot start a closed gateway")

        if self.options.tls_enabled:
            self.https_listener = Listener(
                self.app,
                self.host,
                self.https_port,
                ssl_keyfile=self._tls_file(self.options.https_key, ".key"),
                ssl_certfile=self._tls_file(self.options.https_cert, ".crt"),
                name="https",
            )
            self.https_port = await self.https_listener.start()

        self.http_listener = Listener(self.app, self.host, self.port, name="http")
        bound_port = await self.http_listener.start()

        self.host_port = f"localhost:{bound_port}"
        logger.info(
            f"Gateway listening on {self.host_port}",
            extra={"functions": len(self.functions), "https_port": self.https_port},
        )
        return self.host_port

    async def change_port(self, new_port: int) -> str:
        """Close both listeners and bind again, HTTP on new_port."""
        self.port = new_port
        await stop_listeners([self.http_listener, self.https_listener])
        self.http_listener = self.https_listener = None
        return await self.start()

    async def close(self) -> None:
        """
        Stop accepting connections and kill every worker process.

        Returns once the listeners are down and no worker is left running.
        """
        await asyncio.gather(
            stop_listeners([self.http_listener, self.https_listener]),
            self.registry.close_all(),
        )
        self.http_listener = self.https_listener = None

        # A dispatch task may spawn after the first sweep; keep sweeping until
        # every task has settled.
        while self.dispatcher.in_flight:
            await self.registry.close_all()
            await self.dispatcher.wait_idle(timeout=_CLOSE_SWEEP_INTERVAL)

        for path in self._pem_files:
            if os.path.exists(path):
                os.unlink(path)
        self._pem_files = []
        self._closed = True
        logger.info("Gateway closed")

    def _tls_file(self, material: str, suffix: str) -> str:
        path = materialize_pem(material, self.options.tmp, suffix)
        if path is None:
            return material
        self._pem_files.append(path)
        return path

    async def __aenter__(self) -> "GatewayServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
