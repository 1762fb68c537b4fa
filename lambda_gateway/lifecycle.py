"""
Where: lambda_gateway/lifecycle.py
What: Listener startup/shutdown on top of uvicorn.
Why: Keep server.py focused on gateway assembly while owning socket lifecycle here.
"""

import asyncio
import logging
import os
import tempfile
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from .config import config
from .http_protocol import RawHeaderH11Protocol

logger = logging.getLogger("gateway.lifecycle")

PEM_MARKER = "-----BEGIN"


def materialize_pem(material: str, tmp_dir: str, suffix: str) -> Optional[str]:
    """
    uvicorn wants key/cert files. Callers may hand over PEM text instead;
    write it to a private temp file and return that path.

    Returns:
        Path of a new temp file, or None when material already is a file path
    """
    if not material.lstrip().startswith(PEM_MARKER):
        return None
    fd, path = tempfile.mkstemp(dir=tmp_dir, prefix="lambda-gateway-", suffix=suffix)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(material)
    return path


class Listener:
    """
    One HTTP or HTTPS listener serving the gateway app.

    Binds its socket up front so port 0 resolves to a real port before
    the server starts accepting.
    """

    def __init__(
        self,
        app: FastAPI,
        host: str,
        port: int,
        ssl_keyfile: Optional[str] = None,
        ssl_certfile: Optional[str] = None,
        name: str = "http",
    ):
        self.app = app
        self.host = host
        self.port = port
        self.ssl_keyfile = ssl_keyfile
        self.ssl_certfile = ssl_certfile
        self.name = name
        self.server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> int:
        """Bind and start serving. Returns the bound port."""
        uv_config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            ssl_keyfile=self.ssl_keyfile,
            ssl_certfile=self.ssl_certfile,
            # One app behind two listeners: no lifespan, gateway owns startup/shutdown.
            http=RawHeaderH11Protocol,
            lifespan="off",
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=config.GATEWAY_SHUTDOWN_TIMEOUT,
        )
        sock = uv_config.bind_socket()
        self.port = sock.getsockname()[1]

        self.server = uvicorn.Server(uv_config)
        self._task = asyncio.create_task(self.server.serve(sockets=[sock]))

        while not self.server.started:
            if self._task.done():
                sock.close()
                # Surface the startup failure.
                self._task.result()
                raise RuntimeError(f"{self.name} listener exited during startup")
            await asyncio.sleep(0.01)

        logger.info(f"{self.name} listener bound to {self.host}:{self.port}")
        return self.port

    async def stop(self) -> None:
        """Stop accepting connections and wait for the server to finish."""
        if self.server is None or self._task is None:
            return
        self.server.should_exit = True
        try:
            await self._task
        finally:
            self.server = None
            self._task = None
        logger.info(f"{self.name} listener on port {self.port} closed")


async def stop_listeners(listeners: List[Optional[Listener]]) -> None:
    await asyncio.gather(*(listener.stop() for listener in listeners if listener is not None))
