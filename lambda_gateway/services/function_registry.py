"""
Function registry.

Keeps the ordered function table and the ProcessWorker that backs each
entry. Registration order is routing order.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from ..models.function import FunctionEntity
from .process_worker import ProcessWorker

logger = logging.getLogger("gateway.function_registry")


class FunctionRegistry:
    def __init__(
        self,
        env: Optional[Dict[str, str]] = None,
        tmp: Optional[str] = None,
        bin: Optional[str] = None,
        silent: bool = False,
    ):
        self.env = env or {}
        self.tmp = tmp
        self.bin = bin
        self.silent = silent
        self._entries: List[Tuple[FunctionEntity, ProcessWorker]] = []

    def register(self, function: FunctionEntity) -> ProcessWorker:
        """
        Add a function and create its worker supervisor.

        Returns:
            The ProcessWorker serving this function
        """
        worker = ProcessWorker(
            function, env=self.env, tmp=self.tmp, bin=self.bin, silent=self.silent
        )
        self._entries.append((function, worker))
        logger.info(f"Registered {function.path} -> {function.entry}:{function.handler}")
        return worker

    @property
    def functions(self) -> List[FunctionEntity]:
        return [function for function, _ in self._entries]

    @property
    def workers(self) -> List[ProcessWorker]:
        return [worker for _, worker in self._entries]

    def get_worker(self, function: FunctionEntity) -> Optional[ProcessWorker]:
        for registered, worker in self._entries:
            if registered is function:
                return worker
        return None

    async def close_all(self) -> None:
        """Kill the running processes of every function."""
        await asyncio.gather(*(worker.close_all() for worker in self.workers))
