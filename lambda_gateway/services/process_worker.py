"""
ProcessWorker - per-function worker process supervisor

Each invocation runs in a fresh OS process started against the bootstrap
script. The process gets the event over a dedicated socket channel, replies
with exactly one result, and is killed afterwards. Processes are never
reused: a crashing or hanging handler only ever takes its own request down.
"""

import asyncio
import json
import logging
import socket
import sys
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, TextIO

from pydantic import ValidationError

from ..config import config
from ..core.exceptions import ProtocolViolationError, WorkerCrashError, WorkerSpawnError
from ..models.aws_v1 import APIGatewayProxyEvent, ProxyResult
from ..models.function import FunctionEntity
from ..models.ipc import CHANNEL_FD_ENV, EventMessage, ResultMessage
from ..runtime import materialize_bootstrap

logger = logging.getLogger("gateway.worker")

PIPE_CHUNK_SIZE = 64 * 1024
# Results are buffered whole; this only bounds a single channel line.
CHANNEL_READ_LIMIT = 64 * 1024 * 1024
MIB = 1024 * 1024


def _timestamp(at: Optional[datetime] = None) -> str:
    at = at or datetime.now(timezone.utc)
    return at.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ProcessWorker:
    """
    Supervisor for one registered function.

    Tracks the processes it spawned so close_all() can kill them; the set is
    never used to pick a process for a new invocation.
    """

    def __init__(
        self,
        function: FunctionEntity,
        env: Optional[Dict[str, str]] = None,
        tmp: Optional[str] = None,
        bin: Optional[str] = None,
        silent: bool = False,
    ):
        self.function = function
        self.env: Dict[str, str] = {**(env or {}), **function.environment}
        self.bin = bin or sys.executable
        default_stdout = None if silent else sys.stdout
        default_stderr = None if silent else sys.stderr
        self.stdout: Optional[TextIO] = (
            function.stdout if function.stdout is not None else default_stdout
        )
        self.stderr: Optional[TextIO] = (
            function.stderr if function.stderr is not None else default_stderr
        )
        self.bootstrap = materialize_bootstrap(tmp or config.GATEWAY_TMP_DIR)
        self._procs: Set[asyncio.subprocess.Process] = set()

    @property
    def processes(self) -> List[asyncio.subprocess.Process]:
        """Processes currently running for this function."""
        return list(self._procs)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    async def invoke(self, request_id: str, event: APIGatewayProxyEvent) -> ProxyResult:
        """
        Run one invocation in a new process and return its result.

        Raises:
            WorkerSpawnError: the process or its channel could not be set up
            WorkerCrashError: the process exited before sending a result
            ProtocolViolationError: the process sent a malformed message
        """
        self._write(self.stdout, f"START\tRequestId:{request_id}\tVersion:$LATEST\n")
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        parent_sock, child_sock = socket.socketpair()
        try:
            proc = await asyncio.create_subprocess_exec(
                self.bin,
                self.bootstrap,
                self.function.entry,
                self.function.handler,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={
                    **self.env,
                    "AWS_LAMBDA_FUNCTION_MEMORY_SIZE": str(self.function.memory_size),
                    CHANNEL_FD_ENV: str(child_sock.fileno()),
                },
                pass_fds=(child_sock.fileno(),),
            )
        except OSError as e:
            parent_sock.close()
            logger.error(f"Failed to spawn worker for {self.function.entry}: {e}")
            raise WorkerSpawnError(self.function.entry, e) from e
        finally:
            child_sock.close()

        self._procs.add(proc)
        logger.debug(
            f"Spawned worker pid={proc.pid} for {self.function.path}",
            extra={"pid": proc.pid, "entry": self.function.entry},
        )

        captured: List[bytes] = []
        pumps = [
            asyncio.create_task(self._pump(proc.stdout, self.stdout, request_id, "INFO")),
            asyncio.create_task(
                self._pump(proc.stderr, self.stderr, request_id, "ERR", captured)
            ),
        ]

        try:
            line = await self._exchange(parent_sock, request_id, event)

            if not line:
                returncode = await proc.wait()
                await asyncio.gather(*pumps)
                raise self._crash(request_id, started_at, returncode, captured)

            message = self._decode(line, request_id)
            await self._terminate(proc, pumps)

            duration = int((time.monotonic() - start) * 1000)
            self._write(
                self.stdout,
                f"END\tRequestId: {message.id}\n"
                f"REPORT\tRequestId: {message.id}\t"
                "InitDuration: 0 ms\t"
                f"Duration: {duration} ms\t"
                f"BilledDuration: {duration} ms\t"
                f"Memory Size: {self.function.memory_size} MB "
                f"MaxMemoryUsed {round(message.memoryUsedBytes / MIB)} MB\n",
            )
            return message.result

        except Exception:
            await self._terminate(proc, pumps)
            raise
        finally:
            if proc.returncode is None:
                proc.kill()
            self._procs.discard(proc)

    async def _exchange(
        self,
        sock: socket.socket,
        request_id: str,
        event: APIGatewayProxyEvent,
    ) -> bytes:
        """Send the event and read one reply line; b"" means the channel closed."""
        try:
            reader, writer = await asyncio.open_unix_connection(
                sock=sock, limit=CHANNEL_READ_LIMIT
            )
        except OSError as e:
            sock.close()
            raise WorkerSpawnError(self.function.entry, e) from e

        try:
            try:
                writer.write(EventMessage(id=request_id, eventObject=event.model_dump()).encode())
                await writer.drain()
            except ConnectionError:
                # Worker already gone; its exit status decides the outcome.
                return b""

            try:
                return await reader.readline()
            except ConnectionError:
                return b""
            except ValueError as e:
                raise ProtocolViolationError(f"message exceeds channel limit: {e}", request_id)
            except OSError as e:
                raise WorkerSpawnError(self.function.entry, e) from e
        finally:
            writer.close()

    def _decode(self, line: bytes, request_id: str) -> ResultMessage:
        try:
            message = ResultMessage.decode(line)
        except ValidationError as e:
            logger.critical(
                f"Malformed message from worker for {self.function.path}: {e}",
                extra={"request_id": request_id, "raw": line[:200].decode("utf-8", "replace")},
            )
            raise ProtocolViolationError(str(e), request_id) from e

        if message.id != request_id:
            logger.critical(
                f"Unknown response id from worker: {message.id}",
                extra={"request_id": request_id},
            )
            raise ProtocolViolationError(
                f"unknown response id from child process: {message.id}", request_id
            )
        return message

    def _crash(
        self,
        request_id: str,
        started_at: datetime,
        returncode: int,
        captured: List[bytes],
    ) -> WorkerCrashError:
        first = captured[0] if captured else b""
        stderr_text = first.decode("utf-8", errors="replace").rstrip("\n")
        if returncode != 0:
            message = "Internal Server Error"
        else:
            message = "worker exited without a result"

        lambda_error = {
            "errorType": "Error",
            "errorMessage": message,
            "stack": stderr_text.split("\n"),
        }
        self._write(
            self.stdout,
            f"{_timestamp(started_at)}\t{request_id}\tERROR\t{json.dumps(lambda_error)}\n",
        )
        logger.warning(
            f"Worker for {self.function.path} exited with code {returncode} before a result",
            extra={"request_id": request_id, "exit_code": returncode},
        )
        return WorkerCrashError(message, stderr_text.split("\n"), exit_code=returncode)

    # ------------------------------------------------------------------
    # Stdio plumbing
    # ------------------------------------------------------------------

    async def _pump(
        self,
        stream: Optional[asyncio.StreamReader],
        sink: Optional[TextIO],
        request_id: str,
        severity: str,
        first_chunk: Optional[List[bytes]] = None,
    ) -> None:
        """Copy a child stream to its sink line by line, keeping the first chunk if asked."""
        if stream is None:
            return

        pending = b""
        while True:
            chunk = await stream.read(PIPE_CHUNK_SIZE)
            if not chunk:
                break
            if first_chunk is not None and not first_chunk:
                first_chunk.append(chunk)

            pending += chunk
            *lines, pending = pending.split(b"\n")
            for line in lines:
                self._write_line(sink, request_id, severity, line)

        if pending:
            self._write_line(sink, request_id, severity, pending)

    def _write_line(
        self, sink: Optional[TextIO], request_id: str, severity: str, line: bytes
    ) -> None:
        text = line.decode("utf-8", errors="replace")
        self._write(sink, f"{_timestamp()} {request_id} {severity} {text}\n")

    @staticmethod
    def _write(sink: Optional[TextIO], text: str) -> None:
        if sink is None:
            return
        sink.write(text)
        flush = getattr(sink, "flush", None)
        if flush:
            flush()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process, pumps: List[asyncio.Task]) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
        await asyncio.gather(*pumps)

    async def close_all(self) -> None:
        """Kill every tracked process, in flight or not, and wait for them to exit."""
        procs = list(self._procs)
        self._procs.clear()

        for proc in procs:
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass

        if procs:
            await asyncio.gather(*(proc.wait() for proc in procs))
            logger.info(f"Killed {len(procs)} worker(s) for {self.function.path}")
