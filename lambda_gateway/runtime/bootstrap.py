"""
Worker bootstrap.

Copied verbatim to the gateway tmp directory and run as
`python <bootstrap> <entry> <handler>` for every invocation. It must stay
standalone: only the standard library is importable here.

Protocol: read one {"type": "event"} line from the channel socket, call the
handler, write one {"type": "result"} line, exit. An exception from the
handler goes to stderr and the process exits 1.
"""

import asyncio
import importlib
import importlib.util
import inspect
import json
import os
import resource
import socket
import sys
import time
import traceback

CHANNEL_FD_ENV = "LAMBDA_GATEWAY_CHANNEL_FD"


class LambdaContext:
    """Subset of the Lambda context object handlers commonly touch."""

    def __init__(self, request_id, function_name, memory_limit_in_mb="128"):
        self.aws_request_id = request_id
        self.function_name = function_name
        self.function_version = "$LATEST"
        self.memory_limit_in_mb = memory_limit_in_mb
        self.log_group_name = f"/aws/lambda/{function_name}"
        self.log_stream_name = "local"
        self.invoked_function_arn = f"arn:aws:lambda:local:000000000000:function:{function_name}"
        self._deadline = time.time() + 900

    def get_remaining_time_in_millis(self):
        return max(0, int((self._deadline - time.time()) * 1000))


def load_handler(entry, handler_name):
    if entry.endswith(".py") or os.path.sep in entry:
        path = os.path.abspath(entry)
        sys.path.insert(0, os.path.dirname(path))
        spec = importlib.util.spec_from_file_location("lambda_function", path)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot load entry {entry}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
    else:
        module = importlib.import_module(entry)

    handler = getattr(module, handler_name, None)
    if not callable(handler):
        raise AttributeError(f"handler '{handler_name}' not found in {entry}")
    return handler


def memory_used_bytes():
    # ru_maxrss is KiB on Linux, bytes on macOS.
    maxrss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    return maxrss if sys.platform == "darwin" else maxrss * 1024


def main(argv):
    entry, handler_name = argv[1], argv[2]
    channel = socket.socket(fileno=int(os.environ[CHANNEL_FD_ENV]))
    stream = channel.makefile("rwb")

    handler = load_handler(entry, handler_name)

    line = stream.readline()
    if not line:
        return 0
    message = json.loads(line)

    function_name = os.path.splitext(os.path.basename(entry))[0]
    context = LambdaContext(
        message["id"], function_name, os.environ.get("AWS_LAMBDA_FUNCTION_MEMORY_SIZE", "128")
    )

    result = handler(message["eventObject"], context)
    if inspect.isawaitable(result):
        result = asyncio.run(result)

    # Handler output must reach the pipe before the gateway kills us.
    sys.stdout.flush()

    reply = {
        "type": "result",
        "id": message["id"],
        "result": result,
        "memoryUsedBytes": memory_used_bytes(),
    }
    stream.write((json.dumps(reply) + "\n").encode("utf-8"))
    stream.flush()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main(sys.argv))
    except Exception:
        sys.stderr.write(traceback.format_exc())
        sys.stderr.flush()
        sys.exit(1)
