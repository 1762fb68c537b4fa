"""
Worker bootstrap materialization.

Every worker process is started against one fixed script path per tmp
directory; the script is written once, before the first spawn.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Set

logger = logging.getLogger("gateway.runtime")

BOOTSTRAP_NAME = "lambda-gateway-worker.py"
_BOOTSTRAP_SOURCE = Path(__file__).with_name("bootstrap.py")

_materialized: Set[str] = set()


def bootstrap_path(tmp_dir: str) -> str:
    return os.path.join(tmp_dir, BOOTSTRAP_NAME)


def materialize_bootstrap(tmp_dir: str) -> str:
    """
    Write the bootstrap script into tmp_dir (once per process) and return its path.
    """
    path = bootstrap_path(tmp_dir)
    if path in _materialized and os.path.exists(path):
        return path

    os.makedirs(tmp_dir, exist_ok=True)
    source = _BOOTSTRAP_SOURCE.read_text(encoding="utf-8")

    # Atomic replace so a concurrently starting gateway never runs half a file.
    fd, staging = tempfile.mkstemp(dir=tmp_dir, prefix=".lambda-gateway-", suffix=".py")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(source)
        os.replace(staging, path)
    except BaseException:
        if os.path.exists(staging):
            os.unlink(staging)
        raise

    _materialized.add(path)
    logger.debug(f"Materialized worker bootstrap at {path}")
    return path
