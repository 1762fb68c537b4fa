"""
Gateway logging.

CustomJsonFormatter renders one JSON object per record and stamps it with the
correlation id of the invocation being served. setup_logging loads the YAML
dictConfig named by LOG_CONFIG_PATH, expanding ${VAR} placeholders first.
"""

import json
import logging
import logging.config
import os
import string
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import yaml

from .request_context import get_request_id

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class CustomJsonFormatter(logging.Formatter):
    """
    Output keys: _time, level, logger, message, request_id (while an
    invocation is active), every `extra=` field, and exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            entry["request_id"] = request_id

        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_") or key in entry:
                continue
            entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(config_path: Optional[str] = None, level: Optional[str] = None) -> None:
    """
    Configure logging for an embedding process.

    Falls back to logging.basicConfig when the config file does not exist.
    """
    config_path = config_path if config_path is not None else os.getenv("LOG_CONFIG_PATH", "")
    level = level or os.getenv("LOG_LEVEL", "INFO")

    if not config_path or not os.path.exists(config_path):
        logging.basicConfig(level=level)
        return

    with open(config_path, "r", encoding="utf-8") as f:
        raw = f.read()

    variables = dict(os.environ)
    variables.setdefault("LOG_LEVEL", level)
    logging.config.dictConfig(yaml.safe_load(string.Template(raw).safe_substitute(variables)))
