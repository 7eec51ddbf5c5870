"""Structured logging setup.

``configure_logging`` installs a single stream handler on the root logger,
formatting records as JSON in staging/production and as plain text locally.
Modules keep using ``logging.getLogger(__name__)``.
"""

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)

_HANDLER_NAME = "accessilist"


class JSONFormatter(logging.Formatter):
    """Render log records as one JSON object per line.

    Fields passed through ``extra=`` are copied to the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


def payload_scrubber(text: str, max_length: int = 50, mask_char: str = "*") -> str:
    """Shorten free text (notes, task names) before it reaches a log line."""
    if not text:
        return "[empty]"

    if not isinstance(text, str):
        return f"[non-string:{type(text).__name__}]"

    clean = re.sub(r"[\n\r\t]+", " ", text)

    if len(clean) > max_length:
        visible_chars = max_length // 2
        return (
            f"{clean[:visible_chars]}{mask_char * 3}[{len(clean)} chars]"
            f"{mask_char * 3}{clean[-visible_chars:]}"
        )

    return clean


def configure_logging(level: str = "INFO", json_logging: bool = False) -> None:
    """Install the AccessiList handler on the root logger.

    Calling it again replaces the previous handler rather than adding one.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if json_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    root.addHandler(handler)
    root.setLevel(level.upper())
