# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for hotpack.

Every log entry is a single JSON line with a timestamp, level, source module
and message. Library code never calls print(); the CLI reads the same stream.

How this works:
  - We use Python's standard `logging` module under the hood, with
    JsonFormatter serializing each record into one JSON line.
  - A stdout handler is always attached, a file handler optionally.
  - `get_logger` is the only way to create loggers in the codebase.
  - PEM private key blocks are replaced before anything is written, so a key
    that slips into a message or an `extra` field never reaches a log sink.

The JSON structure looks like:
  {"ts": "2026-...", "level": "INFO", "module": "hotpack.build.orchestrator", "msg": "platform done", ...}
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "hotpack"

_PRIVATE_KEY_BLOCK = re.compile(
    r"-----BEGIN (?:RSA |EC |ENCRYPTED )?PRIVATE KEY-----.*?-----END (?:RSA |EC |ENCRYPTED )?PRIVATE KEY-----",
    re.DOTALL,
)
_REDACTED = "[REDACTED PRIVATE KEY]"

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "relativeCreated",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "pathname",
        "filename",
        "module",
        "levelno",
        "levelname",
        "processName",
        "process",
        "threadName",
        "thread",
        "message",
        "msecs",
        "taskName",
    }
)


def redact(text: str) -> str:
    """Replace any PEM private key block in `text`."""
    return _PRIVATE_KEY_BLOCK.sub(_REDACTED, text)


class JsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Mandatory fields:
      ts: ISO 8601 UTC timestamp
      level: log level name
      module: the logger name (usually the Python module path)
      msg: the formatted message string

    Anything passed through `extra=` is merged in as additional context.
    Exceptions attached with exc_info=True land under "exc".
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)

        return redact(json.dumps(entry, default=str))


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create a structured JSON logger.

    Every module calls this once at import time and keeps the returned
    logger in a module-level `_logger`.

    Args:
        name: Logger name, typically __name__ of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional path to a log file. If provided, logs go to both
                  stdout and the file.

    Returns:
        A configured logging.Logger that outputs structured JSON.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    # get_logger is called repeatedly for the same name in tests and by
    # set_level; only the first call attaches handlers.
    if logger.handlers:
        return logger

    formatter = JsonFormatter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if log_file is not None:
        attach_file_handler(logger, log_file)

    logger.propagate = False

    return logger


def attach_file_handler(logger: logging.Logger, log_file: Path) -> None:
    """Add a JSON file handler to an existing logger."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setFormatter(JsonFormatter())
    logger.addHandler(file_handler)


def set_level(log_level: str, log_file: Optional[Path] = None) -> None:
    """
    Apply a level (and optionally a log file) to every hotpack logger.

    Module loggers are created at import time with the default level; the
    CLI calls this once after parsing --log-level so the whole package
    follows the user's choice.
    """
    level = _resolve_log_level(log_level)
    for name in list(logging.Logger.manager.loggerDict):
        if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
            continue
        logger = logging.getLogger(name)
        logger.setLevel(level)
        if log_file is not None and logger.handlers:
            already = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_file.resolve()
                for h in logger.handlers
            )
            if not already:
                attach_file_handler(logger, log_file)
