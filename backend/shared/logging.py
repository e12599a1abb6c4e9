"""structlog setup shared by the relay server and its tools.

All structlog events are handed to stdlib logging, so a single set of root
handlers (stdout, plus an optional per-run file) serves both our loggers and
third-party ones. Output is controlled by two environment variables:

LOG_FORMAT  "json" for one JSON object per line, "console" or unset for
            human-readable output.
LOG_LEVEL   DEBUG, INFO (default), WARNING, ERROR or CRITICAL.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from typing import Any

LOG_FILE_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_FORMATS = ("json", "console", "")
_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

# python-chess logs every UCI line exchanged with an engine at DEBUG.
_QUIET_LOGGERS = ("chess.engine", "httpx", "httpcore", "uvicorn.access")


def _serialize_enums(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Log colors and error codes as their wire values."""
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


_PROCESSORS = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    _serialize_enums,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
    # exceptions are formatted once, by the handler's formatter
    structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
)


def _is_test() -> bool:
    return "pytest" in sys.modules


def _env_choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = os.environ.get(name, default)
    value = value.upper() if name == "LOG_LEVEL" else value.lower()
    if value not in choices:
        allowed = ", ".join(c for c in choices if c) or "unset"
        msg = f"Invalid {name}={value!r}. Must be one of: {allowed}."
        raise ValueError(msg)
    return value


def _formatter(*, json_mode: bool, colors: bool = False) -> structlog.stdlib.ProcessorFormatter:
    if json_mode:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=colors)
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )


def _open_log_file(log_dir: Path | str, *, json_mode: bool) -> logging.FileHandler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    started = datetime.now(tz=UTC).strftime(LOG_FILE_TIMESTAMP_FORMAT)
    handler = logging.FileHandler(directory / f"{started}.log")
    handler.setFormatter(_formatter(json_mode=json_mode))
    return handler


def setup_logging(
    log_dir: Path | str | None = None,
    level: int | None = None,
) -> Path | None:
    """Install stdout logging and, outside tests, a per-run log file.

    Returns the path of the log file, or None when none was opened. Calling
    again replaces the handlers installed by the previous call.
    """
    json_mode = _env_choice("LOG_FORMAT", "", _FORMATS) == "json"
    if level is None:
        level = getattr(logging, _env_choice("LOG_LEVEL", "INFO", _LEVELS))

    structlog.configure(
        processors=list(_PROCESSORS),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(json_mode=json_mode, colors=sys.stdout.isatty()))
    root.addHandler(console)

    if log_dir is None or _is_test():
        return None
    file_handler = _open_log_file(log_dir, json_mode=json_mode)
    root.addHandler(file_handler)
    return Path(file_handler.baseFilename)
