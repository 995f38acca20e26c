"""Logging setup for migratepy.

Every module logs through ``get_logger(__name__)`` under the ``migratepy``
root logger and passes per-user context via ``extra``:

    logger.info("Imported user", extra={"record_number": 3, "subject_id": uid})

Console output is colored, detailed (context appended) or JSON. A log file,
when configured, always receives JSON lines.
"""

import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

ROOT_LOGGER_NAME = "migratepy"
ENV_PREFIX = "MIGRATEPY_LOG_"

# Extra fields copied onto structured output when present
CONTEXT_FIELDS = (
    "record_number",
    "subject_id",
    "remote_id",
    "operation",
    "file_path",
    "status_code",
    "retry_after",
    "duration",
)

# Short labels for the bracketed suffix of detailed output, in display order
DETAIL_LABELS = {
    "record_number": "record",
    "subject_id": "user",
    "remote_id": "workos",
    "operation": "op",
    "status_code": "status",
    "retry_after": "retry_after",
}

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        name: getattr(record, name) for name in CONTEXT_FIELDS if hasattr(record, name)
    }


class ColoredFormatter(logging.Formatter):
    """Colors the level name when stderr is a terminal."""

    def __init__(self, *args: Any, disable_colors: bool = False, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.disable_colors = disable_colors

    def _use_colors(self) -> bool:
        if self.disable_colors:
            return False
        isatty = getattr(sys.stderr, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if color and self._use_colors():
            # Other handlers share the record, so color a copy
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{RESET}"
        return super().format(record)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with any context fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        entry.update(_record_context(record))
        return json.dumps(entry, default=str)


class DetailedFormatter(logging.Formatter):
    """Plain text followed by a ``[key=value, ...]`` context suffix."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = _record_context(record)

        parts = [
            f"{label}={context[name]}"
            for name, label in DETAIL_LABELS.items()
            if name in context
        ]
        if "duration" in context:
            parts.append(f"duration={context['duration']:.3f}s")

        return f"{message} [{', '.join(parts)}]" if parts else message


def _console_formatter(log_format: str, disable_colors: bool) -> logging.Formatter:
    if log_format == "json":
        return StructuredFormatter()
    if log_format == "detailed":
        return DetailedFormatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT)
    return ColoredFormatter(
        fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT, disable_colors=disable_colors
    )


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_format: str = "console",
    disable_colors: bool = False,
) -> logging.Logger:
    """Configure the ``migratepy`` root logger, replacing earlier handlers.

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Optional path that receives JSON lines
        log_format: ``console``, ``detailed`` or ``json`` for stderr
        disable_colors: Never color console output

    Returns:
        logging.Logger: The configured root logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    handlers: list[tuple[logging.Handler, logging.Formatter]] = [
        (
            logging.StreamHandler(sys.stderr),
            _console_formatter(log_format, disable_colors),
        )
    ]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append((logging.FileHandler(log_file), StructuredFormatter()))

    for handler, formatter in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``migratepy`` root.

    Names already under the root are used as-is; others are prefixed.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_from_env() -> logging.Logger:
    """Configure logging from ``MIGRATEPY_LOG_*`` environment variables.

    ``LEVEL`` (default INFO), ``FILE``, ``FORMAT`` (default console) and
    ``DISABLE_COLORS`` (``true`` to disable) are read.
    """
    disable_colors = os.getenv(f"{ENV_PREFIX}DISABLE_COLORS", "false").lower()
    return setup_logging(
        level=os.getenv(f"{ENV_PREFIX}LEVEL", "INFO"),
        log_file=os.getenv(f"{ENV_PREFIX}FILE"),
        log_format=os.getenv(f"{ENV_PREFIX}FORMAT", "console"),
        disable_colors=disable_colors == "true",
    )
