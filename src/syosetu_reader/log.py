"""Centralized structured logging configuration.

Console output is meant for people watching a translation run; the optional
JSON file keeps every event (including per-task DEBUG detail) for later
inspection.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

VERBOSITY_LEVELS = {-1: logging.WARNING, 1: logging.DEBUG}

# Loggers of HTTP and SDK libraries that would drown out pipeline events
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "h2", "openai")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _handler(stream_or_path, renderer: structlog.types.Processor) -> logging.Handler:
    if isinstance(stream_or_path, Path):
        stream_or_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(stream_or_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream_or_path)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    return handler


def configure_logging(
    verbosity: int = 0,
    log_file: Optional[Path] = None,
    default_level: str = "INFO",
) -> None:
    """Configure structlog + stdlib logging.

    Args:
        verbosity: -1=quiet (WARNING), 0=use ``default_level``, 1=verbose (DEBUG)
        log_file: Optional path to write JSON log lines (always at DEBUG)
        default_level: Level name used when verbosity is 0

    Raises:
        OSError: If the log file cannot be opened for writing
    """
    console_level = VERBOSITY_LEVELS.get(verbosity) or logging.getLevelName(default_level.upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO

    structlog.configure(
        processors=[*_shared_processors(), structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = [_handler(sys.stderr, structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))]
    handlers[0].setLevel(console_level)
    if log_file:
        # Japanese and Chinese text stays readable in the file
        handlers.append(_handler(log_file, structlog.processors.JSONRenderer(ensure_ascii=False)))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if log_file else console_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
