"""Structured logging setup shared by the CLI and library callers."""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from catalogo.config import get_config

# Third-party loggers that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Route structlog and stdlib logging to stderr (and logs/catalogo.log).

    Args:
        level: Overrides LOG_LEVEL from config
        log_format: "json" or "text"; overrides JSON_LOGS from config
    """
    config = get_config()
    level = (level or config.log_level).upper()
    log_format = log_format or config.log_format

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(log_format),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdout carries command output (e.g. `catalogo export`)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_dir = Path("logs")
    if log_dir.is_dir():
        handlers.append(logging.FileHandler(log_dir / "catalogo.log", encoding="utf-8"))

    logging.basicConfig(format="%(message)s", handlers=handlers, level=level, force=True)

    if level != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
