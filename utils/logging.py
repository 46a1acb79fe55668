"""Central logging configuration for the application."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from loguru import logger

DEFAULT_LOG_FILE = Path(__file__).resolve().parent.parent / "app.log"
LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} [{level}] {extra[module]}: {message}"
)


class InterceptHandler(logging.Handler):
    """Forward standard library log records (uvicorn, redis) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.opt(exception=record.exc_info).bind(module=record.name).log(
            level, record.getMessage()
        )


# setup_logging routine


def setup_logging(
    log_file: str | Path | None = None, level: str = "INFO"
) -> None:
    """Configure loguru sinks for console and a rotating log file."""
    path = Path(log_file) if log_file else DEFAULT_LOG_FILE
    logger.remove()
    logger.configure(extra={"module": "-"})
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    logger.add(
        str(path),
        level=level,
        format=LOG_FORMAT,
        rotation="1 MB",
        retention=5,
        enqueue=True,
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
