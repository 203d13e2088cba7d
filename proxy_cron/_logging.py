from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

__all__ = ("setup_logging",)

CONFIGURED_LOGGERS = ("proxy_cron", "uvicorn")
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"
PLAIN_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] {%(filename)s:%(lineno)d %(funcName)s} %(message)s"


def setup_logging(debug: bool = False, colors: bool = True) -> None:
    """
    Configure the ``proxy_cron`` and ``uvicorn`` loggers.

    Args:
        debug: Log at DEBUG level and include the caller's file, line and function.
        colors: Colorize output with rich. When False a plain stderr handler is used.
    """
    handler: logging.Handler
    if colors:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=debug,
            rich_tracebacks=True,
            log_time_format=f"[{DATE_FORMAT}]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(DEBUG_FORMAT if debug else PLAIN_FORMAT, datefmt=DATE_FORMAT))

    level = logging.DEBUG if debug else logging.INFO
    for name in CONFIGURED_LOGGERS:
        logger = logging.getLogger(name)
        logger.handlers = [handler]
        logger.setLevel(level)
        logger.propagate = False
