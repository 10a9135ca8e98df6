"""Rich console and logging for ctxpack.

    - console: stdout console for tables, panels and command output
    - stderr_console: where log records are rendered, so --json output stays clean
    - setup_logging(): one RichHandler shared by ctxpack and library loggers
    - get_logger(): module loggers under the "ctxpack" namespace
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

APP_LOGGER = "ctxpack"

# Chatty at DEBUG (observer threads, event loop internals); shown from WARNING up.
QUIET_LOGGERS: tuple[str, ...] = ("watchdog", "asyncio")

console = Console()
stderr_console = Console(stderr=True)


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


def _rich_handler(level: int) -> RichHandler:
    # markup stays off: log arguments carry file paths that may contain brackets
    handler = RichHandler(
        console=stderr_console,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.setLevel(level)
    return handler


def setup_logging(level: str | int = logging.INFO, verbose: bool = False) -> logging.Logger:
    """Route log records to stderr through a single Rich handler.

    ``verbose`` forces DEBUG for ctxpack's loggers; the libraries listed in
    QUIET_LOGGERS stay at WARNING either way.
    """
    app_level = logging.DEBUG if verbose else _level_number(level)
    handler = _rich_handler(app_level)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(app_level)
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.handlers.clear()
    app_logger.setLevel(app_level)
    app_logger.propagate = False
    app_logger.addHandler(handler)
    return app_logger


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or APP_LOGGER)
