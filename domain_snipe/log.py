"""Logging setup: rich-rendered records on stderr."""

import logging

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "domain_snipe"


def configure_logging(verbose: int = 0, console: Console | None = None) -> logging.Logger:
    """Attach a RichHandler to the package logger.

    verbose 0 shows warnings, 1 info, 2+ debug (including httpx).
    """
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose >= 2,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose >= 2 else logging.WARNING)
    return logger
