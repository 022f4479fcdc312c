"""Logging setup."""

import logging

from rich.logging import RichHandler

from .output import err_console


def setup_logging(level: str = "info") -> None:
    """Route log records to stderr through Rich.

    Args:
        level: Log level name (debug, info, warning, error, critical)
    """
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
