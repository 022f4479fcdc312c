"""Utility functions and helpers."""

from .helpers import (
    async_to_sync,
    ordered_group,
)
from .log import setup_logging
from .menu import select_menu
from .output import (
    confirm,
    console,
    create_table,
    err_console,
    format_memory,
    format_uptime,
    get_status_color,
    print_cancelled,
    print_error,
    print_info,
    print_success,
)

__all__ = [
    "async_to_sync",
    "confirm",
    "console",
    "create_table",
    "err_console",
    "format_memory",
    "format_uptime",
    "get_status_color",
    "ordered_group",
    "print_cancelled",
    "print_error",
    "print_info",
    "print_success",
    "select_menu",
    "setup_logging",
]
