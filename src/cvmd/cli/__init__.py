"""CLI commands."""

from . import config, image, main, vm

__all__ = ["config", "image", "main", "vm"]
