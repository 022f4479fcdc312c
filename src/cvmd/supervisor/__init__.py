"""Supervisor client."""

from .client import SupervisorClient

__all__ = ["SupervisorClient"]
