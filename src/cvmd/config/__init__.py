"""Configuration management."""

from .manager import ConfigManager, merge_dicts
from ..models.config import (
    Config,
    CvmConfig,
    GatewayConfig,
    NetworkingConfig,
    SupervisorConfig,
)

__all__ = [
    "Config",
    "ConfigManager",
    "CvmConfig",
    "GatewayConfig",
    "NetworkingConfig",
    "SupervisorConfig",
    "merge_dicts",
]
