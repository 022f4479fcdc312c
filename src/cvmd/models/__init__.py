"""Data models."""

from .config import (
    Config,
    CvmConfig,
    GatewayConfig,
    NetworkingConfig,
    SupervisorConfig,
)
from .image import ImageInfo
from .process import (
    ProcessConfig,
    ProcessInfo,
    ProcessState,
    ProcessStatus,
)
from .vm import (
    Manifest,
    PortMapping,
    Protocol,
    VmCreateRequest,
    VmInfo,
)

__all__ = [
    "Config",
    "CvmConfig",
    "GatewayConfig",
    "ImageInfo",
    "Manifest",
    "NetworkingConfig",
    "PortMapping",
    "ProcessConfig",
    "ProcessInfo",
    "ProcessState",
    "ProcessStatus",
    "Protocol",
    "SupervisorConfig",
    "VmCreateRequest",
    "VmInfo",
]
