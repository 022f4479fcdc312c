"""VM registry and lifecycle orchestration."""

from .app import App
from .id_pool import IdPool
from .image import Image, image_dir, list_image_names
from .qemu import TdxConfig, VmConfig
from .state import AppState
from .workdir import VmWorkDir, vm_path

__all__ = [
    "App",
    "AppState",
    "IdPool",
    "Image",
    "TdxConfig",
    "VmConfig",
    "VmWorkDir",
    "image_dir",
    "list_image_names",
    "vm_path",
]
