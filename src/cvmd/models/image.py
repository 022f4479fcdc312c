"""Image models."""

from pydantic import BaseModel, ConfigDict


class ImageInfo(BaseModel):
    """Contents of an image's info.json."""

    model_config = ConfigDict(extra="ignore")

    cmdline: str = ""
    kernel: str
    initrd: str
    rootfs: str
    hda: str | None = None
    bios: str | None = None
    version: str = ""
