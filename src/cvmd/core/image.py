"""Image catalog.

Directory structure::

    {image_path}/
    └── ubuntu-24.04/
        ├── info.json
        ├── kernel
        ├── initrd.img
        ├── rootfs.iso
        └── hda.img
"""

from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from ..exceptions import InvalidConfigError, InvalidImageError, StorageError
from ..models.image import ImageInfo

INFO_FILE = "info.json"


@dataclass(frozen=True)
class Image:
    """Validated image: resolved file paths plus its info record."""

    path: Path
    info: ImageInfo
    kernel: Path
    initrd: Path
    rootfs: Path
    hda: Path | None = None
    bios: Path | None = None

    @property
    def name(self) -> str:
        return self.path.name

    @classmethod
    def load(cls, path: Path | str) -> "Image":
        """Load and validate an image directory.

        Args:
            path: Image directory

        Returns:
            Loaded image

        Raises:
            InvalidImageError: If info.json is missing or corrupt, or a referenced file is absent
        """
        path = Path(path)
        info_path = path / INFO_FILE
        try:
            info = ImageInfo.model_validate_json(info_path.read_bytes())
        except FileNotFoundError as e:
            raise InvalidImageError(path, f"{INFO_FILE} not found") from e
        except OSError as e:
            raise InvalidImageError(path, f"failed to read {INFO_FILE}: {e}") from e
        except ValidationError as e:
            raise InvalidImageError(path, f"corrupt {INFO_FILE}: {e}") from e

        def _require(name: str) -> Path:
            file = path / name
            if not file.is_file():
                raise InvalidImageError(path, f"missing file {name}")
            return file

        return cls(
            path=path,
            info=info,
            kernel=_require(info.kernel),
            initrd=_require(info.initrd),
            rootfs=_require(info.rootfs),
            hda=_require(info.hda) if info.hda else None,
            bios=_require(info.bios) if info.bios else None,
        )


def image_dir(image_root: Path, name: str) -> Path:
    """Resolve an image name to its directory under image_root.

    Raises:
        InvalidConfigError: If the name is not a single plain path component
    """
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\0" in name:
        raise InvalidConfigError(f"Invalid image name '{name}'")
    return image_root / name


def list_image_names(image_root: Path) -> list[str]:
    """List the names of valid images under image_root.

    Directories that fail validation are skipped.

    Raises:
        StorageError: If the image root exists but cannot be read
    """
    try:
        entries = sorted(image_root.iterdir())
    except FileNotFoundError:
        return []
    except OSError as e:
        raise StorageError(f"Failed to read image directory {image_root}: {e}", image_root) from e

    names = []
    for entry in entries:
        if not entry.is_dir():
            continue
        try:
            Image.load(entry)
        except InvalidImageError:
            continue
        names.append(entry.name)
    return names
