"""On-disk state of a single VM.

Layout of a VM work directory::

    {run_path}/{id}/
    ├── vm-manifest.json
    ├── .started
    ├── hda.img
    ├── serial.log
    ├── stdout.log
    ├── stderr.log
    ├── qemu.pid
    └── shared/
        └── app-compose.json
"""

import os
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError

from ..exceptions import InvalidConfigError, StorageError
from ..models.vm import Manifest

MANIFEST_FILE = "vm-manifest.json"
STARTED_FILE = ".started"
SHARED_DIR = "shared"
APP_COMPOSE_FILE = "app-compose.json"


class VmWorkDir:
    """Manifest and started-flag persistence for one VM. No caching."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"VmWorkDir({str(self.path)!r})"

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE

    @property
    def started_path(self) -> Path:
        return self.path / STARTED_FILE

    @property
    def shared_dir(self) -> Path:
        return self.path / SHARED_DIR

    @property
    def app_compose_path(self) -> Path:
        return self.shared_dir / APP_COMPOSE_FILE

    @property
    def hda_path(self) -> Path:
        return self.path / "hda.img"

    @property
    def serial_path(self) -> Path:
        return self.path / "serial.log"

    @property
    def stdout_path(self) -> Path:
        return self.path / "stdout.log"

    @property
    def stderr_path(self) -> Path:
        return self.path / "stderr.log"

    @property
    def pid_path(self) -> Path:
        return self.path / "qemu.pid"

    def exists(self) -> bool:
        return self.path.is_dir()

    def manifest(self) -> Manifest:
        """Read the VM manifest.

        Returns:
            Parsed manifest

        Raises:
            StorageError: If the manifest cannot be read
            InvalidConfigError: If the manifest is corrupt
        """
        try:
            raw = self.manifest_path.read_bytes()
        except FileNotFoundError as e:
            raise StorageError(f"Manifest not found at {self.manifest_path}", self.manifest_path) from e
        except OSError as e:
            raise StorageError(f"Failed to read manifest {self.manifest_path}: {e}", self.manifest_path) from e

        try:
            return Manifest.model_validate_json(raw)
        except ValidationError as e:
            raise InvalidConfigError(f"Corrupt manifest {self.manifest_path}: {e}") from e

    def save_manifest(self, manifest: Manifest) -> None:
        """Write the manifest, creating the directory if needed."""
        data = manifest.model_dump_json(by_alias=True, indent=2)
        self._write_atomic(self.manifest_path, data)

    def save_app_compose(self, compose: str) -> None:
        """Write the application compose document into the shared directory."""
        self._write_atomic(self.app_compose_path, compose)

    def started(self) -> bool:
        """Whether the VM should be running. A missing flag means no.

        Raises:
            StorageError: If the flag exists but cannot be read
        """
        try:
            raw = self.started_path.read_bytes()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to read {self.started_path}: {e}", self.started_path) from e
        try:
            return raw.decode().strip() == "true"
        except UnicodeDecodeError as e:
            raise StorageError(f"Corrupt started flag {self.started_path}", self.started_path) from e

    def set_started(self, started: bool) -> None:
        """Persist the started flag."""
        self._write_atomic(self.started_path, "true" if started else "false")

    def remove(self) -> None:
        """Delete the whole work directory. A missing directory is not an error."""
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to remove VM directory {self.path}: {e}", self.path) from e

    @staticmethod
    def _write_atomic(path: Path, data: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(data)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}", path) from e


def vm_path(run_path: Path, vm_id: str) -> Path:
    """Resolve a VM id to its work directory under run_path.

    Raises:
        InvalidConfigError: If the id is not a single plain path component
    """
    if not vm_id or vm_id in (".", "..") or "/" in vm_id or "\\" in vm_id or "\0" in vm_id:
        raise InvalidConfigError(f"Invalid VM id '{vm_id}'")
    return run_path / vm_id
