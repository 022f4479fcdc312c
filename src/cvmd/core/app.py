"""VM lifecycle orchestration.

The registry (VM table plus CID pool) is guarded by a single asyncio lock.
The lock only ever covers in-memory bookkeeping; supervisor calls and file
I/O happen outside of it.
"""

import asyncio
import hashlib
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from ..exceptions import (
    ConflictError,
    CvmError,
    IdOutOfRangeError,
    InvalidConfigError,
    StorageError,
    VmNotFoundError,
)
from ..models.config import Config
from ..models.process import ProcessInfo
from ..models.vm import Manifest, VmCreateRequest, VmInfo
from ..supervisor import SupervisorClient
from .id_pool import IdPool
from .image import Image, image_dir, list_image_names
from .qemu import TdxConfig, VmConfig, process_view
from .state import AppState
from .workdir import VmWorkDir, vm_path

logger = logging.getLogger(__name__)


class App:
    """Public VM operations: register, start, stop, remove, reload, list, inspect."""

    def __init__(self, config: Config, supervisor: SupervisorClient) -> None:
        """Initialize the orchestrator.

        Args:
            config: Effective configuration
            supervisor: Connected supervisor client
        """
        self.config = config
        self.supervisor = supervisor
        cid_pool = IdPool(config.cvm.cid_start, config.cvm.cid_end)
        self._state = AppState(cid_pool)
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _locked(self) -> AsyncIterator[AppState]:
        async with self._lock:
            yield self._state

    @property
    def vm_dir(self) -> Path:
        return self.config.run_path

    def work_dir(self, vm_id: str) -> VmWorkDir:
        """Work directory of vm_id.

        Raises:
            InvalidConfigError: If the id would resolve outside the VM root
        """
        return VmWorkDir(vm_path(self.config.run_path, vm_id))

    def _check_disk_size(self, manifest: Manifest) -> None:
        max_disk_size = self.config.cvm.max_disk_size
        if manifest.disk_size > max_disk_size:
            raise InvalidConfigError(
                f"VM {manifest.id}: disk size {manifest.disk_size}G too large, "
                f"max size is {max_disk_size}G"
            )

    async def load_vm(
        self,
        work_dir: Path | str,
        cids_assigned: dict[str, int],
        autostart: bool = True,
    ) -> str:
        """Register the VM persisted in work_dir.

        Args:
            work_dir: VM work directory
            cids_assigned: CIDs already held by live processes, keyed by VM id
            autostart: Start the VM if its started flag is set

        Returns:
            The VM id

        Raises:
            CvmError: If the manifest, image or CID cannot be obtained, or the start fails
        """
        vm_work_dir = VmWorkDir(work_dir)
        manifest = await asyncio.to_thread(vm_work_dir.manifest)
        if vm_work_dir.path.name != manifest.id:
            raise InvalidConfigError(
                f"Manifest id {manifest.id} does not match directory {vm_work_dir.path}"
            )
        image_path = image_dir(self.config.image_path, manifest.image)
        image = await asyncio.to_thread(Image.load, image_path)
        self._check_disk_size(manifest)
        started = await asyncio.to_thread(vm_work_dir.started)

        async with self._locked() as state:
            existing = state.get(manifest.id)
            cid = cids_assigned.get(manifest.id)
            if cid is None and existing is not None:
                cid = existing.cid
            if cid is None:
                cid = state.cid_pool.allocate()
            if existing is not None and existing.cid not in (None, cid):
                state.cid_pool.free(existing.cid)
            vm_config = VmConfig(
                manifest=manifest,
                image=image,
                tdx_config=TdxConfig(cid=cid),
                networking=self.config.networking.model_copy(),
            )
            state.add(vm_config)
        logger.info("Loaded VM %s (%s) with CID %d", manifest.id, manifest.name, cid)

        if started and autostart:
            await self.start_vm(manifest.id)
        return manifest.id

    async def register_vm(self, manifest: Manifest, compose: str | None = None) -> str:
        """Persist a new VM and register it.

        Args:
            manifest: Manifest of the new VM
            compose: Application compose document to share with the guest

        Returns:
            The VM id

        Raises:
            ConflictError: If the id is already registered
            InvalidConfigError: If the id, image name or disk size is invalid
        """
        work_dir = self.work_dir(manifest.id)
        image_dir(self.config.image_path, manifest.image)
        self._check_disk_size(manifest)
        async with self._locked() as state:
            if manifest.id in state:
                raise ConflictError(f"VM {manifest.id} already exists")

        if await asyncio.to_thread(work_dir.exists):
            raise ConflictError(f"VM directory {work_dir.path} already exists")
        try:
            await asyncio.to_thread(work_dir.save_manifest, manifest)
            if compose is not None:
                await asyncio.to_thread(work_dir.save_app_compose, compose)
            await self.load_vm(work_dir.path, {})
        except CvmError:
            await asyncio.to_thread(work_dir.remove)
            raise
        return manifest.id

    async def create_vm(self, request: VmCreateRequest) -> str:
        """Create a new VM from a request. The VM is not started.

        Returns:
            The new VM id
        """
        app_id = hashlib.sha256(request.compose_file.encode()).hexdigest()[:40]
        manifest = Manifest(
            id=str(uuid.uuid4()),
            name=request.name,
            app_id=app_id,
            vcpu=request.vcpu,
            memory=request.memory,
            disk_size=request.disk_size,
            image=request.image,
            port_map=request.ports,
            created_at_ms=int(time.time() * 1000),
        )
        return await self.register_vm(manifest, compose=request.compose_file)

    async def start_vm(self, vm_id: str) -> None:
        """Start a registered VM.

        The started flag is persisted before the deploy is attempted, so a
        crash in between is retried by the next reload.

        Raises:
            VmNotFoundError: If the VM is not registered
            StorageError: If the started flag cannot be written
            SupervisorError: If the deploy fails
        """
        async with self._locked() as state:
            vm_config = state.get(vm_id)
        if vm_config is None:
            raise VmNotFoundError(vm_id)

        work_dir = self.work_dir(vm_id)
        await asyncio.to_thread(work_dir.set_started, True)
        process_config = vm_config.config_qemu(self.config.qemu_path, work_dir)
        await self.supervisor.deploy(process_config)
        logger.info("Started VM %s", vm_id)

    async def stop_vm(self, vm_id: str) -> None:
        """Stop a VM. The started flag is cleared before the stop is issued.

        Raises:
            VmNotFoundError: If neither the registry nor the supervisor knows the VM
            StorageError: If the started flag cannot be written
            SupervisorError: If the stop fails
        """
        async with self._locked() as state:
            registered = vm_id in state
        if registered:
            await asyncio.to_thread(self.work_dir(vm_id).set_started, False)
        elif await self.supervisor.info(vm_id) is None:
            raise VmNotFoundError(vm_id)
        await self.supervisor.stop(vm_id)
        logger.info("Stopped VM %s", vm_id)

    async def remove_vm(self, vm_id: str) -> None:
        """Remove a stopped VM: supervisor record, registry entry, CID and directory.

        There is no rollback. If the directory cannot be deleted the error is
        raised but the VM is already gone from the registry; calling
        remove_vm again retries the deletion.

        Raises:
            ConflictError: If the VM is running
            InvalidConfigError: If the id is not a valid VM id
            VmNotFoundError: If nothing is known about the VM
            SupervisorError: If the supervisor calls fail
            StorageError: If the directory cannot be deleted
        """
        work_dir = self.work_dir(vm_id)
        info = await self.supervisor.info(vm_id)
        if info is not None and info.state.status.is_running:
            raise ConflictError(f"VM {vm_id} is running, stop it first")

        async with self._locked() as state:
            registered = vm_id in state
        if info is None and not registered and not await asyncio.to_thread(work_dir.exists):
            raise VmNotFoundError(vm_id)

        if info is not None:
            await self.supervisor.remove(vm_id)

        async with self._locked() as state:
            vm_config = state.remove(vm_id)
            if vm_config is not None and vm_config.cid is not None:
                state.cid_pool.free(vm_config.cid)

        await asyncio.to_thread(work_dir.remove)
        logger.info("Removed VM %s", vm_id)

    async def reload_vms(self, autostart: bool = True) -> list[str]:
        """Rebuild the registry from the supervisor and the VM directory.

        CIDs held by live processes are occupied before any directory is
        scanned, so fresh allocations cannot collide with them. A VM that
        fails to load is logged and skipped.

        Args:
            autostart: Start VMs whose started flag is set

        Returns:
            Ids of the VMs that were loaded

        Raises:
            SupervisorError: If the supervisor cannot be listed
            StorageError: If the VM directory cannot be read
        """
        processes = await self.supervisor.list()
        occupied_cids = {
            p.config.id: p.config.cid for p in processes if p.config.cid is not None
        }
        async with self._locked() as state:
            for vm_id, cid in occupied_cids.items():
                try:
                    state.cid_pool.occupy(cid)
                except IdOutOfRangeError as e:
                    logger.warning("Live VM %s: %s", vm_id, e)
        if occupied_cids:
            logger.info("Occupied %d CIDs held by live VMs", len(occupied_cids))

        loaded = []
        for path in await asyncio.to_thread(_vm_dirs, self.vm_dir):
            try:
                loaded.append(await self.load_vm(path, occupied_cids, autostart=autostart))
            except CvmError as e:
                logger.error("Failed to load VM from %s: %s", path, e)
        return loaded

    async def _view(self, vm_config: VmConfig, proc: ProcessInfo | None) -> VmInfo:
        try:
            started = await asyncio.to_thread(self.work_dir(vm_config.id).started)
        except StorageError as e:
            logger.warning("VM %s: %s", vm_config.id, e)
            started = None
        return vm_config.merge_info(proc, started, self.config.gateway)

    async def list_vms(self) -> list[VmInfo]:
        """List VMs, registered and supervisor-only, oldest first.

        Returns:
            VM views sorted by creation time
        """
        processes = {p.config.id: p for p in await self.supervisor.list()}
        async with self._locked() as state:
            vms = state.iter_vms()

        infos = []
        for vm_config in vms:
            infos.append(await self._view(vm_config, processes.pop(vm_config.id, None)))
        infos.extend(process_view(vm_id, proc) for vm_id, proc in processes.items())

        infos.sort(key=lambda i: (i.created_at_ms is None, i.created_at_ms or 0, i.id))
        return infos

    async def get_vm(self, vm_id: str) -> VmInfo:
        """Get the view of one VM.

        Raises:
            VmNotFoundError: If neither the registry nor the supervisor knows the VM
        """
        proc = await self.supervisor.info(vm_id)
        async with self._locked() as state:
            vm_config = state.get(vm_id)
        if vm_config is None:
            if proc is None:
                raise VmNotFoundError(vm_id)
            return process_view(vm_id, proc)
        return await self._view(vm_config, proc)

    async def list_image_names(self) -> list[str]:
        """Names of the valid images under the image root."""
        return await asyncio.to_thread(list_image_names, self.config.image_path)

    async def get_image(self, name: str) -> Image:
        """Load one image by name.

        Raises:
            InvalidConfigError: If the name or the image is invalid
        """
        return await asyncio.to_thread(Image.load, image_dir(self.config.image_path, name))


def _vm_dirs(vm_root: Path) -> list[Path]:
    try:
        return sorted(p for p in vm_root.iterdir() if p.is_dir())
    except FileNotFoundError:
        return []
    except OSError as e:
        raise StorageError(f"Failed to read VM directory {vm_root}: {e}", vm_root) from e
