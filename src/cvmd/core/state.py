"""In-memory registry of VMs and the CID pool."""

from .id_pool import IdPool
from .qemu import VmConfig


class AppState:
    """VM table plus CID pool.

    Both are mutated together under the owner's lock; neither is touched
    on its own.
    """

    def __init__(self, cid_pool: IdPool) -> None:
        self.cid_pool = cid_pool
        self._vms: dict[str, VmConfig] = {}

    def __len__(self) -> int:
        return len(self._vms)

    def __contains__(self, vm_id: object) -> bool:
        return vm_id in self._vms

    def add(self, vm: VmConfig) -> None:
        """Insert a VM, replacing any entry with the same id."""
        self._vms[vm.manifest.id] = vm

    def get(self, vm_id: str) -> VmConfig | None:
        return self._vms.get(vm_id)

    def remove(self, vm_id: str) -> VmConfig | None:
        return self._vms.pop(vm_id, None)

    def iter_vms(self) -> list[VmConfig]:
        """Snapshot of registered VMs."""
        return list(self._vms.values())
