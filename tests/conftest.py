"""Shared fixtures: temporary image/VM roots and an in-memory supervisor."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from cvmd.core import App, VmWorkDir
from cvmd.exceptions import SupervisorError
from cvmd.models import (
    Config,
    CvmConfig,
    Manifest,
    ProcessConfig,
    ProcessInfo,
    ProcessState,
    ProcessStatus,
)


class FakeSupervisor:
    """In-memory stand-in for SupervisorClient."""

    def __init__(self) -> None:
        self.processes: dict[str, ProcessInfo] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_deploy = False

    def add_process(
        self,
        vm_id: str,
        cid: int | None = None,
        status: ProcessStatus = ProcessStatus.RUNNING,
        started_at: int | None = None,
        name: str = "",
    ) -> ProcessInfo:
        info = ProcessInfo(
            config=ProcessConfig(id=vm_id, name=name, command="qemu", cid=cid),
            state=ProcessState(status=status, started=True, started_at=started_at),
        )
        self.processes[vm_id] = info
        return info

    async def deploy(self, config: ProcessConfig) -> None:
        self.calls.append(("deploy", config.id))
        if self.fail_deploy:
            raise SupervisorError(f"deploy {config.id}: boom", "deploy")
        self.processes[config.id] = ProcessInfo(
            config=config,
            state=ProcessState(status=ProcessStatus.RUNNING, started=True, pid=4242),
        )

    async def stop(self, process_id: str) -> None:
        self.calls.append(("stop", process_id))
        if process_id not in self.processes:
            raise SupervisorError(f"stop {process_id}: not found", "stop", status_code=404)
        self.processes[process_id].state.status = ProcessStatus.STOPPED

    async def remove(self, process_id: str) -> None:
        self.calls.append(("remove", process_id))
        self.processes.pop(process_id, None)

    async def info(self, process_id: str) -> ProcessInfo | None:
        return self.processes.get(process_id)

    async def list(self) -> list[ProcessInfo]:
        return list(self.processes.values())

    def deployed(self) -> list[str]:
        return [vm_id for op, vm_id in self.calls if op == "deploy"]


def make_image(root: Path, name: str = "ubuntu-24.04", hda: bool = True, **info) -> Path:
    """Create a minimal valid image directory."""
    path = root / name
    path.mkdir(parents=True, exist_ok=True)
    data = {
        "cmdline": "console=ttyS0",
        "kernel": "kernel",
        "initrd": "initrd.img",
        "rootfs": "rootfs.iso",
        "version": "0.1.0",
    }
    if hda:
        data["hda"] = "hda.img"
    data.update(info)
    for key in ("kernel", "initrd", "rootfs", "hda", "bios"):
        if data.get(key):
            (path / data[key]).write_bytes(b"\0")
    (path / "info.json").write_text(json.dumps(data))
    return path


def make_manifest(vm_id: str = "v1", **overrides) -> Manifest:
    data = {
        "id": vm_id,
        "name": f"vm-{vm_id}",
        "app_id": "a" * 40,
        "vcpu": 2,
        "memory": 2048,
        "disk_size": 10,
        "image": "ubuntu-24.04",
        "port_map": [],
        "created_at_ms": 1_700_000_000_000,
    }
    data.update(overrides)
    return Manifest.model_validate(data)


def write_vm(run_path: Path, manifest: Manifest, started: bool | None = None) -> VmWorkDir:
    """Persist a VM work directory the way register_vm does."""
    work_dir = VmWorkDir(run_path / manifest.id)
    work_dir.save_manifest(manifest)
    if started is not None:
        work_dir.set_started(started)
    return work_dir


@pytest.fixture
def image_root(tmp_path) -> Path:
    root = tmp_path / "images"
    make_image(root)
    return root


@pytest.fixture
def config(tmp_path, image_root) -> Config:
    return Config(
        image_path=image_root,
        run_path=tmp_path / "vm",
        qemu_path=Path("/usr/bin/qemu-system-x86_64"),
        cvm=CvmConfig(cid_start=10, cid_pool_size=4, max_disk_size=100),
    )


@pytest.fixture
def supervisor() -> FakeSupervisor:
    return FakeSupervisor()


@pytest.fixture
def cvm_app(config, supervisor) -> App:
    return App(config, supervisor)
