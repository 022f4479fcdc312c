"""VM runtime configuration and the QEMU process specification."""

import time
from dataclasses import dataclass
from pathlib import Path

from ..models.config import GatewayConfig, NetworkingConfig
from ..models.process import ProcessConfig, ProcessInfo
from ..models.vm import Manifest, VmInfo
from .image import Image
from .workdir import VmWorkDir


@dataclass(frozen=True)
class TdxConfig:
    """Trust-domain settings of a VM."""

    cid: int


@dataclass(frozen=True)
class VmConfig:
    """Runtime configuration of a registered VM.

    Immutable. To change a VM's configuration it is removed and registered again.
    """

    manifest: Manifest
    image: Image
    tdx_config: TdxConfig | None
    networking: NetworkingConfig

    @property
    def id(self) -> str:
        return self.manifest.id

    @property
    def cid(self) -> int | None:
        return self.tdx_config.cid if self.tdx_config else None

    def config_qemu(self, qemu_path: Path, work_dir: VmWorkDir) -> ProcessConfig:
        """Build the supervisor process specification for this VM.

        Args:
            qemu_path: QEMU binary
            work_dir: The VM's work directory

        Returns:
            Process configuration ready to deploy
        """
        manifest = self.manifest
        image = self.image

        args = [
            "-accel", "kvm",
            "-cpu", "host",
            "-smp", str(manifest.vcpu),
            "-m", f"{manifest.memory}M",
            "-nographic",
            "-nodefaults",
            "-serial", f"file:{work_dir.serial_path}",
            "-kernel", str(image.kernel),
            "-initrd", str(image.initrd),
        ]
        if image.bios:
            args += ["-bios", str(image.bios)]
        args += [
            "-drive", f"file={work_dir.hda_path},if=none,id=hd1",
            "-device", "virtio-blk-pci,drive=hd1",
            "-cdrom", str(image.rootfs),
            "-netdev", self._netdev(),
            "-device", "virtio-net-pci,netdev=net0",
        ]
        if self.tdx_config is not None:
            args += [
                "-machine", "q35,kernel-irqchip=split,confidential-guest-support=tdx,hpet=off",
                "-object", "tdx-guest,id=tdx",
                "-device", f"vhost-vsock-pci,guest-cid={self.tdx_config.cid}",
            ]
        args += [
            "-virtfs",
            f"local,path={work_dir.shared_dir},mount_tag=host-shared,"
            "readonly=off,security_model=mapped,id=virtfs0",
        ]
        if image.info.cmdline:
            args += ["-append", image.info.cmdline]

        return ProcessConfig(
            id=manifest.id,
            name=manifest.name,
            command=str(qemu_path),
            args=args,
            cwd=str(work_dir.path),
            stdout=str(work_dir.stdout_path),
            stderr=str(work_dir.stderr_path),
            pidfile=str(work_dir.pid_path),
            cid=self.cid,
            note=f"image={image.name}",
        )

    def _netdev(self) -> str:
        net = self.networking
        parts = ["user", "id=net0", f"net={net.net}", f"dhcpstart={net.dhcp_start}"]
        if net.restrict:
            parts.append("restrict=yes")
        for pm in self.manifest.port_map:
            parts.append(f"hostfwd={pm.protocol.value}:{pm.address}:{pm.from_port}-:{pm.to_port}")
        return ",".join(parts)

    def merge_info(
        self,
        proc: ProcessInfo | None,
        started: bool | None,
        gateway: GatewayConfig,
        now_ms: int | None = None,
    ) -> VmInfo:
        """Merge registry, work directory and supervisor state into a view.

        Args:
            proc: Supervisor record, if any
            started: Work directory started flag, None if unknown
            gateway: Gateway configuration for the application URL
            now_ms: Current time in milliseconds (defaults to the wall clock)

        Returns:
            VM view
        """
        manifest = self.manifest
        info = process_view(manifest.id, proc, now_ms)
        app_url = None
        if gateway.enabled and manifest.app_id:
            app_url = f"https://{manifest.app_id}-{gateway.agent_port}.{gateway.base_domain}:{gateway.port}"
        return info.model_copy(
            update={
                "name": manifest.name,
                "app_id": manifest.app_id,
                "started": started,
                "cid": info.cid if self.cid is None else self.cid,
                "app_url": app_url,
                "image": manifest.image,
                "vcpu": manifest.vcpu,
                "memory": manifest.memory,
                "disk_size": manifest.disk_size,
                "port_map": list(manifest.port_map),
                "created_at_ms": manifest.created_at_ms,
            }
        )


def process_view(vm_id: str, proc: ProcessInfo | None, now_ms: int | None = None) -> VmInfo:
    """Build the supervisor-only part of a VM view."""
    if proc is None:
        return VmInfo(id=vm_id)
    state = proc.state
    running = state.status.is_running
    uptime = None
    if running and state.started_at is not None:
        now_ms = int(time.time() * 1000) if now_ms is None else now_ms
        uptime = max(0, (now_ms - state.started_at) // 1000)
    return VmInfo(
        id=vm_id,
        name=proc.config.name or None,
        status=state.status.value,
        running=running,
        cid=proc.config.cid,
        uptime_secs=uptime,
        exited_at=None if running else state.stopped_at,
    )
