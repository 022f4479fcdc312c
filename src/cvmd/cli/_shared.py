"""Shared helpers for cvmd commands."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import typer

from ..config import ConfigManager
from ..core import App
from ..models.vm import PortMapping
from ..supervisor import SupervisorClient
from ..utils import print_cancelled, print_info, select_menu, setup_logging


@asynccontextmanager
async def open_app(
    config_path: Path | None,
    log_level: str | None = None,
    reload: bool = True,
) -> AsyncIterator[App]:
    """Load configuration, connect to the supervisor and rebuild the registry.

    Args:
        config_path: Explicit config file
        log_level: Overrides the configured log level
        reload: Rebuild the registry (without starting anything) before yielding
    """
    config = ConfigManager(config_path).load()
    setup_logging(log_level or config.log_level)
    async with SupervisorClient(config.supervisor) as supervisor:
        await supervisor.ping()
        app = App(config, supervisor)
        if reload:
            await app.reload_vms(autostart=False)
        yield app


async def select_vm(app: App) -> str | None:
    """Interactive VM selection menu. Returns the VM id or None if cancelled."""
    vms = await app.list_vms()
    if not vms:
        print_info("No VMs found")
        return None
    items = [f"{vm.id} - {vm.name or 'unnamed'} ({vm.status})" for vm in vms]
    idx = select_menu(items, "  Select a VM:")
    if idx is None:
        print_cancelled()
        return None
    return vms[idx].id


def parse_port(raw: str) -> PortMapping:
    """Parse a port rule of the form [tcp|udp:]ADDRESS:FROM:TO.

    The address may be IPv6; the last two fields are always the ports.
    """
    protocol = "tcp"
    rest = raw
    head, sep, tail = raw.partition(":")
    if sep and head.lower() in ("tcp", "udp"):
        protocol, rest = head.lower(), tail
    parts = rest.rsplit(":", 2)
    if len(parts) != 3:
        raise typer.BadParameter(f"Invalid port mapping '{raw}', expected [tcp|udp:]ADDRESS:FROM:TO")
    address, from_port, to_port = parts
    try:
        return PortMapping.model_validate(
            {
                "address": address.strip("[]"),
                "protocol": protocol,
                "from": int(from_port),
                "to": int(to_port),
            }
        )
    except ValueError as e:
        raise typer.BadParameter(f"Invalid port mapping '{raw}': {e}")
