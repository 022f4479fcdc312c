"""VM management commands."""

from pathlib import Path

import typer
from rich.panel import Panel

from ..exceptions import CvmError
from ..models.vm import VmCreateRequest, VmInfo
from ..utils import (
    confirm,
    console,
    create_table,
    format_memory,
    format_uptime,
    get_status_color,
    print_cancelled,
    print_error,
    print_info,
    print_success,
)
from ..utils.helpers import async_to_sync, ordered_group
from ._shared import open_app, parse_port, select_vm

_CMD_ORDER = ["create", "start", "stop", "remove", "reload", "list", "show"]

app = typer.Typer(help="Manage confidential VMs", no_args_is_help=True, cls=ordered_group(_CMD_ORDER))

ConfigOption = typer.Option(None, "--config", "-c", help="Path to the configuration file")
LogLevelOption = typer.Option(None, "--log-level", "-l", help="Log level override")


def _status(vm: VmInfo) -> str:
    color = get_status_color(vm.status)
    return f"[{color}]{vm.status}[/{color}]"


@app.command("list")
@async_to_sync
async def list_vms(
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
    status: str = typer.Option(None, "--status", "-s", help="Filter by status (running, stopped, exited)"),
) -> None:
    """List all VMs."""
    try:
        async with open_app(config, log_level) as cvm:
            vms = await cvm.list_vms()
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if status:
        vms = [vm for vm in vms if vm.status == status.lower()]
    if not vms:
        print_info("No VMs found")
        return

    table = create_table(
        title="Confidential VMs",
        columns=[
            ("ID", "cyan"),
            ("Name", ""),
            ("Status", ""),
            ("CID", ""),
            ("vCPU", ""),
            ("Memory", ""),
            ("Disk", ""),
            ("Uptime", ""),
            ("Image", ""),
        ],
    )
    for vm in vms:
        table.add_row(
            vm.id,
            vm.name or "-",
            _status(vm),
            str(vm.cid) if vm.cid is not None else "-",
            str(vm.vcpu) if vm.vcpu else "-",
            format_memory(vm.memory) if vm.memory else "-",
            f"{vm.disk_size} GB" if vm.disk_size else "-",
            format_uptime(vm.uptime_secs) if vm.uptime_secs is not None else "-",
            vm.image or "-",
        )
    console.print(table)


@app.command("show")
@async_to_sync
async def show_vm(
    vm_id: str = typer.Argument(None, help="VM ID"),
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Show detailed information about a VM."""
    try:
        async with open_app(config, log_level) as cvm:
            if vm_id is None:
                vm_id = await select_vm(cvm)
                if vm_id is None:
                    return
            vm = await cvm.get_vm(vm_id)
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)

    lines = [
        f"[bold]ID:[/bold]          {vm.id}",
        f"[bold]Name:[/bold]        {vm.name or '-'}",
        f"[bold]App ID:[/bold]      {vm.app_id or '-'}",
        f"[bold]Status:[/bold]      {_status(vm)}",
        f"[bold]Started:[/bold]     {'-' if vm.started is None else ('yes' if vm.started else 'no')}",
    ]
    if vm.uptime_secs is not None:
        lines.append(f"[bold]Uptime:[/bold]      {format_uptime(vm.uptime_secs)}")
    lines += [
        f"[bold]CID:[/bold]         {vm.cid if vm.cid is not None else '-'}",
        f"[bold]Image:[/bold]       {vm.image or '-'}",
        f"[bold]vCPU:[/bold]        {vm.vcpu or '-'}",
        f"[bold]Memory:[/bold]      {format_memory(vm.memory) if vm.memory else '-'}",
        f"[bold]Disk:[/bold]        {f'{vm.disk_size} GB' if vm.disk_size else '-'}",
    ]
    if vm.app_url:
        lines.append(f"[bold]App URL:[/bold]     {vm.app_url}")
    if vm.port_map:
        lines.append("[bold]Ports:[/bold]")
        for pm in vm.port_map:
            lines.append(f"  {pm.protocol.value} {pm.address}:{pm.from_port} -> {pm.to_port}")

    console.print(Panel("\n".join(lines), title=f"VM {vm.name or vm.id}", border_style="cyan"))


@app.command("create")
@async_to_sync
async def create_vm(
    name: str = typer.Option(..., "--name", "-n", help="VM name"),
    image: str = typer.Option(..., "--image", "-i", help="Image name"),
    compose: Path = typer.Option(..., "--compose", help="Application compose file", exists=True, dir_okay=False),
    vcpu: int = typer.Option(1, "--vcpu", help="Number of vCPUs"),
    memory: int = typer.Option(1024, "--memory", "-m", help="Memory in MB"),
    disk_size: int = typer.Option(20, "--disk", "-d", help="Disk size in GB"),
    ports: list[str] = typer.Option(None, "--port", "-p", help="Port mapping [tcp|udp:]ADDRESS:FROM:TO (repeatable)"),
    start: bool = typer.Option(False, "--start", help="Start the VM after creating it"),
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Create a new VM."""
    port_map = [parse_port(p) for p in ports or []]
    try:
        request = VmCreateRequest(
            name=name,
            image=image,
            compose_file=compose.read_text(),
            vcpu=vcpu,
            memory=memory,
            disk_size=disk_size,
            ports=port_map,
        )
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    try:
        async with open_app(config, log_level) as cvm:
            vm_id = await cvm.create_vm(request)
            print_success(f"VM {name} created with id {vm_id}")
            if start:
                await cvm.start_vm(vm_id)
                print_success(f"VM {vm_id} started")
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("start")
@async_to_sync
async def start_vm(
    vm_id: str = typer.Argument(None, help="VM ID"),
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Start a VM."""
    try:
        async with open_app(config, log_level) as cvm:
            if vm_id is None:
                vm_id = await select_vm(cvm)
                if vm_id is None:
                    return
            await cvm.start_vm(vm_id)
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"VM {vm_id} started")


@app.command("stop")
@async_to_sync
async def stop_vm(
    vm_id: str = typer.Argument(None, help="VM ID"),
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Stop a VM."""
    try:
        async with open_app(config, log_level) as cvm:
            if vm_id is None:
                vm_id = await select_vm(cvm)
                if vm_id is None:
                    return
            await cvm.stop_vm(vm_id)
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"VM {vm_id} stopped")


@app.command("remove")
@async_to_sync
async def remove_vm(
    vm_id: str = typer.Argument(None, help="VM ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Remove a stopped VM and its work directory."""
    try:
        async with open_app(config, log_level) as cvm:
            if vm_id is None:
                vm_id = await select_vm(cvm)
                if vm_id is None:
                    return
            if not yes and not confirm(f"Remove VM {vm_id}? This deletes its disk", default=False):
                print_cancelled()
                return
            await cvm.remove_vm(vm_id)
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"VM {vm_id} removed")


@app.command("reload")
@async_to_sync
async def reload_vms(
    config: Path = ConfigOption,
    log_level: str = LogLevelOption,
) -> None:
    """Reconcile VMs with the supervisor, starting those flagged as started."""
    try:
        async with open_app(config, log_level, reload=False) as cvm:
            loaded = await cvm.reload_vms(autostart=True)
    except CvmError as e:
        print_error(str(e))
        raise typer.Exit(1)
    print_success(f"Reloaded {len(loaded)} VM(s)")
