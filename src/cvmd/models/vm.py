"""VM models."""

from enum import Enum
from ipaddress import IPv4Address, IPv6Address

from pydantic import BaseModel, ConfigDict, Field


class Protocol(str, Enum):
    """Port mapping protocol."""

    TCP = "tcp"
    UDP = "udp"


class PortMapping(BaseModel):
    """One exposed port rule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    address: IPv4Address | IPv6Address
    protocol: Protocol = Protocol.TCP
    from_port: int = Field(..., alias="from", ge=0, le=65535)
    to_port: int = Field(..., alias="to", ge=0, le=65535)


class Manifest(BaseModel):
    """Durable identity and requested resources of a VM."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str
    app_id: str = ""
    vcpu: int = Field(..., ge=1)
    memory: int = Field(..., ge=1, description="Memory in MB")
    disk_size: int = Field(..., ge=1, description="Disk size in GB")
    image: str
    port_map: list[PortMapping] = Field(default_factory=list)
    created_at_ms: int = 0


class VmCreateRequest(BaseModel):
    """Parameters for creating a new VM."""

    name: str = Field(..., min_length=1)
    image: str
    compose_file: str = Field(..., description="Application compose document")
    vcpu: int = Field(1, ge=1)
    memory: int = Field(1024, ge=1, description="Memory in MB")
    disk_size: int = Field(20, ge=1, description="Disk size in GB")
    ports: list[PortMapping] = Field(default_factory=list)


class VmInfo(BaseModel):
    """Merged view of a VM: registry, work directory and supervisor state.

    Manifest-derived fields stay optional so that a VM known to only one
    side still yields a view.
    """

    id: str
    name: str | None = None
    app_id: str | None = None
    status: str = "stopped"
    running: bool = False
    started: bool | None = None
    cid: int | None = None
    uptime_secs: int | None = None
    exited_at: int | None = None
    app_url: str | None = None
    image: str | None = None
    vcpu: int | None = None
    memory: int | None = None
    disk_size: int | None = None
    port_map: list[PortMapping] = Field(default_factory=list)
    created_at_ms: int | None = None
