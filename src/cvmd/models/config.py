"""Configuration models."""

from pathlib import Path

from pydantic import BaseModel, Field, model_validator


class CvmConfig(BaseModel):
    """CVM resource limits and the CID range."""

    cid_start: int = Field(default=1000, ge=3)
    cid_pool_size: int = Field(default=1000, ge=1)
    max_disk_size: int = Field(default=100, ge=1, description="Maximum disk size in GB")

    @property
    def cid_end(self) -> int:
        return self.cid_start + self.cid_pool_size


class NetworkingConfig(BaseModel):
    """Guest networking, copied into every VM at registration."""

    mode: str = Field(default="user", pattern="^user$")
    net: str = "10.0.2.0/24"
    dhcp_start: str = "10.0.2.10"
    restrict: bool = False


class GatewayConfig(BaseModel):
    """Public gateway used to build application URLs."""

    enabled: bool = False
    base_domain: str = ""
    port: int = 443
    agent_port: int = 8090

    @model_validator(mode="after")
    def check_domain(self) -> "GatewayConfig":
        """Require a base domain when the gateway is enabled."""
        if self.enabled and not self.base_domain:
            raise ValueError("gateway.base_domain is required when the gateway is enabled")
        return self


class SupervisorConfig(BaseModel):
    """Connection to the process supervisor."""

    sock: Path = Path("./run/supervisor.sock")
    url: str | None = None
    timeout: int = 30


class Config(BaseModel):
    """Main configuration model."""

    image_path: Path = Path("./images")
    run_path: Path = Path("./run/vm")
    qemu_path: Path = Path("/usr/bin/qemu-system-x86_64")
    log_level: str = Field(default="info", pattern="(?i)^(debug|info|warning|error|critical)$")
    cvm: CvmConfig = Field(default_factory=CvmConfig)
    networking: NetworkingConfig = Field(default_factory=NetworkingConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    supervisor: SupervisorConfig = Field(default_factory=SupervisorConfig)

    def abs_path(self, base: Path) -> "Config":
        """Return a copy with relative paths resolved against base.

        Args:
            base: Directory relative paths are anchored to

        Returns:
            Configuration with absolute paths
        """

        def _abs(path: Path) -> Path:
            return path if path.is_absolute() else (base / path).resolve()

        supervisor = self.supervisor.model_copy(update={"sock": _abs(self.supervisor.sock)})
        return self.model_copy(
            update={
                "image_path": _abs(self.image_path),
                "run_path": _abs(self.run_path),
                "supervisor": supervisor,
            }
        )
