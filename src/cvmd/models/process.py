"""Supervisor process models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProcessStatus(str, Enum):
    """Process status reported by the supervisor."""

    RUNNING = "running"
    STOPPED = "stopped"
    EXITED = "exited"
    ERROR = "error"

    @property
    def is_running(self) -> bool:
        return self is ProcessStatus.RUNNING


class ProcessConfig(BaseModel):
    """Launch specification for one supervised process."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    cwd: str = ""
    stdout: str = ""
    stderr: str = ""
    pidfile: str = ""
    cid: int | None = None
    note: str = ""


class ProcessState(BaseModel):
    """Live state of a supervised process."""

    model_config = ConfigDict(extra="ignore")

    status: ProcessStatus = ProcessStatus.STOPPED
    exit_code: int | None = None
    error: str | None = None
    started: bool = False
    pid: int | None = None
    started_at: int | None = None
    stopped_at: int | None = None


class ProcessInfo(BaseModel):
    """Process record as listed by the supervisor."""

    model_config = ConfigDict(extra="ignore")

    config: ProcessConfig
    state: ProcessState = Field(default_factory=ProcessState)
