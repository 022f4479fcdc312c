"""Custom exceptions for cvmd."""

from pathlib import Path


class CvmError(Exception):
    """Base exception for cvmd."""

    pass


class ConfigError(CvmError):
    """Configuration related errors."""

    pass


class VmNotFoundError(CvmError):
    """Unknown VM id."""

    def __init__(self, vm_id: str, message: str | None = None) -> None:
        """Initialize VM not found error.

        Args:
            vm_id: VM identifier
            message: Optional message overriding the default
        """
        super().__init__(message or f"VM '{vm_id}' not found")
        self.vm_id = vm_id


class PoolError(CvmError):
    """Identifier pool errors."""

    pass


class PoolExhaustedError(PoolError):
    """No free identifier left in the pool."""

    def __init__(self, start: int, end: int) -> None:
        super().__init__(f"CID pool exhausted, no free id in [{start}, {end})")
        self.start = start
        self.end = end


class IdOutOfRangeError(PoolError):
    """Identifier outside of the pool range."""

    def __init__(self, value: int, start: int, end: int) -> None:
        super().__init__(f"CID {value} is outside of the pool range [{start}, {end})")
        self.value = value
        self.start = start
        self.end = end


class InvalidConfigError(CvmError):
    """Invalid VM configuration, manifest or image."""

    pass


class InvalidImageError(InvalidConfigError):
    """Image directory is missing files or carries a broken info record."""

    def __init__(self, path: Path | str, reason: str) -> None:
        """Initialize invalid image error.

        Args:
            path: Image directory
            reason: What is wrong with it
        """
        super().__init__(f"Invalid image at {path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class ConflictError(CvmError):
    """Operation conflicts with the current VM state."""

    pass


class StorageError(CvmError):
    """Filesystem errors on manifest, flag or directory operations."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class SupervisorError(CvmError):
    """Supervisor RPC errors."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialize supervisor error.

        Args:
            message: Error message
            operation: Supervisor operation that failed (deploy, stop, ...)
            status_code: HTTP status code if applicable
        """
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class SupervisorConnectionError(SupervisorError):
    """Supervisor unreachable."""

    pass


class SupervisorTimeoutError(SupervisorError):
    """Supervisor request timeout."""

    pass
