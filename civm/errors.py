"""Project-specific exception types."""

from __future__ import annotations


class CIVMError(RuntimeError):
    """Base error for domain-level civm failures."""


class ConfigError(CIVMError):
    """Raised when the VM config is missing, malformed, or invalid."""


class ProvisioningError(CIVMError):
    """Raised when disk or seed assets cannot be prepared."""


class HypervisorError(CIVMError):
    """Raised when libvirt refuses to define or start the domain."""


class ProtocolError(CIVMError):
    """Raised when the guest agent returns a malformed or incomplete response."""


class AgentTimeoutError(CIVMError, TimeoutError):
    """Raised when the guest agent does not answer before the deadline."""


class UnsafePathError(CIVMError):
    """Raised when a recursive delete targets an unsafe path."""


class GuestCommandError(CIVMError):
    """Raised when the guest command exits with a nonzero code."""

    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        super().__init__(f'guest command failed with exit code {exit_code}')
