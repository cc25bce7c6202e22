from __future__ import annotations

from typing import Optional, Sequence


class LifecycleError(RuntimeError):
    """Base class for every failure surfaced by the service lifecycle."""

    def __init__(self, message: str, *, stage: Optional[str] = None, service: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.service = service


class ProjectError(LifecycleError):
    """Raised when the project descriptor cannot be parsed."""


class ResolutionError(LifecycleError):
    """Raised when no framework or target backend can be resolved for a service."""


class UnsupportedHostError(ResolutionError):
    """Raised when a service targets an experimental host that is not enabled."""

    def __init__(self, host: str, feature: str, enable_command: str, *, service: Optional[str] = None) -> None:
        super().__init__(
            f"service host '{host}' is currently in alpha and needs to be enabled explicitly."
            f" Run `{enable_command}` to enable the feature '{feature}'.",
            service=service,
        )
        self.host = host
        self.feature = feature
        self.enable_command = enable_command


class InitializationError(LifecycleError):
    """Raised when the one-time setup of a backend fails."""


class StageExecutionError(LifecycleError):
    """Raised when a backend restore/build/package/deploy call fails."""


class DestinationResolutionError(LifecycleError):
    """Raised when the deployment destination cannot be determined."""


class RelocationError(LifecycleError):
    """Raised when a packaged artifact cannot be moved to its output path."""


class CancellationError(LifecycleError):
    """Raised when a caller cancels a running stage."""


class CommandError(LifecycleError):
    """Raised when a subprocess exits with a non-zero status code."""

    def __init__(self, command: Sequence[str], returncode: int, stdout: str, stderr: str) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command {' '.join(command)} failed with exit code {returncode}\nSTDOUT:{stdout}\nSTDERR:{stderr}"
        )
