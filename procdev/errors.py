"""Error types raised by procdev when a run cannot start."""


class ProcdevError(Exception):
    """Base class for run-level failures reported to the user."""


class ProcfileError(ProcdevError):
    """Raised when the process definitions cannot be read or are empty."""


class UsageError(ProcdevError):
    """Raised when the command line cannot be understood."""


class SpawnError(ProcdevError):
    """Raised when the OS could not create one of the processes."""

    def __init__(self, name: str, command: str, reason: str) -> None:
        super().__init__(f"Failed to start process '{name}' ({command}): {reason}")
        self.name = name
        self.command = command
        self.reason = reason


__all__ = ["ProcdevError", "ProcfileError", "UsageError", "SpawnError"]
