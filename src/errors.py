"""WireGuard Mesh Manager - Error Taxonomy

Every failure the manager reports is a MeshError. The dispatcher decides
whether one is fatal for the process or only for the current cycle.
"""
from typing import List, Optional


class MeshError(Exception):
    """Base class for all manager errors."""


class ConfigLoadError(MeshError):
    """Static configuration missing or malformed."""


class DatabaseError(MeshError):
    """Connection, query or schema bootstrap failure."""


class MalformedAddress(MeshError):
    """Network address text that cannot be parsed."""


class NotRegistered(MeshError):
    """The local server name has no row in the servers table."""

    def __init__(self, name: str):
        super().__init__(f"Server {name!r} is not registered in the database")
        self.name = name


class UnknownClient(MeshError):
    """Lookup of a client that does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Unknown client {name!r}")
        self.name = name


class CommandFailed(MeshError):
    """An external command exited non-zero or could not be run."""

    def __init__(
        self,
        step: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
        reason: Optional[str] = None,
    ):
        self.step = step
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr
        self.reason = reason
        super().__init__(self._describe())

    def _describe(self) -> str:
        msg = self.step
        if self.command:
            msg += f": `{' '.join(self.command)}`"
        if self.reason:
            msg += f" {self.reason}"
        elif self.returncode is None:
            msg += " did not complete"
        elif self.returncode < 0:
            msg += f" terminated by signal {-self.returncode}"
        else:
            msg += f" failed with exit code {self.returncode}"
        if self.stderr:
            msg += f" ({self.stderr.strip()})"
        return msg


class InterfaceError(CommandFailed):
    """Creating, inspecting or addressing the network device failed."""


class ApplyError(CommandFailed):
    """Applying the WireGuard configuration or hosts file failed."""
