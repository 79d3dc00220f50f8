"""Error types raised by the setup pipeline.

Every fatal condition is an instance of :class:`RepoAuthError` carrying the
process exit code the command line front-end should terminate with.
"""

from dataclasses import dataclass
from pathlib import Path

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_FILESYSTEM = 2


class RepoAuthError(Exception):
    """Base class for fatal setup errors."""

    exit_code = EXIT_INVALID


class MissingDependencyError(RepoAuthError):
    """A required executable could not be found on ``PATH``."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Missing required command: {command}")
        self.command = command


class InvalidInputError(RepoAuthError, ValueError):
    """Host or key material supplied by the user is unusable."""


class UserAbortedError(RepoAuthError):
    """The user declined an overwrite confirmation."""

    def __init__(self, message: str = "Aborted by user.") -> None:
        super().__init__(message)


class FilesystemError(RepoAuthError, OSError):
    """Creating a file or directory, or changing its mode, failed."""

    exit_code = EXIT_FILESYSTEM


@dataclass(frozen=True)
class PermissionDrift:
    """Mode mismatch found after setup; reported as a warning only."""

    path: Path
    expected: int
    actual: int

    def __str__(self) -> str:
        return f"{self.path} has mode {self.actual:o}, expected {self.expected:o}"
