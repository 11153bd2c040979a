"""Exception hierarchy for Config Server."""

from typing import Any


class ConfigServerError(Exception):
    """Base exception for all Config Server errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ConfigServerError):
    """Invalid or incomplete repository configuration."""


class NoSuchLabelError(ConfigServerError):
    """The requested label is not a branch, tag or ref of the repository."""


class NoSuchRepositoryError(ConfigServerError):
    """The repository URI cannot be reached, read or cloned."""


class SyncError(ConfigServerError):
    """A version-control or IO failure while synchronizing a working copy."""


class GitCommandError(SyncError):
    """A git subprocess exited unsuccessfully."""

    def __init__(
        self,
        args: tuple[str, ...],
        returncode: int | None,
        stderr: str = "",
        timed_out: bool = False,
    ) -> None:
        command = " ".join(("git", *args))
        if timed_out:
            message = f"Timed out: {command}"
        else:
            message = f"Command failed ({returncode}): {command}"
        super().__init__(
            message,
            details={"returncode": returncode, "stderr": stderr.strip()[:500]},
        )
        self.command_args = args
        self.returncode = returncode
        self.stderr = stderr
        self.timed_out = timed_out


class InvalidPropertySourceError(ConfigServerError):
    """A property file in a working copy cannot be parsed."""
