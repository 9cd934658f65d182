"""Sink exceptions."""

from pathlib import Path
from typing import Any


class SinkError(Exception):
    """Base exception for Sink errors."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigError(SinkError):
    """Base exception for configuration errors."""


class ConfigLoadError(ConfigError):
    """Raised when configuration cannot be loaded or parsed."""

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        """Initialize with error message and optional location context."""
        super().__init__(message)
        self.path: Path | None = path
        self.line: int | None = line
        self.column: int | None = column


class ConfigValidationError(ConfigError):
    """Raised when configuration fails validation."""

    def __init__(
        self,
        message: str,
        *,
        key: str,
        value: Any,  # pyright: ignore[reportExplicitAny]
        expected: str,
        source: str | None = None,
    ) -> None:
        """Initialize with error message and validation context."""
        super().__init__(message)
        self.key: str = key
        self.value: Any = value  # pyright: ignore[reportExplicitAny]
        self.expected: str = expected
        self.source: str | None = source


# =============================================================================
# Repository Exceptions
# =============================================================================


class RepositoryError(SinkError):
    """Base exception for repository errors."""


class RepositoryNotFoundError(RepositoryError, KeyError):
    """Raised when a repository id is not part of the current scan.

    Attributes:
        repo_id: The id that could not be resolved.
    """

    def __init__(self, message: str, *, repo_id: str | None = None) -> None:
        """Initialize with error message and repository context.

        Args:
            message: Human-readable error message.
            repo_id: The id that could not be resolved.
        """
        super().__init__(message)
        self.repo_id: str | None = repo_id

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class GitCommandError(RepositoryError):
    """Raised when a git subprocess exits with a non-zero status.

    Attributes:
        command: The git arguments that were executed.
        exit_code: Process exit code, or None if git could not be run.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        message: str,
        *,
        command: tuple[str, ...] = (),
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        """Initialize with error message and process context.

        Args:
            message: Human-readable error message.
            command: The git arguments that were executed.
            exit_code: Process exit code, or None if git could not be run.
            stderr: Captured standard error.
        """
        super().__init__(message)
        self.command: tuple[str, ...] = command
        self.exit_code: int | None = exit_code
        self.stderr: str = stderr


class PathOutsideRepositoryError(RepositoryError, ValueError):
    """Raised when a file path resolves outside the repository working copy.

    Attributes:
        file_path: The rejected path as given by the caller.
    """

    def __init__(self, message: str, *, file_path: str) -> None:
        """Initialize with error message and the rejected path."""
        super().__init__(message)
        self.file_path: str = file_path


# =============================================================================
# Synchronization Exceptions
# =============================================================================


class WatchError(SinkError):
    """Raised when a repository's metadata directory cannot be observed.

    Attributes:
        repo_id: The repository whose watch failed.
        path: The metadata directory that could not be observed.
    """

    def __init__(
        self,
        message: str,
        *,
        repo_id: str | None = None,
        path: Path | None = None,
    ) -> None:
        """Initialize with error message and watch context."""
        super().__init__(message)
        self.repo_id: str | None = repo_id
        self.path: Path | None = path


class DiscoveryError(SinkError):
    """Raised when the discovery transport cannot advertise or browse."""


class PeerFetchError(SinkError):
    """Raised when a peer's repository list cannot be retrieved.

    Only raised internally by the fetcher; callers see an absent result.

    Attributes:
        peer_id: The peer that failed.
        cause: The underlying exception.
    """

    def __init__(
        self,
        message: str,
        *,
        peer_id: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and peer context.

        Args:
            message: Human-readable error message.
            peer_id: The peer that failed.
            cause: The underlying exception.
        """
        super().__init__(message)
        self.peer_id: str | None = peer_id
        self.cause: Exception | None = cause


class ChannelError(SinkError):
    """Raised when the update channel is used in an invalid state."""
