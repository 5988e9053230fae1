"""Exception types shared across git-scope."""

from __future__ import annotations


class GitScopeError(Exception):
    """Base class for recoverable git-scope errors."""


class RootNotFoundError(GitScopeError):
    """A configured root directory does not exist."""


class StatusQueryError(GitScopeError):
    """A git status or log query failed for one repository."""

    def __init__(self, message: str, command: str = "", output: str = "") -> None:
        """Initialize error."""
        super().__init__(message)
        self.command = command
        self.output = output


class ScanError(GitScopeError):
    """The scan itself could not be carried out."""


class CacheIOError(GitScopeError):
    """Reading or writing the result cache failed."""


class InvalidPathError(GitScopeError):
    """A workspace path is empty, missing, or not a directory."""


class EditorLaunchError(GitScopeError):
    """The configured editor command is malformed or not installed."""
