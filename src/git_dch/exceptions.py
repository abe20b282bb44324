"""Exception hierarchy for git-dch.

Every error raised by the library derives from GitDchError so the CLI
can report it uniformly and exit non-zero.
"""

from __future__ import annotations


class GitDchError(Exception):
    """Base class for all git-dch errors."""


# Configuration


class ConfigError(GitDchError):
    """Configuration could not be loaded or is invalid."""


class ConfigNotFoundError(ConfigError):
    """A configuration file was requested but does not exist."""


class ConfigValidationError(ConfigError):
    """Configuration values are invalid or conflicting."""


# Versions


class VersionError(GitDchError):
    """Generic version handling error."""


class VersionParseError(VersionError):
    """A version string does not follow the Debian version syntax."""


class VersionBuildError(VersionError):
    """There is no valid transition between two release kinds."""

    def __init__(self, message: str, *, source_kind: str, target_kind: str) -> None:
        super().__init__(message)
        self.source_kind = source_kind
        self.target_kind = target_kind


class VersionOrderError(VersionError):
    """The requested version is not greater than the last one in the changelog."""


# Changelog


class ChangelogError(GitDchError):
    """The changelog cannot be read, built or written."""


class ChangelogParseError(ChangelogError):
    """Existing changelog text is malformed."""

    def __init__(self, message: str, *, line: int | None = None) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class EntryValidationError(ChangelogError):
    """A changelog entry field is empty or contains whitespace."""


# Repository and branches


class RepositoryError(GitDchError):
    """The git repository cannot be opened or queried."""


class BranchError(GitDchError):
    """The version or distribution does not match the active branch."""
