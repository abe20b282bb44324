"""git-dch: maintain a Debian changelog from git history."""

from __future__ import annotations

from git_dch.core.changelog import ChangelogFile
from git_dch.core.entry import ChangelogEntry
from git_dch.core.release_kind import ReleaseKind
from git_dch.core.version import Version
from git_dch.exceptions import GitDchError

__version__ = "0.3.0"

__all__ = [
    "ChangelogEntry",
    "ChangelogFile",
    "GitDchError",
    "ReleaseKind",
    "Version",
    "__version__",
]
