"""Core changelog logic.

This package contains the fundamental building blocks:
- Release kinds and their branch mapping
- Debian version parsing, ordering and transitions between kinds
- Changelog entries and the changelog file engine
- Commit log formatting and branch/distribution checks
"""

from __future__ import annotations

from git_dch.core.branches import check_branch
from git_dch.core.changelog import ChangelogFile
from git_dch.core.commits import format_commit_for_changelog, format_commit_log
from git_dch.core.entry import ChangelogEntry
from git_dch.core.release_kind import ReleaseKind
from git_dch.core.version import Version, classify, compare

__all__ = [
    # Changelog
    "ChangelogEntry",
    "ChangelogFile",
    # Versions
    "ReleaseKind",
    "Version",
    "check_branch",
    "classify",
    "compare",
    # Commits
    "format_commit_for_changelog",
    "format_commit_log",
]
