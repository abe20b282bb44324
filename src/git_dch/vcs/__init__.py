"""Version control access."""

from __future__ import annotations

from git_dch.vcs.git import Commit, GitRepository

__all__ = ["Commit", "GitRepository"]
