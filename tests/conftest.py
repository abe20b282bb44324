"""Shared fixtures for git-dch tests."""

from __future__ import annotations

import itertools
from pathlib import Path
from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
from git import Actor, Repo

from git_dch.vcs.git import GitRepository

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from git.objects import Commit as GitCommit

AUTHOR_NAME = "Jane Doe"
AUTHOR_EMAIL = "jane@example.org"
FULL_HASH = "abcdef0123456789abcdef0123456789abcdef01"


@pytest.fixture
def mock_repo(tmp_path: Path) -> MagicMock:
    """Create a mock GitRepository with an empty history."""
    repo = MagicMock(spec=GitRepository)
    repo.path = tmp_path
    repo.last_commit_hash.side_effect = lambda length=-1: (
        FULL_HASH if length < 0 else FULL_HASH[:length]
    )
    repo.commits_since.return_value = []
    repo.commits_since_time.return_value = []
    repo.commit_at_tag.return_value = ""
    repo.commit_at_tag_object.return_value = ""
    return repo


@pytest.fixture
def git_repo(tmp_path: Path) -> Repo:
    """Create an empty git repository with a local identity."""
    repo = Repo.init(tmp_path)
    with repo.config_writer() as writer:
        writer.set_value("user", "name", AUTHOR_NAME)
        writer.set_value("user", "email", AUTHOR_EMAIL)
    return repo


@pytest.fixture
def commit_file(git_repo: Repo) -> Callable[..., GitCommit]:
    """Return a helper committing a new file with a fixed author date."""
    counter = itertools.count()
    actor = Actor(AUTHOR_NAME, AUTHOR_EMAIL)

    def _commit(
        message: str,
        when: datetime,
        *,
        parents: tuple[GitCommit, ...] | None = None,
        head: bool = True,
    ) -> GitCommit:
        name = f"file{next(counter)}.txt"
        (Path(git_repo.working_tree_dir) / name).write_text(message + "\n")
        git_repo.index.add([name])
        stamp = f"{int(when.timestamp())} +0000"
        return git_repo.index.commit(
            message,
            parent_commits=parents,
            head=head,
            author=actor,
            committer=actor,
            author_date=stamp,
            commit_date=stamp,
        )

    return _commit
