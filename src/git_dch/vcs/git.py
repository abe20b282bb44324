"""Read-only git repository queries backed by GitPython.

The changelog engine only needs a narrow view of the repository: the
current commit hash, commit ranges bounded by a reference or a point in
time, tag and reference resolution, the active branch and git config
values. Nothing here mutates the repository.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from git import Repo
from git.exc import (
    BadName,
    BadObject,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from git_dch.exceptions import RepositoryError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Commit:
    """A commit as seen by the changelog builder."""

    sha: str
    message: str
    author_name: str
    author_email: str
    date: datetime
    parent_count: int = 1

    @property
    def is_merge(self) -> bool:
        return self.parent_count > 1

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


def filter_merge_commits(commits: Iterable[Commit]) -> list[Commit]:
    """Drop merge commits (more than one parent)."""
    return [c for c in commits if not c.is_merge]


class GitRepository:
    """Query facade over a local git repository."""

    def __init__(self, path: Path | str | None = None) -> None:
        """Open the repository containing ``path``.

        Args:
            path: Any directory inside the work tree, defaults to the
                current working directory

        Raises:
            RepositoryError: If no repository can be opened
        """
        search_path = Path(path) if path is not None else Path.cwd()
        try:
            self._repo = Repo(search_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryError(f"cannot open git repository at {search_path}: {e}") from e

        self.path = Path(self._repo.working_tree_dir or search_path)

    def last_commit_hash(self, length: int = -1) -> str:
        """Return the hash of the HEAD commit.

        Args:
            length: Number of hex characters to keep; negative or too
                large values return the full hash

        Raises:
            RepositoryError: If HEAD does not point to a commit
        """
        try:
            sha = self._repo.head.commit.hexsha
        except ValueError as e:
            raise RepositoryError(f"cannot read the last commit: {e}") from e

        if length < 0 or length > len(sha):
            length = len(sha)
        return sha[:length]

    def commits(self) -> list[Commit]:
        """All commits reachable from HEAD, newest first by author date."""
        try:
            raw = list(self._repo.iter_commits("HEAD"))
        except (GitCommandError, ValueError) as e:
            raise RepositoryError(f"cannot read the commit history: {e}") from e

        commits = [
            Commit(
                sha=c.hexsha,
                message=c.message if isinstance(c.message, str) else c.message.decode(),
                author_name=c.author.name or "",
                author_email=c.author.email or "",
                date=c.authored_datetime,
                parent_count=len(c.parents),
            )
            for c in raw
        ]
        commits.sort(key=lambda c: c.date, reverse=True)
        return commits

    def commits_since(self, reference: str | None, *, ignore_merges: bool = False) -> list[Commit]:
        """Commits newer than ``reference``, newest first.

        The reference may be a tag, a branch or ref name, a commit hash or
        any revision expression git understands. The referenced commit
        itself is excluded. When the reference cannot be resolved, or is
        empty, the whole history is returned.
        """
        stop = ""
        if reference:
            stop = (
                self.resolve_tag_to_commit(reference)
                or self.commit_at_reference(reference)
                or self._rev_parse(reference)
                or reference
            )
        logger.debug("Collecting commits since %r (stop at %s)", reference, stop or "root")
        return self._commits_until(lambda c: bool(stop) and c.sha == stop, ignore_merges)

    def commits_since_time(self, when: datetime, *, ignore_merges: bool = False) -> list[Commit]:
        """Commits authored after ``when``, newest first."""
        return self._commits_until(lambda c: c.date <= when, ignore_merges)

    def _commits_until(self, boundary: Callable[[Commit], bool], ignore_merges: bool) -> list[Commit]:
        """Newest-first commits up to, not including, the first boundary commit."""
        commits = list(itertools.takewhile(lambda c: not boundary(c), self.commits()))
        if ignore_merges:
            commits = filter_merge_commits(commits)
        return commits

    def commit_at_tag(self, *names: str) -> str:
        """Commit hash of the first lightweight tag named like one of ``names``."""
        for tag in self._repo.tags:
            if tag.tag is None and tag.name in names:
                return tag.commit.hexsha
        return ""

    def commit_at_tag_object(self, *names: str) -> str:
        """Commit hash targeted by the first annotated tag named like one of ``names``."""
        for tag in self._repo.tags:
            tag_object = tag.tag
            if tag_object is None or tag.name not in names:
                continue
            if tag_object.object.type == "commit":
                return tag_object.object.hexsha
        return ""

    def resolve_tag_to_commit(self, *names: str) -> str:
        """Commit hash for a tag, trying lightweight tags before annotated ones."""
        return self.commit_at_tag(*names) or self.commit_at_tag_object(*names)

    def commit_at_reference(self, name: str) -> str:
        """Commit hash of a branch or ref, following symbolic refs like HEAD."""
        if not name:
            return ""

        if name == "HEAD":
            try:
                return self._repo.head.commit.hexsha
            except ValueError:
                return ""

        for ref in self._repo.references:
            if name in (ref.name, ref.path):
                try:
                    return ref.commit.hexsha
                except ValueError:
                    return ""
        return ""

    def active_branch(self) -> str:
        """Name of the checked-out branch.

        Raises:
            RepositoryError: If HEAD is detached
        """
        try:
            return self._repo.active_branch.name
        except TypeError as e:
            raise RepositoryError("the active commit is not a valid branch") from e

    def config_value(self, section: str, key: str) -> str:
        """Read a value from the git config, empty when unset."""
        try:
            reader = self._repo.config_reader()
            value = reader.get_value(section, key, default="")
        except (OSError, ValueError) as e:
            raise RepositoryError(f"cannot get git configuration value: {e}") from e
        return str(value)

    def _rev_parse(self, expression: str) -> str:
        try:
            obj = self._repo.rev_parse(expression)
        except (BadName, BadObject, GitCommandError, ValueError, IndexError):
            return ""
        if obj.type == "tag":
            obj = obj.object
        return obj.hexsha if obj.type == "commit" else ""
