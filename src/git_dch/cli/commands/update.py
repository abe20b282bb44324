"""Implementation of the changelog update.

Reads the changelog, works out the next version for the active branch,
prepends a new entry built from the git history and writes the file back.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape

from git_dch.core.branches import check_branch
from git_dch.core.changelog import ChangelogFile
from git_dch.core.release_kind import ReleaseKind
from git_dch.core.version import Version
from git_dch.exceptions import (
    BranchError,
    EntryValidationError,
    GitDchError,
    RepositoryError,
    VersionError,
)
from git_dch.vcs import GitRepository

if TYPE_CHECKING:
    from collections.abc import Mapping

    from rich.console import Console

    from git_dch.config import DchConfig
    from git_dch.core.entry import ChangelogEntry

logger = logging.getLogger(__name__)


def resolve_author(
    repo: GitRepository,
    use_git_author: bool,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Return the ``Name <email>`` used in the entry trailer.

    Unless ``use_git_author`` is set, DEBFULLNAME/DEBEMAIL (or NAME/EMAIL)
    are preferred when both a name and an email are available.

    Raises:
        EntryValidationError: If no name or no email can be found
        RepositoryError: If the git configuration cannot be read
    """
    environ = os.environ if environ is None else environ

    name = email = ""
    if not use_git_author:
        name = environ.get("DEBFULLNAME") or environ.get("NAME", "")
        email = environ.get("DEBEMAIL") or environ.get("EMAIL", "")

    if not (name and email):
        name = repo.config_value("user", "name")
        email = repo.config_value("user", "email")
        if not name:
            raise EntryValidationError("value of user.name in git configuration is empty")
        if not email:
            raise EntryValidationError("value of user.email in git configuration is empty")

    return f"{name} <{email}>"


def resolve_version(changelog: ChangelogFile, repo: GitRepository, config: DchConfig) -> Version:
    """Work out the version to add and check it against the active branch.

    Raises:
        BranchError: If the branch is unknown or does not fit the version
        VersionError: If the version cannot be parsed or built
    """
    text = config.new_version or str(changelog.last_version())
    version = Version.parse(text)

    branch = config.force_branch
    if not branch:
        try:
            branch = repo.active_branch()
        except RepositoryError as e:
            raise BranchError(
                f"cannot get active branch from git: {e}\n"
                "Use the --force-branch parameter to fix this error"
            ) from e

    if not config.snapshot:
        try:
            version = version.build(ReleaseKind.from_branch(branch), repo)
        except VersionError as e:
            raise VersionError(f"cannot build a valid version for branch {branch}: {e}") from e

    logger.debug("Resolved version %s on branch %s", version, branch)
    check_branch(
        version,
        branch,
        config.distribution,
        force_distribution=config.force_distribution,
    )
    return version


def add_entry(
    changelog: ChangelogFile,
    version: Version,
    author: str,
    config: DchConfig,
) -> ChangelogEntry:
    """Dispatch to the snapshot, release or plain addition."""
    if config.snapshot:
        return changelog.add_snapshot(
            version,
            since=config.since,
            author=author,
            auto=config.auto,
            ignore_merges=config.ignore_merges,
        )

    add = changelog.add_release if config.release else changelog.add
    return add(
        version,
        since=config.since,
        urgency=config.urgency,
        target=config.distribution,
        author=author,
        auto=config.auto,
        ignore_merges=config.ignore_merges,
        purge_testing=config.purge_testing,
        purge_unstable=config.purge_unstable,
    )


def run_update(
    config: DchConfig,
    console: Console,
    err_console: Console,
    cwd: Path | None = None,
) -> Version:
    """Run the update.

    Args:
        config: Options for this run
        console: Console for standard output
        err_console: Console for error output
        cwd: Working directory, defaults to the current one

    Returns:
        The version of the added entry
    """
    project_path = cwd or Path.cwd()
    changelog_path = config.changelog_path
    if not changelog_path.is_absolute():
        changelog_path = project_path / changelog_path

    # Open repository and resolve the author
    try:
        repo = GitRepository(project_path)
        author = resolve_author(repo, config.git_author)
    except GitDchError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    # Read the changelog
    try:
        changelog = ChangelogFile.from_path(changelog_path, repo=repo, cwd=project_path)
    except GitDchError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    # Add the new entry
    try:
        version = resolve_version(changelog, repo, config)
        entry = add_entry(changelog, version, author, config)
        changelog.write_to_path(changelog_path)
    except GitDchError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    console.print(f"New version: [bold]{entry.version}[/]", highlight=False)
    return entry.version
