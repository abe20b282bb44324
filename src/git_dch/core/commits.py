"""Commit log text assembly for changelog bodies."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from git_dch.vcs.git import Commit


def format_commit_for_changelog(
    commit: Commit,
    *,
    include_author: bool = False,
    include_sha: bool = False,
    full: bool = False,
) -> str:
    """Format a commit as a changelog bullet.

    Args:
        commit: Commit to format
        include_author: Append the author name to the first line
        include_sha: Prefix the first line with the abbreviated hash
        full: Keep the whole message, indenting continuation lines

    Returns:
        Text such as ``"  * fix crash on empty input\\n"``
    """
    lines = commit.message.rstrip("\n").split("\n")

    first = commit.subject
    if include_sha:
        first = f"[{commit.short_sha}] {first}"
    if include_author:
        first = f"{first} ({commit.author_name})"

    out = [f"  * {first}"]
    if full:
        out.extend(f"    {line}" if line else "" for line in lines[1:])
    return "\n".join(out) + "\n"


def format_commit_log(
    commits: Iterable[Commit],
    *,
    include_author: bool = False,
    include_sha: bool = False,
    full: bool = False,
) -> str:
    """Concatenate formatted commits in traversal order."""
    return "".join(
        format_commit_for_changelog(
            c,
            include_author=include_author,
            include_sha=include_sha,
            full=full,
        )
        for c in commits
    )
