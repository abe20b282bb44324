"""Debian changelog file handling and entry assembly.

This module owns the ordered list of changelog entries and decides, given
the last entry and the current git history, what the next version must be
and which commits feed the new entry. Entries are kept most recent first;
new entries are always prepended.

Three kinds of additions are supported:

- ``add``: a plain entry with the commit log since the previous one
- ``add_snapshot``: an UNRELEASED snapshot entry carrying the current
  commit hash in a banner line, so the next run can resume from it
- ``add_release``: a release entry; old snapshot entries are dropped first
"""

from __future__ import annotations

import logging
import os
import re
import stat
import tempfile
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from git_dch.core.commits import format_commit_log
from git_dch.core.entry import ChangelogEntry, is_token_valid, normalize_changes, parse_timestamp
from git_dch.core.release_kind import ReleaseKind
from git_dch.core.version import (
    Version,
    compare,
    compare_snapshots,
    snapshot_release,
    with_snapshot_release,
)
from git_dch.exceptions import (
    ChangelogError,
    ChangelogParseError,
    EntryValidationError,
    GitDchError,
    VersionBuildError,
    VersionError,
    VersionOrderError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from typing import TextIO

    from git_dch.vcs.git import Commit, GitRepository

logger = logging.getLogger(__name__)

SNAPSHOT_TARGET = "UNRELEASED"
SNAPSHOT_URGENCY = "low"

_HEADER_RE = re.compile(r"^(\S+) \(([^()\s]+)\) ([^;]+);(.*)$")
_TRAILER_RE = re.compile(r"^ -- (.+?)  (\S.*)$")
_ARGUMENT_SPLIT_RE = re.compile(r"[,\s]+")
_SNAPSHOT_BANNER_RE = re.compile(r"\s{2}\*\* SNAPSHOT build @([a-f0-9]{40}) \*\*")


def parse_entries(text: str) -> list[ChangelogEntry]:
    """Parse changelog text into entries, most recent first.

    Raises:
        ChangelogParseError: If the text is not a well-formed changelog
    """
    lines = text.splitlines()
    entries = []

    i = 0
    while i < len(lines):
        if not lines[i].strip():
            i += 1
            continue

        header = _HEADER_RE.match(lines[i])
        if header is None:
            raise ChangelogParseError("expected a changelog entry header", line=i + 1)
        header_line = i + 1

        i += 1
        body = []
        while i < len(lines) and not lines[i].startswith(" -- "):
            if _HEADER_RE.match(lines[i]):
                raise ChangelogParseError("entry has no trailer line", line=header_line)
            body.append(lines[i])
            i += 1
        if i == len(lines):
            raise ChangelogParseError("entry has no trailer line", line=header_line)

        trailer = _TRAILER_RE.match(lines[i])
        if trailer is None:
            raise ChangelogParseError("malformed trailer line", line=i + 1)

        entries.append(_build_entry(header, body, trailer, header_line, i + 1))
        i += 1

    return entries


def _build_entry(
    header: re.Match[str],
    body: list[str],
    trailer: re.Match[str],
    header_line: int,
    trailer_line: int,
) -> ChangelogEntry:
    source, version_text, target, argument_text = header.groups()

    try:
        version = Version.parse(version_text)
    except VersionError as e:
        raise ChangelogParseError(str(e), line=header_line) from e

    arguments = {}
    for token in _ARGUMENT_SPLIT_RE.split(argument_text.strip()):
        if not token:
            continue
        key, sep, value = token.partition("=")
        if not sep:
            raise ChangelogParseError(f"malformed argument '{token}'", line=header_line)
        arguments[key] = value
    arguments.setdefault("urgency", "medium")

    try:
        when = parse_timestamp(trailer.group(2))
    except (TypeError, ValueError) as e:
        raise ChangelogParseError(f"invalid date '{trailer.group(2)}'", line=trailer_line) from e

    entry = ChangelogEntry(
        source=source,
        version=version,
        target=target.strip(),
        arguments=arguments,
        changes=normalize_changes("\n".join(body) + "\n"),
        author=trailer.group(1),
        when=when,
    )
    if not entry.is_valid():
        raise ChangelogParseError(f"invalid entry for {source} {version}", line=header_line)
    return entry


class ChangelogFile:
    """The ordered entries of a Debian changelog and the rules to extend it.

    The repository is only needed to build snapshot versions and to collect
    commit logs; parsing and rendering work without one.
    """

    def __init__(
        self,
        entries: Iterable[ChangelogEntry] = (),
        *,
        repo: GitRepository | None = None,
        cwd: Path | None = None,
    ) -> None:
        self._entries = list(entries)
        self._repo = repo
        self._cwd = cwd

    @classmethod
    def parse(
        cls,
        text: str,
        *,
        repo: GitRepository | None = None,
        cwd: Path | None = None,
    ) -> ChangelogFile:
        return cls(parse_entries(text), repo=repo, cwd=cwd)

    @classmethod
    def from_path(
        cls,
        path: Path,
        *,
        repo: GitRepository | None = None,
        cwd: Path | None = None,
    ) -> ChangelogFile:
        """Read and parse a changelog file.

        Raises:
            ChangelogError: If the file cannot be read
            ChangelogParseError: If its contents are malformed
        """
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ChangelogError(f"cannot open changelog file {path}: {e}") from e
        return cls.parse(text, repo=repo, cwd=cwd)

    # Inspection

    @property
    def entries(self) -> tuple[ChangelogEntry, ...]:
        return tuple(self._entries)

    @property
    def head(self) -> ChangelogEntry | None:
        """Most recent entry, or None for an empty changelog."""
        return self._entries[0] if self._entries else None

    @property
    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ChangelogEntry]:
        return iter(self._entries)

    def last_version(self) -> Version:
        """Version of the most recent entry.

        Raises:
            ChangelogError: If the changelog is empty
        """
        if self.head is None:
            raise ChangelogError("the changelog file is empty, cannot get last release version")
        return self.head.version

    # Output

    def render(self) -> str:
        return "\n".join(entry.render() for entry in self._entries)

    def __str__(self) -> str:
        return self.render()

    def write(self, stream: TextIO) -> int:
        return stream.write(self.render())

    def write_to_path(self, path: Path) -> None:
        """Write the changelog, replacing the file only once fully written.

        A symlinked changelog is written through the link and an existing
        file keeps its permission bits.
        """
        text = self.render()
        path = path.resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            mode = stat.S_IMODE(path.stat().st_mode)
        except FileNotFoundError:
            mode = 0o666 & ~_current_umask()

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(text)
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise ChangelogError(f"cannot write changelog file {path}: {e}") from e

    # Version computation

    def compute_new_version(self, requested: Version) -> Version:
        """Work out the version of the next entry.

        A version equal to the last one is turned into the next revision;
        a smaller one is rejected.

        Raises:
            VersionOrderError: If the requested version is lower than the last one
            VersionError: If the revision cannot be incremented
        """
        head = self.head
        if head is None:
            if requested.is_snapshot:
                return replace(requested, revision="")
            if requested.is_staging or requested.is_development or requested.is_native:
                return replace(requested, revision="1")
            return requested

        old = head.version

        # Only an upstream version was given: compare the native parts
        if not requested.is_snapshot and not requested.revision:
            result = compare(requested.extract_native(), old.extract_native())
            if result < 0:
                raise _order_error(requested, old)
            if result == 0:
                return old.increment_revision(self._repo)
            return requested

        # Snapshot after snapshot: the hash is irrelevant, the counter is taken from the old one
        if requested.is_snapshot and old.is_snapshot:
            aligned = with_snapshot_release(requested, snapshot_release(old))
            result = compare_snapshots(aligned, old)
            if result < 0:
                raise _order_error(requested, old)
            if result == 0:
                return aligned.increment_revision(self._repo)
            return requested

        candidate = replace(requested, revision=old.revision)
        result = compare(candidate, old)
        if result < 0:
            raise _order_error(requested, old)
        if result == 0:
            return candidate.increment_revision(self._repo)
        return requested

    def _compute_source_name(self, source: str) -> str:
        if not source:
            if self.head is not None:
                source = self.head.source
            else:
                source = (self._cwd or Path.cwd()).name
        if not is_token_valid(source):
            raise EntryValidationError(f"source name '{source}' is empty or contains spaces")
        return source

    def _compute_target_name(self, target: str) -> str:
        if not target and self.head is not None:
            target = self.head.target
        if not is_token_valid(target):
            raise EntryValidationError(f"target '{target}' is empty or contains spaces")
        return target

    def _compute_author(self, author: str) -> str:
        if not author and self.head is not None:
            author = self.head.author
        if not author:
            raise EntryValidationError("author is an empty string")
        return author

    # Commit logs

    def _require_repo(self) -> GitRepository:
        if self._repo is None:
            raise ChangelogError("a git repository is required to build the changelog text")
        return self._repo

    def _commits(self, since: str, auto: bool, ignore_merges: bool) -> list[Commit]:
        repo = self._require_repo()

        if since:
            return repo.commits_since(since, ignore_merges=ignore_merges)

        head = self.head
        if head is None or not auto:
            return repo.commits_since(None, ignore_merges=ignore_merges)

        version = head.version

        # 1) resume after the commit recorded in the snapshot banner
        if version.kind is ReleaseKind.SNAPSHOT:
            hashes = _SNAPSHOT_BANNER_RE.findall(head.changes)
            if len(hashes) != 1:
                raise ChangelogError(
                    f"cannot find a valid commit hash in the last snapshot entry {version}"
                )
            logger.debug("Resuming from snapshot banner commit %s", hashes[0])
            return repo.commits_since(hashes[0], ignore_merges=ignore_merges)

        # 2) resume after the commit the last version is tagged on
        names = (str(version), version.upstream)
        commit = repo.commit_at_tag_object(*names) or repo.commit_at_tag(*names)
        if commit:
            logger.debug("Resuming from tagged commit %s", commit)
            return repo.commits_since(commit, ignore_merges=ignore_merges)

        # 3) resume after the last entry's timestamp
        logger.debug("Resuming from commits after %s", head.when.isoformat())
        return repo.commits_since_time(head.when, ignore_merges=ignore_merges)

    def get_log(self, since: str = "", auto: bool = False, ignore_merges: bool = False) -> str:
        """Changelog bullets for the commits of the new entry.

        Args:
            since: Explicit reference to start after (tag, branch, hash)
            auto: Detect the start from the last entry when ``since`` is empty
            ignore_merges: Leave merge commits out

        Returns:
            One ``  * subject`` line per commit, newest first
        """
        return format_commit_log(self._commits(since, auto, ignore_merges))

    def build_release_log(
        self,
        since: str,
        version: Version,
        auto: bool = False,
        ignore_merges: bool = False,
    ) -> str:
        banner = replace(version, epoch=0, revision="")
        return f"  ** Release version {banner}\n\n" + self.get_log(since, auto, ignore_merges)

    def build_snapshot_log(self, since: str, auto: bool = False, ignore_merges: bool = False) -> str:
        commit_hash = self._require_repo().last_commit_hash(-1)
        return f"  ** SNAPSHOT build @{commit_hash} **\n\n" + self.get_log(
            since, auto, ignore_merges
        )

    # Purging

    def purge_releases(self, testing: bool, unstable: bool) -> None:
        """Drop staging entries when ``testing``, development entries when ``unstable``."""
        kept = []
        for entry in self._entries:
            kind = entry.version.kind
            if (testing and kind is ReleaseKind.STAGING) or (
                unstable and kind is ReleaseKind.DEVELOPMENT
            ):
                logger.debug("Purging %s entry %s", kind, entry.version)
                continue
            kept.append(entry)
        self._entries = kept

    def purge_snapshot_releases(self) -> None:
        """Drop every snapshot entry."""
        self._entries = [e for e in self._entries if e.version.kind is not ReleaseKind.SNAPSHOT]

    # Additions

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        saved = list(self._entries)
        try:
            yield
        except GitDchError:
            self._entries = saved
            raise

    def add_simple(
        self,
        source: str,
        version: Version,
        urgency: str,
        target: str,
        changes: str,
        author: str,
    ) -> ChangelogEntry:
        """Prepend an entry, filling source, target and author from the last entry.

        Raises:
            EntryValidationError: If a resolved field is empty or contains spaces
            VersionOrderError: If the version is lower than the last one
        """
        source = self._compute_source_name(source)
        new_version = self.compute_new_version(version)
        target = self._compute_target_name(target)
        author = self._compute_author(author)

        entry = ChangelogEntry.create(source, new_version, target, urgency, changes, author)
        self._entries.insert(0, entry)
        logger.debug("Added entry %s %s %s", source, new_version, target)
        return entry

    def add(
        self,
        version: Version,
        *,
        since: str = "",
        source: str = "",
        urgency: str = "",
        target: str = "",
        author: str = "",
        auto: bool = False,
        ignore_merges: bool = False,
        purge_testing: bool = False,
        purge_unstable: bool = False,
    ) -> ChangelogEntry:
        """Add a plain entry with the commit log since the previous one."""
        with self._transaction():
            self.purge_releases(purge_testing, purge_unstable)
            changes = self.get_log(since, auto, ignore_merges)
            return self.add_simple(source, version, urgency, target, changes, author)

    def add_snapshot(
        self,
        version: Version,
        *,
        since: str = "",
        source: str = "",
        author: str = "",
        auto: bool = False,
        ignore_merges: bool = False,
    ) -> ChangelogEntry:
        """Add an UNRELEASED snapshot entry built on the current commit.

        Raises:
            VersionBuildError: If the version is a staging or development one
        """
        if version.is_staging or version.is_development:
            raise VersionBuildError(
                f"cannot use version {version} as snapshot version",
                source_kind=str(version.kind),
                target_kind=str(ReleaseKind.SNAPSHOT),
            )

        with self._transaction():
            snapshot = version.build(ReleaseKind.SNAPSHOT, self._require_repo())
            changes = self.build_snapshot_log(since, auto, ignore_merges)
            return self.add_simple(
                source, snapshot, SNAPSHOT_URGENCY, SNAPSHOT_TARGET, changes, author
            )

    def add_release(
        self,
        version: Version,
        *,
        since: str = "",
        source: str = "",
        urgency: str = "",
        target: str = "",
        author: str = "",
        auto: bool = False,
        ignore_merges: bool = False,
        purge_testing: bool = False,
        purge_unstable: bool = False,
    ) -> ChangelogEntry:
        """Add a release entry, dropping previous snapshot entries.

        A native version is promoted first: to a staging version when the
        target is ``unstable``, to a release version otherwise.
        """
        with self._transaction():
            if version.is_native:
                kind = ReleaseKind.STAGING if target == "unstable" else ReleaseKind.RELEASE
                version = version.build(kind)

            self.purge_releases(purge_testing, purge_unstable)
            self.purge_snapshot_releases()

            changes = self.build_release_log(since, version, auto, ignore_merges)
            return self.add_simple(source, version, urgency, target, changes, author)


def _order_error(requested: Version, old: Version) -> VersionOrderError:
    return VersionOrderError(
        f"the new version {requested} is lesser than the old version {old}"
    )


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask
