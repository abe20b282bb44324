"""Debian version handling with release-kind awareness.

A version has the Debian shape ``[epoch:]upstream[-revision]``. On top of
that, git-dch encodes the release channel in the upstream suffix:

- Release: ``1.2.3-1`` (or the bare native ``1.2.3``)
- Staging: ``1.2.3~stg-1``
- Development: ``1.2.3.20240131-1``
- Snapshot: ``1.2.3~4.gbp1a2b3c`` (never has a revision)

Versions are immutable; every transformation returns a new instance.
Ordering follows the dpkg comparison algorithm.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import TYPE_CHECKING, NamedTuple

from git_dch.core.release_kind import ReleaseKind
from git_dch.exceptions import VersionBuildError, VersionError, VersionParseError

if TYPE_CHECKING:
    from git_dch.vcs.git import GitRepository

logger = logging.getLogger(__name__)

SNAPSHOT_HASH_LENGTH = 6
_MAX_REVISION = 2**63 - 1

_UPSTREAM_RE = re.compile(r"^[0-9][A-Za-z0-9.+~:-]*$")
_REVISION_RE = re.compile(r"^[A-Za-z0-9.+~]+$")
_SPLIT_REVISION_RE = re.compile(r"^(\D*)(\d+)$")


class _KindMatcher(NamedTuple):
    kind: ReleaseKind
    pattern: re.Pattern[str]
    split: re.Pattern[str]


# Order matters: the first matching pattern wins.
_KIND_MATCHERS = (
    _KindMatcher(
        ReleaseKind.SNAPSHOT,
        re.compile(r"^(?:\d+:)?\d+\.\d+\.\d+~\d+\.gbp[0-9a-f]{6}$"),
        re.compile(r"^(.*?)~(\d+)\.gbp([0-9a-f]{6})$"),
    ),
    _KindMatcher(
        ReleaseKind.DEVELOPMENT,
        re.compile(r"^(?:\d+:)?\d+\.\d+\.\d+\.\d{8}-\d+$"),
        re.compile(r"^(.*)\.(\d{8})$"),
    ),
    _KindMatcher(
        ReleaseKind.STAGING,
        re.compile(r"^(?:\d+:)?\d+\.\d+\.\d+~stg-\d+$"),
        re.compile(r"^(.*)~stg$"),
    ),
)
_SPLIT_BY_KIND = {m.kind: m.split for m in _KIND_MATCHERS}


def development_date() -> str:
    """Today's date as embedded in development versions."""
    return date.today().strftime("%Y%m%d")


def classify(text: str) -> ReleaseKind:
    """Return the release kind of a rendered version string."""
    for matcher in _KIND_MATCHERS:
        if matcher.pattern.match(text):
            return matcher.kind
    return ReleaseKind.RELEASE


@dataclass(frozen=True)
class Version:
    """A Debian version with epoch, upstream part and revision.

    Equality is structural; ordering operators use dpkg semantics.
    """

    epoch: int = 0
    upstream: str = ""
    revision: str = ""

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a Debian version string.

        Args:
            text: Version such as ``2:1.0.0-3`` or ``1.0.0~stg-1``

        Returns:
            Parsed Version

        Raises:
            VersionParseError: If the string is not a valid Debian version
        """
        value = text.strip()
        if not value:
            raise VersionParseError("version string is empty")

        epoch = 0
        if ":" in value:
            epoch_text, value = value.split(":", 1)
            if not epoch_text.isdigit():
                raise VersionParseError(f"epoch in version '{text}' is not a number")
            epoch = int(epoch_text)

        revision = ""
        if "-" in value:
            value, revision = value.rsplit("-", 1)
            if not revision:
                raise VersionParseError(f"revision in version '{text}' is empty")
            if not _REVISION_RE.match(revision):
                raise VersionParseError(f"revision in version '{text}' has invalid characters")

        if not value:
            raise VersionParseError(f"upstream part of version '{text}' is empty")
        if not _UPSTREAM_RE.match(value):
            raise VersionParseError(
                f"upstream part of version '{text}' must start with a digit "
                "and contain only alphanumerics and . + ~ - :"
            )

        return cls(epoch=epoch, upstream=value, revision=revision)

    def __str__(self) -> str:
        out = self.upstream
        if self.epoch > 0:
            out = f"{self.epoch}:{out}"
        if self.revision:
            out = f"{out}-{self.revision}"
        return out

    def __lt__(self, other: Version) -> bool:
        return compare(self, other) < 0

    def __le__(self, other: Version) -> bool:
        return compare(self, other) <= 0

    def __gt__(self, other: Version) -> bool:
        return compare(self, other) > 0

    def __ge__(self, other: Version) -> bool:
        return compare(self, other) >= 0

    # Classification

    @property
    def kind(self) -> ReleaseKind:
        return classify(str(self))

    @property
    def is_snapshot(self) -> bool:
        return self.kind is ReleaseKind.SNAPSHOT

    @property
    def is_staging(self) -> bool:
        return self.kind is ReleaseKind.STAGING

    @property
    def is_development(self) -> bool:
        return self.kind is ReleaseKind.DEVELOPMENT

    @property
    def is_stable(self) -> bool:
        return self.kind is ReleaseKind.RELEASE

    @property
    def is_native(self) -> bool:
        """True for a bare upstream version without revision or kind suffix."""
        return not self.revision and not self.is_snapshot

    def extract_native(self) -> Version:
        """Strip epoch, revision and the kind-specific suffix."""
        split = _SPLIT_BY_KIND.get(self.kind)
        upstream = self.upstream
        if split is not None:
            upstream = split.match(upstream).group(1)
        return Version(epoch=0, upstream=upstream, revision="")

    # Transitions

    def build(self, kind: ReleaseKind, repo: GitRepository | None = None) -> Version:
        """Promote this version into the requested release kind.

        Only same-kind refreshes and promotions from a native version (plus
        the Staging/Snapshot to Release and Snapshot to Staging paths) are
        defined; every other transition fails.

        Args:
            kind: Target release kind
            repo: Repository used to read the current commit hash, required
                when building a snapshot

        Returns:
            A version of the requested kind

        Raises:
            VersionBuildError: If there is no transition from the current kind
            RepositoryError: If the commit hash cannot be read
        """
        if kind is ReleaseKind.RELEASE:
            if self.is_snapshot or self.is_staging:
                return replace(self.extract_native(), epoch=self.epoch, revision="1")
            if self.is_native:
                return replace(self, revision="1")
            if self.is_stable:
                return self

        elif kind is ReleaseKind.STAGING:
            if self.is_snapshot:
                native = self.extract_native()
                return Version(self.epoch, f"{native.upstream}~stg", "1")
            if self.is_staging:
                return self
            if self.is_native:
                return Version(self.epoch, f"{self.upstream}~stg", "1")

        elif kind is ReleaseKind.DEVELOPMENT:
            if self.is_development:
                return self
            if self.is_stable:
                return Version(self.epoch, f"{self.upstream}.{development_date()}", "1")

        elif kind is ReleaseKind.SNAPSHOT:
            commit_hash = _current_hash(repo)
            if self.is_snapshot:
                base, counter, _ = _split_snapshot(self)
                return Version(self.epoch, f"{base}~{counter}.gbp{commit_hash}", "")
            if self.is_native:
                return Version(self.epoch, f"{self.upstream}~1.gbp{commit_hash}", "")

        raise VersionBuildError(
            f"cannot build a {kind} version from {self} ({self.kind} version)",
            source_kind=str(self.kind),
            target_kind=str(kind),
        )

    def increment_revision(self, repo: GitRepository | None = None) -> Version:
        """Return the next version of the same kind.

        Snapshots bump their embedded counter and pick up the current commit
        hash. Development versions restart the revision at 1 when the date
        changed. Every other kind increments the trailing revision number.

        Raises:
            VersionError: If the revision has no trailing number or overflows
            RepositoryError: If the commit hash of a snapshot cannot be read
        """
        if self.is_snapshot:
            base, counter, _ = _split_snapshot(self)
            commit_hash = _current_hash(repo)
            upstream = f"{base}~{_checked(counter + 1, self)}.gbp{commit_hash}"
            return Version(self.epoch, upstream, self.revision)

        match = _SPLIT_REVISION_RE.match(self.revision)
        if match is None:
            raise VersionError(f"cannot find a valid revision number in {self}")
        prefix, number = match.group(1), int(match.group(2))

        upstream = self.upstream
        if self.is_development:
            base, stored_date = _SPLIT_BY_KIND[ReleaseKind.DEVELOPMENT].match(upstream).groups()
            today = development_date()
            if stored_date == today:
                number += 1
            else:
                upstream = f"{base}.{today}"
                number = 1
        else:
            number += 1

        return Version(self.epoch, upstream, f"{prefix}{_checked(number, self)}")


def _checked(number: int, version: Version) -> int:
    if number > _MAX_REVISION:
        raise VersionError(f"revision number of {version} overflows")
    return number


def _current_hash(repo: GitRepository | None) -> str:
    if repo is None:
        raise VersionError("a git repository is required to build a snapshot version")
    commit_hash = repo.last_commit_hash(SNAPSHOT_HASH_LENGTH)
    logger.debug("Current commit hash for snapshot: %s", commit_hash)
    return commit_hash


def _split_snapshot(version: Version) -> tuple[str, int, str]:
    match = _SPLIT_BY_KIND[ReleaseKind.SNAPSHOT].match(version.upstream)
    if match is None or not version.is_snapshot:
        raise VersionError(f"the version {version} is not a valid snapshot")
    return match.group(1), int(match.group(2)), match.group(3)


def snapshot_release(version: Version) -> int:
    """Return the counter embedded in a snapshot version."""
    return _split_snapshot(version)[1]


def with_snapshot_release(version: Version, release: int) -> Version:
    """Return the snapshot version with its counter replaced."""
    base, _, commit_hash = _split_snapshot(version)
    return Version(version.epoch, f"{base}~{release}.gbp{commit_hash}", "")


def compare_snapshots(a: Version, b: Version) -> int:
    """Compare two snapshot versions ignoring their commit hashes."""
    base_a, counter_a, _ = _split_snapshot(a)
    base_b, counter_b, _ = _split_snapshot(b)
    return compare(
        Version(a.epoch, f"{base_a}~{counter_a}.gbp", a.revision),
        Version(b.epoch, f"{base_b}~{counter_b}.gbp", b.revision),
    )


# dpkg comparison


def _order(char: str) -> int:
    if char == "~":
        return -1
    if char.isdigit():
        return 0
    if char.isascii() and char.isalpha():
        return ord(char)
    return ord(char) + 256


def _is_digit(text: str, index: int) -> bool:
    return index < len(text) and text[index] in "0123456789"


def _compare_fragment(a: str, b: str) -> int:
    i = j = 0
    while i < len(a) or j < len(b):
        while (i < len(a) and not _is_digit(a, i)) or (j < len(b) and not _is_digit(b, j)):
            ac = _order(a[i]) if i < len(a) else 0
            bc = _order(b[j]) if j < len(b) else 0
            if ac != bc:
                return ac - bc
            i += 1
            j += 1

        while i < len(a) and a[i] == "0":
            i += 1
        while j < len(b) and b[j] == "0":
            j += 1

        first_diff = 0
        while _is_digit(a, i) and _is_digit(b, j):
            if not first_diff:
                first_diff = ord(a[i]) - ord(b[j])
            i += 1
            j += 1
        if _is_digit(a, i):
            return 1
        if _is_digit(b, j):
            return -1
        if first_diff:
            return first_diff
    return 0


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def compare(a: Version, b: Version) -> int:
    """Compare two versions with dpkg semantics.

    Returns:
        A negative number if ``a < b``, zero if equal, positive if ``a > b``
    """
    if a.epoch != b.epoch:
        return _sign(a.epoch - b.epoch)
    result = _compare_fragment(a.upstream, b.upstream)
    if result:
        return _sign(result)
    return _sign(_compare_fragment(a.revision, b.revision))
