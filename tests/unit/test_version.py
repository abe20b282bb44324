"""Tests for Debian version parsing, ordering and release-kind transitions."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from git_dch.core.release_kind import ReleaseKind
from git_dch.core.version import (
    Version,
    classify,
    compare,
    compare_snapshots,
    snapshot_release,
    with_snapshot_release,
)
from git_dch.exceptions import VersionBuildError, VersionError, VersionParseError


@pytest.fixture
def today(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pin the date used by development versions."""
    monkeypatch.setattr("git_dch.core.version.development_date", lambda: "20240131")
    return "20240131"


@pytest.fixture
def hash_repo() -> MagicMock:
    repo = MagicMock()
    repo.last_commit_hash.return_value = "abcdef"
    return repo


class TestVersionParse:
    """Tests for Version.parse()."""

    def test_parse_full(self):
        """Parse epoch, upstream and revision."""
        v = Version.parse("2:1.0.0-3")

        assert v.epoch == 2
        assert v.upstream == "1.0.0"
        assert v.revision == "3"

    def test_parse_native(self):
        """A version without dash has no revision."""
        v = Version.parse("1.0.0")

        assert v == Version(0, "1.0.0", "")
        assert v.is_native

    def test_revision_is_after_last_dash(self):
        """Only the last dash separates the revision."""
        v = Version.parse("1.0-beta-2")

        assert v.upstream == "1.0-beta"
        assert v.revision == "2"

    def test_strip_whitespace(self):
        """Surrounding whitespace is ignored."""
        assert str(Version.parse("  1.0.0-1\n")) == "1.0.0-1"

    @pytest.mark.parametrize(
        "text",
        ["", "a1.0", "x:1.0", "1:", "1.0-", "1.0-a_b", "1.0 0"],
    )
    def test_parse_invalid(self, text: str):
        """Malformed versions raise VersionParseError."""
        with pytest.raises(VersionParseError):
            Version.parse(text)

    @pytest.mark.parametrize(
        "text",
        ["1.0.0", "1.0.0-1", "2:1.0.0-1", "1.0.0~stg-1", "1.0.0.20240131-2", "1.0.0~3.gbpabcdef"],
    )
    def test_str_roundtrip(self, text: str):
        """String form reproduces the parsed text."""
        assert str(Version.parse(text)) == text

    def test_zero_epoch_is_omitted(self):
        """An explicit zero epoch is not rendered."""
        assert str(Version.parse("0:1.0-1")) == "1.0-1"


class TestClassify:
    """Tests for release kind detection."""

    @pytest.mark.parametrize(
        ("text", "kind"),
        [
            ("1.0.0", ReleaseKind.RELEASE),
            ("1.0.0-1", ReleaseKind.RELEASE),
            ("1.0.0~stg-1", ReleaseKind.STAGING),
            ("3:1.0.0~stg-12", ReleaseKind.STAGING),
            ("1.0.0.20240131-1", ReleaseKind.DEVELOPMENT),
            ("1.0.0~2.gbpabcdef", ReleaseKind.SNAPSHOT),
            ("1:1.0.0~2.gbp012345", ReleaseKind.SNAPSHOT),
            # Non-matching shapes fall back to release
            ("1.0~stg-1", ReleaseKind.RELEASE),
            ("1.0.0x20240131-1", ReleaseKind.RELEASE),
            ("1.0.0~2.gbpABCDEF", ReleaseKind.RELEASE),
        ],
    )
    def test_classify(self, text: str, kind: ReleaseKind):
        """Classify rendered versions."""
        assert classify(text) is kind
        assert Version.parse(text).kind is kind

    def test_snapshot_is_not_native(self):
        """Snapshots have no revision but are not native."""
        v = Version.parse("1.0.0~1.gbpabcdef")

        assert v.is_snapshot
        assert not v.is_native

    @pytest.mark.parametrize(
        ("text", "native"),
        [
            ("2:1.0.0-3", "1.0.0"),
            ("1.0.0~stg-2", "1.0.0"),
            ("1.0.0.20240131-4", "1.0.0"),
            ("1:1.0.0~7.gbpabcdef", "1.0.0"),
            ("1.0.0", "1.0.0"),
        ],
    )
    def test_extract_native(self, text: str, native: str):
        """Native form drops epoch, revision and kind suffix."""
        assert str(Version.parse(text).extract_native()) == native


class TestBuild:
    """Tests for Version.build()."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.0.0", "1.0.0-1"),
            ("2:1.0.0", "2:1.0.0-1"),
            ("1.0.0-4", "1.0.0-4"),
            ("1.0.0~stg-3", "1.0.0-1"),
            ("1.0.0~2.gbpabcdef", "1.0.0-1"),
        ],
    )
    def test_build_release(self, text: str, expected: str):
        """Release from native, release, staging and snapshot versions."""
        assert str(Version.parse(text).build(ReleaseKind.RELEASE)) == expected

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.0.0", "1.0.0~stg-1"),
            ("1.0.0~stg-3", "1.0.0~stg-3"),
            ("1.0.0~2.gbpabcdef", "1.0.0~stg-1"),
        ],
    )
    def test_build_staging(self, text: str, expected: str):
        """Staging from native, staging and snapshot versions."""
        assert str(Version.parse(text).build(ReleaseKind.STAGING)) == expected

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.0.0", "1.0.0.20240131-1"),
            ("1.0.0-3", "1.0.0.20240131-1"),
            ("1.0.0.20230101-5", "1.0.0.20230101-5"),
        ],
    )
    def test_build_development(self, today: str, text: str, expected: str):
        """Development from stable and development versions."""
        assert str(Version.parse(text).build(ReleaseKind.DEVELOPMENT)) == expected

    def test_build_snapshot_from_native(self, hash_repo: MagicMock):
        """Snapshot from native starts the counter at 1."""
        v = Version.parse("1.0.0").build(ReleaseKind.SNAPSHOT, hash_repo)

        assert str(v) == "1.0.0~1.gbpabcdef"
        hash_repo.last_commit_hash.assert_called_once_with(6)

    def test_build_snapshot_refreshes_hash(self, hash_repo: MagicMock):
        """Snapshot from snapshot keeps the counter and takes the new hash."""
        v = Version.parse("1:1.0.0~3.gbp123456").build(ReleaseKind.SNAPSHOT, hash_repo)

        assert str(v) == "1:1.0.0~3.gbpabcdef"

    @pytest.mark.parametrize(
        ("text", "kind"),
        [
            ("1.0.0.20240131-1", ReleaseKind.RELEASE),
            ("1.0.0-1", ReleaseKind.STAGING),
            ("1.0.0.20240131-1", ReleaseKind.STAGING),
            ("1.0.0~stg-1", ReleaseKind.DEVELOPMENT),
            ("1.0.0~1.gbpabcdef", ReleaseKind.DEVELOPMENT),
        ],
    )
    def test_build_invalid_transition(self, text: str, kind: ReleaseKind):
        """Undefined transitions raise VersionBuildError."""
        with pytest.raises(VersionBuildError):
            Version.parse(text).build(kind)

    def test_build_snapshot_from_release_fails(self, hash_repo: MagicMock):
        """The error names both kinds."""
        with pytest.raises(VersionBuildError) as exc_info:
            Version.parse("1.0.0-1").build(ReleaseKind.SNAPSHOT, hash_repo)

        assert exc_info.value.source_kind == "release"
        assert exc_info.value.target_kind == "snapshot"

    def test_build_snapshot_needs_repo(self):
        """Snapshots cannot be built without a repository."""
        with pytest.raises(VersionError, match="repository"):
            Version.parse("1.0.0").build(ReleaseKind.SNAPSHOT)


class TestIncrementRevision:
    """Tests for Version.increment_revision()."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.0.0-1", "1.0.0-2"),
            ("1.0.0-ubuntu9", "1.0.0-ubuntu10"),
            ("2:1.0.0~stg-4", "2:1.0.0~stg-5"),
        ],
    )
    def test_increment(self, text: str, expected: str):
        """The trailing revision number is incremented."""
        assert str(Version.parse(text).increment_revision()) == expected

    def test_development_same_day(self, today: str):
        """Same-day development versions bump the revision."""
        v = Version.parse("1.0.0.20240131-2").increment_revision()

        assert str(v) == "1.0.0.20240131-3"

    def test_development_new_day(self, today: str):
        """A new day resets the revision and updates the date."""
        v = Version.parse("1.0.0.20240130-5").increment_revision()

        assert str(v) == "1.0.0.20240131-1"

    def test_snapshot(self, hash_repo: MagicMock):
        """Snapshots bump their counter and refresh the hash."""
        v = Version.parse("1.0.0~3.gbp123456").increment_revision(hash_repo)

        assert str(v) == "1.0.0~4.gbpabcdef"

    @pytest.mark.parametrize("text", ["1.0.0", "1.0.0-1a"])
    def test_no_revision_number(self, text: str):
        """Revisions without trailing number cannot be incremented."""
        with pytest.raises(VersionError, match="revision number"):
            Version.parse(text).increment_revision()

    def test_overflow(self):
        """Revision numbers are bounded."""
        with pytest.raises(VersionError, match="overflows"):
            Version.parse(f"1.0.0-{2**63 - 1}").increment_revision()


class TestCompare:
    """Tests for dpkg ordering."""

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("1.0~rc1", "1.0"),
            ("1.0", "1.0-1"),
            ("1.0-1", "1.0-2"),
            ("1.9", "1.10"),
            ("1.0", "1.0a"),
            ("1.0a", "1.0+b"),
            ("1.0.0~stg-1", "1.0.0-1"),
            ("1.0.0~1.gbpabcdef", "1.0.0"),
            ("1.0.0-1", "1.0.0.20240131-1"),
            ("9.9", "1:0.1"),
        ],
    )
    def test_less_than(self, a: str, b: str):
        """First version sorts before the second."""
        assert compare(Version.parse(a), Version.parse(b)) == -1
        assert compare(Version.parse(b), Version.parse(a)) == 1
        assert Version.parse(a) < Version.parse(b)

    @pytest.mark.parametrize(("a", "b"), [("1.01", "1.1"), ("0:1.0-1", "1.0-1"), ("1.0", "1.0")])
    def test_equal(self, a: str, b: str):
        """Equivalent versions compare equal."""
        assert compare(Version.parse(a), Version.parse(b)) == 0
        assert Version.parse(a) <= Version.parse(b)
        assert Version.parse(a) >= Version.parse(b)


class TestSnapshotHelpers:
    """Tests for snapshot counter helpers."""

    def test_snapshot_release(self):
        """Read the counter."""
        assert snapshot_release(Version.parse("1.0.0~4.gbpabcdef")) == 4

    def test_with_snapshot_release(self):
        """Replace the counter, keeping epoch and hash."""
        v = with_snapshot_release(Version.parse("2:1.0.0~4.gbpabcdef"), 7)

        assert str(v) == "2:1.0.0~7.gbpabcdef"

    def test_compare_snapshots_ignores_hash(self):
        """Hashes do not take part in snapshot ordering."""
        a = Version.parse("1.0.0~4.gbp111111")
        b = Version.parse("1.0.0~4.gbpfff000")

        assert compare_snapshots(a, b) == 0
        assert compare_snapshots(a, Version.parse("1.0.0~5.gbp000000")) == -1

    def test_not_a_snapshot(self):
        """Helpers reject non-snapshot versions."""
        with pytest.raises(VersionError, match="not a valid snapshot"):
            snapshot_release(Version.parse("1.0.0-1"))
