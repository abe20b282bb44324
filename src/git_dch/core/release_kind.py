"""Release kinds and their mapping to git branches."""

from __future__ import annotations

from enum import Enum


class ReleaseKind(Enum):
    """Release channel encoded by a version's suffix."""

    RELEASE = "release"
    STAGING = "staging"
    DEVELOPMENT = "development"
    SNAPSHOT = "snapshot"

    def __str__(self) -> str:
        return self.value

    @property
    def source_branch(self) -> str:
        """Branch a version of this kind is expected to come from."""
        if self is ReleaseKind.RELEASE:
            return "release"
        if self is ReleaseKind.STAGING:
            return "staging"
        return "develop"

    @classmethod
    def from_branch(cls, branch: str) -> ReleaseKind:
        """Release kind produced by builds on the given branch."""
        if branch in ("master", "release"):
            return cls.RELEASE
        if branch == "staging":
            return cls.STAGING
        return cls.DEVELOPMENT
