"""Branch and distribution compatibility rules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from git_dch.core.release_kind import ReleaseKind
from git_dch.exceptions import BranchError

if TYPE_CHECKING:
    from git_dch.core.version import Version

TESTING_DISTRIBUTIONS = ("testing",)
UNSTABLE_DISTRIBUTIONS = ("unstable",)
STABLE_DISTRIBUTIONS = (
    # Ubuntu
    "warty",
    "hoary",
    "breezy",
    "dapper",
    "edgy",
    "feisty",
    "gutsy",
    "hardy",
    "intrepid",
    "jaunty",
    "karmic",
    "lucid",
    "maverick",
    "natty",
    "oneiric",
    "precise",
    "quantal",
    "raring",
    "saucy",
    "trusty",
    "utopic",
    "vivid",
    "wily",
    "xenial",
    "yakkety",
    "zesty",
    "artful",
    "bionic",
    # Debian
    "stable",
    "hamm",
    "slink",
    "potato",
    "woody",
    "sarge",
    "etch",
    "lenny",
    "squeeze",
    "wheezy",
    "jessie",
    "stretch",
    "buster",
)


def distributions_for_branch(branch: str) -> tuple[str, ...]:
    """Distributions a build from ``branch`` may target."""
    if branch == "staging":
        return TESTING_DISTRIBUTIONS
    if branch in ("master", "release"):
        return STABLE_DISTRIBUTIONS
    return UNSTABLE_DISTRIBUTIONS


def is_distribution_valid_for_branch(distribution: str, branch: str) -> bool:
    return distribution in distributions_for_branch(branch)


def check_branch(
    version: Version,
    branch: str,
    distribution: str,
    *,
    force_distribution: bool = False,
) -> None:
    """Verify that a version and a distribution fit the active branch.

    Native and snapshot versions can be built from any branch; any other
    version must be of the kind the branch produces.

    Raises:
        BranchError: If the version or the distribution does not match
    """
    kind = version.kind
    mismatch = ReleaseKind.from_branch(branch) is not kind
    if not version.is_native and kind is not ReleaseKind.SNAPSHOT and mismatch:
        raise BranchError(f"cannot use version {version} with branch {branch}")

    if not force_distribution and not is_distribution_valid_for_branch(distribution, branch):
        raise BranchError(
            f"the distribution {distribution} is not valid for branch {branch}\n"
            "Use --force-distribution to use it anyway"
        )
