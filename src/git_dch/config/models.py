"""Pydantic models for git-dch configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

Urgency = Literal["low", "medium", "high", "emergency", "critical"]

DEFAULT_CHANGELOG_PATH = Path("debian/changelog")


class DchConfig(BaseModel):
    """Settings for one changelog update.

    Every field mirrors a command line option. Values can also be given in
    ``.git-dch.toml`` or in the ``[tool.git-dch]`` table of ``pyproject.toml``,
    using either dashes or underscores in the keys.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    auto: bool = False
    distribution: str = "unstable"
    force_branch: str = ""
    force_distribution: bool = False
    git_author: bool = False
    ignore_merges: bool = False
    new_version: str = ""
    purge_unstable: bool = False
    purge_testing: bool = False
    release: bool = False
    since: str = ""
    snapshot: bool = False
    urgency: Urgency = "medium"
    changelog_path: Path = DEFAULT_CHANGELOG_PATH
    verbose: bool = False

    @model_validator(mode="after")
    def _check_exclusive_options(self) -> DchConfig:
        if self.auto and self.since:
            raise ValueError("options 'auto' and 'since' cannot be used together")
        if self.snapshot and self.release:
            raise ValueError("options 'release' and 'snapshot' cannot be used together")
        return self
