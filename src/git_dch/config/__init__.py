"""Configuration management for git-dch."""

from __future__ import annotations

from git_dch.config.loader import load_config
from git_dch.config.models import DchConfig

__all__ = [
    "DchConfig",
    "load_config",
]
