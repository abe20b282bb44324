"""A single Debian changelog entry.

Rendered form::

    source (version) target; urgency=medium
    <blank line>
      * change
    <blank line>
     -- Author Name <author@example.org>  Tue, 14 Mar 2017 17:34:52 +0000
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from email.utils import format_datetime, parsedate_to_datetime

from git_dch.core.version import Version
from git_dch.exceptions import EntryValidationError

DEFAULT_URGENCY = "medium"
URGENCY_CHOICES = ("low", "medium", "high", "emergency", "critical")
EMPTY_CHANGES = "  *"


def is_token_valid(value: str) -> bool:
    """True for a non-empty string without whitespace."""
    return bool(value) and not any(c.isspace() for c in value)


def normalize_changes(text: str) -> str:
    """Ensure the body starts with a newline and ends with a blank line."""
    if not text:
        text = EMPTY_CHANGES
    if not text.startswith("\n"):
        text = "\n" + text
    while not text.endswith("\n\n"):
        text += "\n"
    return text


def format_timestamp(when: datetime) -> str:
    """RFC 1123 date with numeric zone, e.g. ``Tue, 14 Mar 2017 17:34:52 +0000``."""
    if when.tzinfo is None:
        when = when.astimezone()
    return format_datetime(when)


def parse_timestamp(text: str) -> datetime:
    """Parse a changelog trailer date.

    Raises:
        ValueError: If the text is not an RFC 2822 date
    """
    when = parsedate_to_datetime(text.strip())
    if when.tzinfo is None:
        when = when.astimezone()
    return when


@dataclass
class ChangelogEntry:
    """One release record of a Debian changelog."""

    source: str
    version: Version
    target: str
    arguments: dict[str, str] = field(default_factory=dict)
    changes: str = ""
    author: str = ""
    when: datetime = field(default_factory=lambda: datetime.now().astimezone())

    @classmethod
    def create(
        cls,
        source: str,
        version: Version,
        target: str,
        urgency: str,
        changes: str,
        author: str,
        when: datetime | None = None,
    ) -> ChangelogEntry:
        """Build a validated entry.

        Args:
            source: Package name
            version: Version released by this entry
            target: Distribution the package is uploaded to
            urgency: Urgency level, ``medium`` when empty
            changes: Body text, normalised to be surrounded by blank lines
            author: ``Name <email>`` of the maintainer
            when: Timestamp, defaults to now

        Raises:
            EntryValidationError: If any field is empty or malformed
        """
        if not is_token_valid(source):
            raise EntryValidationError(f"changelog source '{source}' is not valid")
        if not version.upstream:
            raise EntryValidationError(f"changelog version '{version}' is not valid")
        if not is_token_valid(target):
            raise EntryValidationError(f"changelog target '{target}' is not valid")
        if urgency and not is_token_valid(urgency):
            raise EntryValidationError(f"changelog urgency '{urgency}' is not valid")
        if not author:
            raise EntryValidationError("changelog author cannot be empty")

        return cls(
            source=source,
            version=version,
            target=target,
            arguments={"urgency": urgency or DEFAULT_URGENCY},
            changes=normalize_changes(changes),
            author=author,
            when=when if when is not None else datetime.now().astimezone(),
        )

    @property
    def urgency(self) -> str:
        return self.arguments.get("urgency", "")

    def set_argument(self, key: str, value: str) -> None:
        """Create or replace a header argument such as ``urgency`` or ``binary-only``."""
        if not is_token_valid(key):
            raise EntryValidationError(f"changelog argument key '{key}' is not valid")
        if not is_token_valid(value):
            raise EntryValidationError(
                f"changelog argument value '{value}' for key '{key}' is not valid"
            )
        self.arguments[key] = value

    def is_valid(self) -> bool:
        return (
            is_token_valid(self.source)
            and bool(self.version.upstream)
            and is_token_valid(self.target)
            and "urgency" in self.arguments
            and all(is_token_valid(k) and is_token_valid(v) for k, v in self.arguments.items())
            and bool(self.author)
        )

    def render(self) -> str:
        """Changelog text for this entry, or an empty string if it is invalid."""
        if not self.is_valid():
            return ""

        arguments = " ".join(f"{k}={v}" for k, v in self.arguments.items())
        return (
            f"{self.source} ({self.version}) {self.target}; {arguments}\n"
            f"{self.changes}"
            f" -- {self.author}  {format_timestamp(self.when)}\n"
        )

    def __str__(self) -> str:
        return self.render()
