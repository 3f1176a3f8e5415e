"""Data models for normalized archive contents."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """A single file that survived archive normalization.

    Attributes:
        path: Relative, slash-separated path inside the repository.
        content: Raw file bytes, exactly as stored in the archive.
        is_binary: True when the extension is not on the text allow-list.
    """

    path: str
    content: bytes
    is_binary: bool = False

    @property
    def text(self) -> str:
        """Return the content decoded as UTF-8 (invalid bytes replaced)."""
        return self.content.decode("utf-8", errors="replace")

    def to_base64(self) -> str:
        """Return the content base64-encoded for transports that require text."""
        return base64.b64encode(self.content).decode("ascii")


@dataclass(frozen=True, slots=True)
class RejectedEntry:
    """An archive member dropped by the path-safety filter."""

    name: str
    reason: str

    def describe(self) -> str:
        return f"Blocked {self.reason}: {self.name}"


@dataclass(slots=True)
class NormalizedArchive:
    """Result of normalizing an uploaded archive.

    Attributes:
        entries: Files to synchronize, unique by path.
        rejected: Members dropped for unsafe paths.
        wrapper_prefix: Stripped wrapper folder (``""`` when none was detected).
        notices: Other non-fatal observations, e.g. duplicate members.
    """

    entries: list[ArchiveEntry]
    rejected: list[RejectedEntry] = field(default_factory=list)
    wrapper_prefix: str = ""
    notices: list[str] = field(default_factory=list)

    @property
    def paths(self) -> list[str]:
        return [entry.path for entry in self.entries]

    @property
    def warnings(self) -> list[str]:
        return [rejected.describe() for rejected in self.rejected] + list(self.notices)
