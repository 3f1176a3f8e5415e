"""Zip archive normalization service.

Turns an uploaded archive into the flat list of files that will make up the
repository's working tree. Everything happens in memory; nothing from the
archive is ever written to disk.
"""

from __future__ import annotations

import io
import logging
import re
import zlib
from collections.abc import Iterable
from zipfile import BadZipFile, ZipFile, ZipInfo

from zipship.errors import InvalidArchiveError
from zipship.models.archive import ArchiveEntry, NormalizedArchive, RejectedEntry

logger = logging.getLogger(__name__)

__all__ = [
    "TEXT_EXTENSIONS",
    "detect_wrapper_prefix",
    "is_text_path",
    "normalize_archive",
    "unsafe_path_reason",
]

TEXT_EXTENSIONS: tuple[str, ...] = (
    "txt",
    "js",
    "ts",
    "jsx",
    "tsx",
    "json",
    "html",
    "css",
    "scss",
    "sass",
    "less",
    "py",
    "java",
    "c",
    "cpp",
    "h",
    "hpp",
    "cs",
    "go",
    "rs",
    "rb",
    "php",
    "md",
    "yml",
    "yaml",
    "xml",
    "svg",
    "sh",
    "bash",
    "zsh",
    "vue",
    "svelte",
    "astro",
    "sql",
    "graphql",
    "toml",
    "ini",
    "cfg",
    "conf",
    "gitignore",
    r"env\.example",
)

_TEXT_PATTERN = re.compile(r"\.(" + "|".join(TEXT_EXTENSIONS) + r")$", re.IGNORECASE)
_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:")
_SEPARATORS = re.compile(r"[\\/]")

EMPTY_ARCHIVE_MESSAGE = "ZIP file is empty or contains no valid files"


def is_text_path(path: str) -> bool:
    """Return True when *path* has an extension on the text allow-list."""
    return _TEXT_PATTERN.search(path) is not None


def unsafe_path_reason(name: str) -> str | None:
    """Return why *name* is unsafe to use as a repository path, or None.

    Both ``/`` and ``\\`` count as separators so that archives built on
    Windows cannot smuggle a traversal past the check.

    Args:
        name: Raw member name from the archive.

    Returns:
        ``"path traversal"``, ``"absolute path"``, or None for a safe name.
    """
    if any(segment == ".." for segment in _SEPARATORS.split(name)):
        return "path traversal"
    if name.startswith(("/", "\\")) or _DRIVE_PATTERN.match(name):
        return "absolute path"
    return None


def _is_excluded(name: str) -> bool:
    """Check the convenience exclusions: hidden files, macOS metadata, node_modules."""
    if name.startswith(".") or "/." in name:
        return True
    if "__MACOSX" in name:
        return True
    segments = name.split("/")
    return "node_modules" in segments[:-1]


def detect_wrapper_prefix(names: list[str]) -> str:
    """Return the folder prefix shared by every name, or ``""``.

    The candidate comes from the first name only. It is accepted when every
    other name starts with it, so a single loose file disables stripping for
    the whole archive.

    Args:
        names: Surviving member names, in archive order.

    Returns:
        The prefix including its trailing ``/``, or an empty string.
    """
    if not names:
        return ""
    first, sep, _ = names[0].partition("/")
    if not sep:
        return ""
    candidate = f"{first}/"
    if all(name.startswith(candidate) for name in names):
        return candidate
    return ""


def _open_archive(data: bytes) -> ZipFile:
    """Open *data* as a ZIP archive.

    Raises:
        InvalidArchiveError: If the bytes are not a readable ZIP archive.
    """
    try:
        return ZipFile(io.BytesIO(data))
    except (BadZipFile, OSError, ValueError) as exc:
        raise InvalidArchiveError("Uploaded file is not a valid ZIP archive") from exc


def _filter_members(
    members: Iterable[ZipInfo],
) -> tuple[list[ZipInfo], list[RejectedEntry]]:
    """Split archive members into usable files and security rejections."""
    kept: list[ZipInfo] = []
    rejected: list[RejectedEntry] = []

    for info in members:
        if info.is_dir():
            continue

        reason = unsafe_path_reason(info.filename)
        if reason is not None:
            logger.warning("Rejected archive member %r: %s", info.filename, reason)
            rejected.append(RejectedEntry(name=info.filename, reason=reason))
            continue

        if _is_excluded(info.filename):
            continue

        kept.append(info)

    return kept, rejected


def normalize_archive(data: bytes) -> NormalizedArchive:
    """Parse an uploaded archive into a deduplicated list of files.

    Args:
        data: Raw archive bytes. The size limit is enforced by the caller.

    Returns:
        NormalizedArchive with the surviving entries and any warnings.

    Raises:
        InvalidArchiveError: If the data is not a ZIP archive or no usable
            files remain after filtering.
    """
    with _open_archive(data) as archive:
        members, rejected = _filter_members(archive.infolist())
        wrapper_prefix = detect_wrapper_prefix([info.filename for info in members])
        if wrapper_prefix:
            logger.info("Detected wrapper folder: %s", wrapper_prefix)

        by_path: dict[str, ArchiveEntry] = {}
        notices: list[str] = []

        for info in members:
            path = info.filename[len(wrapper_prefix) :]
            if not path:
                continue
            try:
                content = archive.read(info)
            except (BadZipFile, OSError, RuntimeError, zlib.error) as exc:
                raise InvalidArchiveError(f"Could not read {info.filename} from archive") from exc

            if path in by_path:
                notices.append(f"Duplicate entry replaced by later copy: {path}")
            by_path[path] = ArchiveEntry(
                path=path,
                content=content,
                is_binary=not is_text_path(path),
            )

    if not by_path:
        raise InvalidArchiveError(EMPTY_ARCHIVE_MESSAGE)

    return NormalizedArchive(
        entries=list(by_path.values()),
        rejected=rejected,
        wrapper_prefix=wrapper_prefix,
        notices=notices,
    )
