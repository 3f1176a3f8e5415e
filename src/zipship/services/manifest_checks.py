"""Non-blocking sanity checks on dependency manifests.

These never stop a deploy; they only produce warnings the user sees next to
the repository URL.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from zipship.models.archive import ArchiveEntry

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS: tuple[str, ...] = (
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".py",
    ".java",
    ".go",
    ".rs",
    ".rb",
    ".php",
    ".c",
    ".cpp",
    ".cs",
    ".html",
    ".css",
    ".vue",
    ".svelte",
)

_LOCAL_VERSION_PREFIXES = ("file:", "link:")


def _find(entries: Sequence[ArchiveEntry], path: str) -> ArchiveEntry | None:
    return next((entry for entry in entries if entry.path == path), None)


def _check_package_json(entry: ArchiveEntry) -> list[str]:
    try:
        manifest = json.loads(entry.text)
    except json.JSONDecodeError:
        return ["package.json could not be parsed"]
    if not isinstance(manifest, dict):
        return ["package.json could not be parsed"]

    warnings: list[str] = []
    for section in ("dependencies", "devDependencies"):
        deps = manifest.get(section) or {}
        if not isinstance(deps, dict):
            continue
        for name, version in deps.items():
            version_str = str(version)
            if version_str.startswith(_LOCAL_VERSION_PREFIXES):
                warnings.append(
                    f"Local dependency found: {name} ({version_str}) - will not work on GitHub"
                )
    return warnings


def _check_requirements_txt(entry: ArchiveEntry) -> list[str]:
    warnings: list[str] = []
    for line in entry.text.splitlines():
        if "-e file:" in line or "file://" in line or line.startswith("./"):
            warnings.append(f"Local Python dependency: {line.strip()}")
    return warnings


def check_manifests(entries: Sequence[ArchiveEntry]) -> list[str]:
    """Inspect manifests for dependencies that cannot resolve outside the user's machine.

    Args:
        entries: Normalized archive entries.

    Returns:
        Human-readable warnings, possibly empty.
    """
    warnings: list[str] = []

    package_json = _find(entries, "package.json")
    if package_json is not None:
        warnings.extend(_check_package_json(package_json))

    requirements = _find(entries, "requirements.txt")
    if requirements is not None:
        warnings.extend(_check_requirements_txt(requirements))

    if not any(entry.path.endswith(SOURCE_EXTENSIONS) for entry in entries):
        warnings.append("No recognizable source files found (.js, .ts, .py, etc.)")

    if warnings:
        logger.info("Manifest warnings: %s", warnings)
    return warnings
