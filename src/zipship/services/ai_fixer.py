"""AI-assisted project fixing.

A curated slice of the project (manifests and config files) is sent to the
LLM, which answers with a JSON change-set. The change-set is validated and
applied to a fresh path -> entry mapping. Nothing in here is allowed to fail
a deploy: every error degrades to "no changes applied" plus a warning.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from zipship.errors import RewriteCollaboratorError
from zipship.models.archive import ArchiveEntry
from zipship.services.archive import is_text_path, unsafe_path_reason
from zipship.services.llm_service import LLMService

logger = logging.getLogger(__name__)

__all__ = [
    "FixOutcome",
    "FixReport",
    "analyze_and_fix",
    "apply_fixes",
    "build_fix_prompt",
    "malformed_path_reason",
    "normalize_fix_path",
    "parse_fix_report",
    "select_relevant_files",
]

MAX_RELEVANT_FILES = 10
MAX_FILE_CHARS = 2000
NO_ISSUES_MESSAGE = "No issues found - project looks good!"

RELEVANT_PATHS: frozenset[str] = frozenset(
    {
        "package.json",
        "package-lock.json",
        "next.config.js",
        "next.config.ts",
        "next.config.mjs",
        "tsconfig.json",
        "vercel.json",
        ".nvmrc",
        ".node-version",
        "app/favicon.ico",
        "public/favicon.ico",
        "requirements.txt",
        "pyproject.toml",
    }
)

SYSTEM_PROMPT = """You are an expert at fixing broken project uploads. Analyze the project files \
and automatically fix common problems.

COMMON PROBLEMS TO FIX:
1. Next.js version mismatches (@next/swc vs next version)
2. Missing or corrupt favicon.ico
3. Missing package-lock.json or yarn.lock
4. Missing .env.example files
5. Missing or broken next.config.js/ts
6. Missing or broken tsconfig.json
7. Incompatible Node.js versions in package.json
8. Missing or wrong Vercel/Netlify configuration
9. Python requirements that reference local paths

RULES:
- Use package.json or requirements.txt/pyproject.toml to detect the framework
- Check version compatibility between dependencies
- Only fix real errors, never change working features
- Return ONLY valid JSON

OUTPUT FORMAT (JSON):
{
  "hasIssues": true/false,
  "issues": ["list of problems found"],
  "fixes": [
    {
      "file": "path/to/file",
      "action": "create" | "modify" | "delete",
      "content": "new file content (for create/modify)",
      "reason": "why this change is needed"
    }
  ]
}"""

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class _FixBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file: str = Field(min_length=1)
    reason: str = ""


class CreateFix(_FixBase):
    action: Literal["create"]
    content: str


class ModifyFix(_FixBase):
    action: Literal["modify"]
    content: str


class DeleteFix(_FixBase):
    action: Literal["delete"]


FileFix = Annotated[CreateFix | ModifyFix | DeleteFix, Field(discriminator="action")]


class FixReport(BaseModel):
    """Structural contract for the LLM's answer."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    has_issues: bool = Field(alias="hasIssues")
    issues: list[Any] = Field(default_factory=list)
    fixes: list[FileFix] = Field(default_factory=list)


@dataclass(slots=True)
class FixOutcome:
    """Result of the auto-fix stage.

    Attributes:
        applied: True when at least one fix was applied to the file list.
        entries: The file list to deploy (the original list when nothing applied).
        changes: One line per applied fix, or a "nothing to fix" note.
        warnings: Non-fatal failures encountered along the way.
    """

    applied: bool
    entries: list[ArchiveEntry]
    changes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _is_relevant(path: str) -> bool:
    return path in RELEVANT_PATHS or path.endswith(".env.example")


def select_relevant_files(entries: Sequence[ArchiveEntry]) -> list[ArchiveEntry]:
    """Pick the manifest and config files worth showing to the LLM."""
    return [entry for entry in entries if _is_relevant(entry.path)][:MAX_RELEVANT_FILES]


def _excerpt(entry: ArchiveEntry) -> str:
    if entry.is_binary:
        return f"(binary file, {len(entry.content)} bytes)"
    return entry.text[:MAX_FILE_CHARS]


def build_fix_prompt(entries: Sequence[ArchiveEntry], relevant: Sequence[ArchiveEntry]) -> str:
    """Build the user part of the prompt: every path plus the curated excerpts."""
    all_paths = "\n".join(entry.path for entry in entries)
    excerpts = "\n\n".join(f"--- {entry.path} ---\n{_excerpt(entry)}" for entry in relevant)
    return (
        "Analyze this project and fix its errors:\n\n"
        f"ALL FILES IN THE PROJECT:\n{all_paths}\n\n"
        f"CONTENT OF THE RELEVANT FILES:\n{excerpts}\n\n"
        "Return the analysis and fixes as JSON."
    )


def parse_fix_report(text: str) -> FixReport:
    """Extract and validate the JSON change-set from free-form LLM output.

    Raises:
        RewriteCollaboratorError: If no JSON object is found or it does not
            match the expected structure.
    """
    match = _JSON_OBJECT.search(text)
    if match is None:
        raise RewriteCollaboratorError("AI response could not be parsed")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise RewriteCollaboratorError(f"AI response is not valid JSON: {exc.msg}") from exc
    try:
        return FixReport.model_validate(payload)
    except ValidationError as exc:
        raise RewriteCollaboratorError(
            f"AI response has an unexpected structure ({exc.error_count()} errors)"
        ) from exc


def normalize_fix_path(path: str) -> str:
    """Strip the leading ``./`` prefixes LLMs like to put on relative paths."""
    while path.startswith("./"):
        path = path[2:]
    return path


def malformed_path_reason(path: str, files: Mapping[str, ArchiveEntry]) -> str | None:
    """Return why *path* cannot become a file next to *files*, or None.

    A path is rejected when it is empty, names a directory, has an empty or
    ``.`` segment, or would turn an existing file into a directory (or the
    reverse). GitHub refuses trees like that.
    """
    if not path or path.endswith("/"):
        return "not a file path"
    segments = path.split("/")
    if any(segment in ("", ".") for segment in segments):
        return "empty path segment"
    if any(existing.startswith(path + "/") for existing in files):
        return "clashes with a directory"
    for depth in range(1, len(segments)):
        if "/".join(segments[:depth]) in files:
            return "clashes with a file"
    return None


def apply_fixes(
    entries: Sequence[ArchiveEntry], fixes: Sequence[CreateFix | ModifyFix | DeleteFix]
) -> tuple[list[ArchiveEntry], list[str], list[str]]:
    """Apply *fixes* to a fresh mapping built from *entries*.

    Fix paths are normalized first; fixes whose path is unsafe or malformed
    are skipped with a warning.

    Returns:
        Tuple of (new entries, change descriptions, warnings for skipped fixes).
    """
    files: dict[str, ArchiveEntry] = {entry.path: entry for entry in entries}
    changes: list[str] = []
    warnings: list[str] = []

    for fix in fixes:
        reason = unsafe_path_reason(fix.file)
        if reason is not None:
            warnings.append(f"Ignored AI fix for unsafe path ({reason}): {fix.file}")
            continue

        path = normalize_fix_path(fix.file)
        if isinstance(fix, DeleteFix):
            if files.pop(path, None) is None:
                warnings.append(f"Ignored AI delete of missing file: {fix.file}")
                continue
            changes.append(f"Deleted: {path} - {fix.reason}")
            continue

        problem = malformed_path_reason(path, files)
        if problem is not None:
            warnings.append(f"Ignored AI fix for malformed path ({problem}): {fix.file}")
            continue

        files[path] = ArchiveEntry(
            path=path,
            content=fix.content.encode("utf-8"),
            is_binary=not is_text_path(path),
        )
        label = "Created" if isinstance(fix, CreateFix) else "Modified"
        changes.append(f"{label}: {path} - {fix.reason}")

    return list(files.values()), changes, warnings


def _request_fixes(llm_service: LLMService | None, prompt: str) -> str:
    """Call the LLM, folding every provider failure into RewriteCollaboratorError."""
    try:
        service = llm_service or LLMService()
    except Exception as e:
        raise RewriteCollaboratorError(f"Failed to initialize LLM service: {e}") from e

    try:
        return service.generate_llm_response(
            system_instructions=SYSTEM_PROMPT,
            user_content=prompt,
            temperature=0.1,
            max_tokens=4096,
        )
    except Exception as e:
        raise RewriteCollaboratorError(f"LLM API call failed: {e}") from e


def analyze_and_fix(
    entries: Sequence[ArchiveEntry],
    llm_service: LLMService | None = None,
) -> FixOutcome:
    """Ask the LLM for fixes and apply them, never raising.

    Args:
        entries: Normalized archive entries.
        llm_service: Optional pre-built service; defaults to the env-configured provider.

    Returns:
        FixOutcome describing what, if anything, changed.
    """
    original = list(entries)
    relevant = select_relevant_files(original)
    if not relevant:
        return FixOutcome(
            applied=False,
            entries=original,
            warnings=["AI fix skipped: no manifest or config files found"],
        )

    try:
        response = _request_fixes(llm_service, build_fix_prompt(original, relevant))
        report = parse_fix_report(response)
    except RewriteCollaboratorError as exc:
        logger.warning("AI fix failed: %s", exc)
        return FixOutcome(applied=False, entries=original, warnings=[f"AI analysis failed: {exc}"])

    if not report.has_issues or not report.fixes:
        return FixOutcome(applied=False, entries=original, changes=[NO_ISSUES_MESSAGE])

    fixed, changes, warnings = apply_fixes(original, report.fixes)
    if not changes:
        return FixOutcome(applied=False, entries=original, warnings=warnings)

    logger.info("AI fix applied %d changes", len(changes))
    return FixOutcome(applied=True, entries=fixed, changes=changes, warnings=warnings)
