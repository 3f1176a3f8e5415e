"""Data models exchanged between the deploy pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class DeployOptions:
    """Caller-decided switches for a single deploy.

    Attributes:
        ai_fix_enabled: Run the AI auto-fix stage before synchronization.
        is_free_tier: Inject the attribution badge into HTML files.
        private: Visibility for newly created repositories.
    """

    ai_fix_enabled: bool = False
    is_free_tier: bool = False
    private: bool = False


@dataclass(frozen=True, slots=True)
class SyncResult:
    """Outcome of a successful repository synchronization."""

    repo_url: str
    owner_login: str
    repo_name: str
    was_preexisting: bool
    commit_sha: str
    file_count: int


@dataclass(slots=True)
class DeployResult:
    """What the deploy entry point reports back to its caller."""

    deployment_id: int
    repo_url: str
    owner: str
    repo: str
    is_update: bool
    file_count: int
    warnings: list[str] = field(default_factory=list)
    ai_applied: bool = False
    ai_changes: list[str] = field(default_factory=list)
