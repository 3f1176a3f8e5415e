"""Deploy pipeline: ZIP archive in, GitHub repository out.

Stages run strictly in sequence for one request:

credit gate -> credential -> ledger entry -> normalize -> manifest checks
-> AI fix (optional) -> badge (free tier) -> repository sync -> ledger success

Once the ledger entry exists, any failure marks it ``failed`` before the
error propagates, so no deployment is ever left ``pending``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from zipship.errors import CreditExhaustedError, ZipShipError
from zipship.models.archive import ArchiveEntry
from zipship.models.deploy import DeployOptions, DeployResult, SyncResult
from zipship.services.ai_fixer import analyze_and_fix
from zipship.services.archive import normalize_archive
from zipship.services.badge import inject_badge
from zipship.services.credits import has_remaining_credit
from zipship.services.deployments import (
    DeploymentHandle,
    begin_deployment,
    complete_deployment,
    fail_deployment,
)
from zipship.services.github_client import GitHubClient
from zipship.services.github_connection import resolve_credential
from zipship.services.llm_service import LLMService
from zipship.services.manifest_checks import check_manifests
from zipship.services.repo_sync import RepoSynchronizer

logger = logging.getLogger(__name__)

__all__ = ["deploy"]


def deploy(
    user_id: int,
    project_name: str,
    archive_bytes: bytes,
    options: DeployOptions | None = None,
    *,
    client_factory: Callable[[str], GitHubClient] | None = None,
    synchronizer_factory: Callable[[GitHubClient], RepoSynchronizer] | None = None,
    llm_service: LLMService | None = None,
) -> DeployResult:
    """Publish *archive_bytes* as the full contents of a GitHub repository.

    Args:
        user_id: Account the deploy is charged to.
        project_name: Free-form name; sanitized into the repository name.
        archive_bytes: Raw ZIP upload.
        options: Per-deploy switches (AI fix, badge, visibility).
        client_factory: Builds a GitHub client from an access token
            (defaults to GitHubClient).
        synchronizer_factory: Builds the synchronizer around that client
            (defaults to RepoSynchronizer).
        llm_service: Optional LLM service for the AI fix stage.

    Returns:
        DeployResult for the new commit.

    Raises:
        CreditExhaustedError: No remaining credit; nothing is recorded.
        IdentityNotConnectedError: No usable GitHub credential.
        InvalidArchiveError: The upload is not a ZIP or holds no usable files.
        RemoteSyncError: A GitHub call failed during synchronization.
    """
    options = options or DeployOptions()
    client_factory = client_factory or GitHubClient
    synchronizer_factory = synchronizer_factory or RepoSynchronizer

    if not has_remaining_credit(user_id):
        raise CreditExhaustedError()

    credential = resolve_credential(user_id)
    handle = begin_deployment(user_id, project_name)

    try:
        result = _run_pipeline(
            handle,
            project_name,
            archive_bytes,
            options,
            client=client_factory(credential.token),
            synchronizer_factory=synchronizer_factory,
            llm_service=llm_service,
        )
    except ZipShipError as exc:
        logger.warning("Deployment %d failed: %s", handle.deployment_id, exc)
        fail_deployment(handle, str(exc))
        raise
    except Exception as exc:
        logger.exception("Deployment %d failed unexpectedly", handle.deployment_id)
        fail_deployment(handle, str(exc) or type(exc).__name__)
        raise

    return result


def _run_pipeline(
    handle: DeploymentHandle,
    project_name: str,
    archive_bytes: bytes,
    options: DeployOptions,
    *,
    client: GitHubClient,
    synchronizer_factory: Callable[[GitHubClient], RepoSynchronizer],
    llm_service: LLMService | None,
) -> DeployResult:
    archive = normalize_archive(archive_bytes)
    warnings = list(archive.warnings)
    warnings.extend(check_manifests(archive.entries))

    entries: list[ArchiveEntry] = list(archive.entries)
    ai_applied = False
    ai_changes: list[str] = []
    if options.ai_fix_enabled:
        outcome = analyze_and_fix(entries, llm_service=llm_service)
        entries = outcome.entries
        ai_applied = outcome.applied
        ai_changes = outcome.changes
        warnings.extend(outcome.warnings)

    if options.is_free_tier:
        entries = inject_badge(entries)

    sync: SyncResult = synchronizer_factory(client).sync(
        project_name, entries, private=options.private
    )
    complete_deployment(
        handle,
        repo_url=sync.repo_url,
        owner=sync.owner_login,
        repo=sync.repo_name,
        file_count=sync.file_count,
    )

    return DeployResult(
        deployment_id=handle.deployment_id,
        repo_url=sync.repo_url,
        owner=sync.owner_login,
        repo=sync.repo_name,
        is_update=sync.was_preexisting,
        file_count=sync.file_count,
        warnings=warnings,
        ai_applied=ai_applied,
        ai_changes=ai_changes,
    )
