"""Services"""

from zipship.services.ai_fixer import FixOutcome, analyze_and_fix
from zipship.services.archive import normalize_archive
from zipship.services.badge import inject_badge
from zipship.services.credits import get_user_stats, grant_test_credits, has_remaining_credit
from zipship.services.deployments import (
    begin_deployment,
    complete_deployment,
    fail_deployment,
    list_deployments,
)
from zipship.services.github_connection import resolve_credential, save_github_connection
from zipship.services.manifest_checks import check_manifests
from zipship.services.repo_sync import RepoSynchronizer, sanitize_repo_name

__all__ = [
    "FixOutcome",
    "RepoSynchronizer",
    "analyze_and_fix",
    "begin_deployment",
    "check_manifests",
    "complete_deployment",
    "fail_deployment",
    "get_user_stats",
    "grant_test_credits",
    "has_remaining_credit",
    "inject_badge",
    "list_deployments",
    "normalize_archive",
    "resolve_credential",
    "sanitize_repo_name",
    "save_github_connection",
]
