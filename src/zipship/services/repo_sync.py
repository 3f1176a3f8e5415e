"""Repository synchronization via the GitHub git data API.

The whole working tree of the target branch is replaced by one new commit:

1. read the default branch from the repository metadata
2. read the branch ref to find the tip commit
3. read the tip commit (its tree is deliberately not reused)
4. upload every file as a blob, in sequential batches of concurrent uploads
5. create a tree from exactly those blobs, with no base tree
6. create a commit on top of the tip
7. move the branch ref to the new commit

Nothing becomes visible on GitHub until step 7. Blobs and trees left behind
by a failure before that point are unreachable and harmless.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
import weakref
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from zipship.errors import IdentityNotConnectedError, RemoteSyncError
from zipship.models.archive import ArchiveEntry
from zipship.models.deploy import SyncResult
from zipship.services.github_client import GitHubAPIError, GitHubClient, GitHubNotFoundError

logger = logging.getLogger(__name__)

__all__ = [
    "FALLBACK_REPO_NAME",
    "INITIAL_COMMIT_MESSAGE",
    "UPDATE_COMMIT_MESSAGE",
    "RepoSynchronizer",
    "sanitize_repo_name",
]

FALLBACK_REPO_NAME = "zipship-project"
MAX_REPO_NAME_LENGTH = 100
DEFAULT_BATCH_SIZE = 10
DEFAULT_SETTLE_DELAY = 1.0
INITIAL_COMMIT_MESSAGE = "Initial upload via ZipShip"
UPDATE_COMMIT_MESSAGE = "Updated via ZipShip"

_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9\-_]")
_DASH_RUNS = re.compile(r"-+")

# Entries vanish once no sync holds the lock.
_repo_locks: weakref.WeakValueDictionary[tuple[str, str], threading.Lock] = (
    weakref.WeakValueDictionary()
)
_repo_locks_guard = threading.Lock()


def sanitize_repo_name(name: str) -> str:
    """Derive a GitHub-safe repository name from free-form user input.

    >>> sanitize_repo_name("My Cool App!! v2")
    'my-cool-app-v2'
    """
    sanitized = _INVALID_NAME_CHARS.sub("-", name.lower())
    sanitized = _DASH_RUNS.sub("-", sanitized).strip("-")
    return sanitized[:MAX_REPO_NAME_LENGTH] or FALLBACK_REPO_NAME


def get_blob_batch_size() -> int:
    """Return the blob upload batch size (``ZIPSHIP_BLOB_BATCH_SIZE``)."""
    return max(1, int(os.getenv("ZIPSHIP_BLOB_BATCH_SIZE", DEFAULT_BATCH_SIZE)))


def get_settle_delay() -> float:
    """Return the pause after creating a repository (``ZIPSHIP_SETTLE_DELAY``)."""
    return max(0.0, float(os.getenv("ZIPSHIP_SETTLE_DELAY", DEFAULT_SETTLE_DELAY)))


def _lock_for(owner: str, repo: str) -> threading.Lock:
    """Return the process-wide lock serializing syncs to one repository."""
    key = (owner.lower(), repo)
    with _repo_locks_guard:
        lock = _repo_locks.get(key)
        if lock is None:
            lock = _repo_locks[key] = threading.Lock()
        return lock


class RepoSynchronizer:
    """Replace a repository's default-branch tree with a list of files.

    Args:
        client: Authenticated GitHub client.
        batch_size: Concurrent blob uploads per batch.
        settle_delay: Seconds to wait after creating a repository.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        batch_size: int | None = None,
        settle_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.batch_size = batch_size if batch_size is not None else get_blob_batch_size()
        self.settle_delay = settle_delay if settle_delay is not None else get_settle_delay()
        self._sleep = sleep

    def sync(
        self,
        repo_name: str,
        entries: Sequence[ArchiveEntry],
        *,
        private: bool = False,
    ) -> SyncResult:
        """Create or reuse the repository and commit *entries* as its full tree.

        Args:
            repo_name: Desired name; sanitized before use.
            entries: Final file list. Paths must be unique.
            private: Visibility used only when the repository is created.

        Returns:
            SyncResult for the new commit.

        Raises:
            IdentityNotConnectedError: If GitHub rejects the stored token.
            RemoteSyncError: If any other GitHub call fails.
        """
        name = sanitize_repo_name(repo_name)
        try:
            owner = self._resolve_owner()
            with _lock_for(owner, name):
                return self._sync_locked(owner, name, list(entries), private)
        except GitHubAPIError as exc:
            if exc.status_code == 401:
                raise IdentityNotConnectedError(
                    "GitHub rejected the stored token. Please reconnect your GitHub account."
                ) from exc
            raise RemoteSyncError(f"GitHub synchronization failed: {exc}") from exc

    def _resolve_owner(self) -> str:
        user = self.client.get_authenticated_user()
        return user["login"]

    def _sync_locked(
        self,
        owner: str,
        name: str,
        entries: list[ArchiveEntry],
        private: bool,
    ) -> SyncResult:
        repo, was_preexisting = self._ensure_repo(owner, name, private)
        repo_url = repo["html_url"]

        metadata = self.client.get_repo(owner, name)
        branch_ref = f"heads/{metadata['default_branch']}"
        tip_sha = self.client.get_ref(owner, name, branch_ref)["object"]["sha"]
        base_tree_sha = self.client.get_commit(owner, name, tip_sha)["tree"]["sha"]
        logger.debug("Replacing tree %s of %s/%s@%s", base_tree_sha, owner, name, tip_sha)

        tree_items = self._upload_blobs(owner, name, entries)
        tree = self.client.create_tree(owner, name, tree_items)

        message = UPDATE_COMMIT_MESSAGE if was_preexisting else INITIAL_COMMIT_MESSAGE
        commit = self.client.create_commit(
            owner, name, message=message, tree=tree["sha"], parents=[tip_sha]
        )
        self.client.update_ref(owner, name, branch_ref, commit["sha"])
        logger.info("Pushed %d files to %s/%s (%s)", len(entries), owner, name, commit["sha"])

        return SyncResult(
            repo_url=repo_url,
            owner_login=owner,
            repo_name=name,
            was_preexisting=was_preexisting,
            commit_sha=commit["sha"],
            file_count=len(entries),
        )

    def _ensure_repo(self, owner: str, name: str, private: bool) -> tuple[dict[str, Any], bool]:
        """Return (repository, was_preexisting), creating it only on a 404."""
        try:
            repo = self.client.get_repo(owner, name)
        except GitHubNotFoundError:
            repo = self.client.create_repo(name, private=private, auto_init=True)
            logger.info("Created new repository: %s/%s", owner, name)
            if self.settle_delay:
                self._sleep(self.settle_delay)
            return repo, False

        logger.info("Repository %s/%s exists, updating", owner, name)
        return repo, True

    def _upload_blobs(
        self, owner: str, name: str, entries: list[ArchiveEntry]
    ) -> list[dict[str, str]]:
        """Upload every entry as a blob and return the matching tree items."""
        items: list[dict[str, str]] = []
        total = len(entries)

        def _create(entry: ArchiveEntry) -> dict[str, Any]:
            return self.client.create_blob(owner, name, entry.to_base64())

        with ThreadPoolExecutor(max_workers=self.batch_size) as pool:
            for start in range(0, total, self.batch_size):
                batch = entries[start : start + self.batch_size]
                blobs = list(pool.map(_create, batch))
                items.extend(
                    {"path": entry.path, "mode": "100644", "type": "blob", "sha": blob["sha"]}
                    for entry, blob in zip(batch, blobs, strict=True)
                )
                logger.info("Uploaded %d/%d files", min(start + self.batch_size, total), total)

        return items
