from __future__ import annotations

import pytest

from zipship.errors import IdentityNotConnectedError, RemoteSyncError
from zipship.models.archive import ArchiveEntry
from zipship.services import repo_sync
from zipship.services.github_client import GitHubAPIError
from zipship.services.repo_sync import (
    FALLBACK_REPO_NAME,
    INITIAL_COMMIT_MESSAGE,
    UPDATE_COMMIT_MESSAGE,
    RepoSynchronizer,
    get_blob_batch_size,
    get_settle_delay,
    sanitize_repo_name,
)


def _entries(files: dict[str, bytes]) -> list[ArchiveEntry]:
    return [ArchiveEntry(path=path, content=content) for path, content in files.items()]


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def synchronizer(fake_github, sleeps: list[float]) -> RepoSynchronizer:
    return RepoSynchronizer(fake_github, batch_size=10, settle_delay=1.0, sleep=sleeps.append)


def test_first_deploy_creates_repository(fake_github, synchronizer, sleeps) -> None:
    files = {"index.html": b"<html></html>", "src/app.js": b"console.log(1)"}

    result = synchronizer.sync("Demo", _entries(files), private=True)

    assert result.was_preexisting is False
    assert result.repo_name == "demo"
    assert result.owner_login == "octocat"
    assert result.repo_url == "https://github.com/octocat/demo"
    assert result.file_count == 2
    assert fake_github.repos["demo"]["private"] is True
    assert fake_github.commits[result.commit_sha]["message"] == INITIAL_COMMIT_MESSAGE
    # The auto-init README is replaced along with everything else
    assert fake_github.files("demo") == files
    assert sleeps == [1.0]


def test_redeploy_of_same_files_is_idempotent(fake_github, synchronizer, sleeps) -> None:
    files = {"a.txt": b"alpha", "b.txt": b"beta"}
    first = synchronizer.sync("demo", _entries(files))

    second = synchronizer.sync("demo", _entries(files))

    assert second.was_preexisting is True
    assert fake_github.files("demo") == files
    commit = fake_github.commits[second.commit_sha]
    assert commit["message"] == UPDATE_COMMIT_MESSAGE
    assert commit["parents"] == [first.commit_sha]
    assert commit["tree"] == fake_github.commits[first.commit_sha]["tree"]
    assert fake_github.call_names().count("create_repo") == 1
    assert sleeps == [1.0]


def test_redeploy_replaces_the_whole_tree(fake_github, synchronizer) -> None:
    synchronizer.sync("demo", _entries({"a.txt": b"a", "b.txt": b"old b"}))

    synchronizer.sync("demo", _entries({"b.txt": b"new b", "c.txt": b"c"}))

    assert fake_github.files("demo") == {"b.txt": b"new b", "c.txt": b"c"}


def test_trees_are_created_without_a_base(fake_github, synchronizer) -> None:
    synchronizer.sync("demo", _entries({"a.txt": b"a"}))
    synchronizer.sync("demo", _entries({"b.txt": b"b"}))

    tree_calls = [kwargs for name, _, kwargs in fake_github.calls if name == "create_tree"]
    assert tree_calls == [{"base_tree": None}, {"base_tree": None}]


def test_binary_content_round_trips(fake_github, synchronizer) -> None:
    payload = bytes(range(256))

    synchronizer.sync("demo", [ArchiveEntry(path="bin/data.dat", content=payload, is_binary=True)])

    assert fake_github.files("demo") == {"bin/data.dat": payload}


def test_blob_uploads_are_batched(fake_github, sleeps) -> None:
    synchronizer = RepoSynchronizer(fake_github, batch_size=3, settle_delay=0, sleep=sleeps.append)
    files = {f"file{i}.txt": f"content {i}".encode() for i in range(8)}

    result = synchronizer.sync("demo", _entries(files))

    assert result.file_count == 8
    assert fake_github.call_names().count("create_blob") == 8
    assert fake_github.max_in_flight <= 3
    assert fake_github.files("demo") == files
    assert sleeps == []


def test_existing_repository_is_not_recreated(fake_github, synchronizer) -> None:
    fake_github.create_repo("demo", private=False)

    result = synchronizer.sync("demo", _entries({"a.txt": b"a"}), private=True)

    assert result.was_preexisting is True
    assert fake_github.repos["demo"]["private"] is False
    assert fake_github.call_names().count("create_repo") == 1


def test_non_404_lookup_error_does_not_create(fake_github, synchronizer) -> None:
    fake_github.failures["get_repo"] = GitHubAPIError("server error", status_code=500)

    with pytest.raises(RemoteSyncError, match="server error"):
        synchronizer.sync("demo", _entries({"a.txt": b"a"}))

    assert "create_repo" not in fake_github.call_names()


def test_rejected_token_maps_to_identity_error(fake_github, synchronizer) -> None:
    fake_github.failures["get_authenticated_user"] = GitHubAPIError("Bad credentials", 401)

    with pytest.raises(IdentityNotConnectedError):
        synchronizer.sync("demo", _entries({"a.txt": b"a"}))


def test_failure_before_ref_update_leaves_branch_untouched(fake_github, synchronizer) -> None:
    first = synchronizer.sync("demo", _entries({"a.txt": b"a"}))
    fake_github.failures["create_commit"] = GitHubAPIError("boom", status_code=500)

    with pytest.raises(RemoteSyncError):
        synchronizer.sync("demo", _entries({"z.txt": b"z"}))

    assert fake_github.head("demo") == first.commit_sha
    assert fake_github.files("demo") == {"a.txt": b"a"}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("My Cool App!! v2", "my-cool-app-v2"),
        ("already-fine_name", "already-fine_name"),
        ("--Leading and trailing--", "leading-and-trailing"),
        ("!!!", FALLBACK_REPO_NAME),
        ("", FALLBACK_REPO_NAME),
        ("x" * 150, "x" * 100),
        ("a" * 99 + " b", "a" * 99 + "-"),
    ],
)
def test_sanitize_repo_name(raw: str, expected: str) -> None:
    assert sanitize_repo_name(raw) == expected


def test_sanitized_names_are_stable() -> None:
    once = sanitize_repo_name("Hello World")

    assert sanitize_repo_name(once) == once


def test_tuning_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ZIPSHIP_BLOB_BATCH_SIZE", "4")
    monkeypatch.setenv("ZIPSHIP_SETTLE_DELAY", "0.25")

    assert get_blob_batch_size() == 4
    assert get_settle_delay() == 0.25

    monkeypatch.setenv("ZIPSHIP_BLOB_BATCH_SIZE", "0")
    assert get_blob_batch_size() == 1


def test_repository_locks_are_released_after_sync(synchronizer) -> None:
    synchronizer.sync("demo", _entries({"a.txt": b"a"}))
    synchronizer.sync("other", _entries({"b.txt": b"b"}))

    assert len(repo_sync._repo_locks) == 0


def test_repository_lock_is_shared_while_held() -> None:
    lock = repo_sync._lock_for("Octocat", "demo")

    assert repo_sync._lock_for("octocat", "demo") is lock
    assert repo_sync._lock_for("octocat", "other") is not lock
