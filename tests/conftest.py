from __future__ import annotations

import base64
import hashlib
import io
import itertools
import threading
import zipfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from zipship.data.db import dispose_engine, init_db
from zipship.services.github_client import GitHubNotFoundError


def _use_temp_db(monkeypatch: pytest.MonkeyPatch, db_path: Path) -> None:
    monkeypatch.setenv("DB_URL", f"sqlite:///{db_path.as_posix()}")
    dispose_engine()
    init_db()


@pytest.fixture
def tmp_db(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Use a temporary SQLite DB for ledger tests."""
    _use_temp_db(monkeypatch, tmp_path / "zipship.db")
    yield
    dispose_engine()


@pytest.fixture
def api_db(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Use a temporary SQLite DB for API tests."""
    _use_temp_db(monkeypatch, tmp_path / "api.db")
    monkeypatch.setenv("ZIPSHIP_SETTLE_DELAY", "0")
    yield
    dispose_engine()


def _build_zip(files: dict[str, bytes | str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


@pytest.fixture
def make_zip():
    """Return a builder for in-memory ZIP archives (name -> content)."""
    return _build_zip


@pytest.fixture(autouse=True)
def _auto_api_db(request: pytest.FixtureRequest) -> None:
    """Automatically add api_db fixture to tests in API test files."""
    test_file_path = Path(str(request.node.fspath))
    if "api" in test_file_path.stem.lower():
        request.getfixturevalue("api_db")


class FakeGitHub:
    """In-memory stand-in for GitHubClient implementing git data semantics.

    Trees created without ``base_tree`` contain exactly the given items, so the
    files visible at a branch tip are precisely the last committed tree.
    Set ``failures[method_name]`` to an exception to make that call fail.
    """

    def __init__(self, login: str = "octocat") -> None:
        self.login = login
        self.repos: dict[str, dict[str, Any]] = {}
        self.blobs: dict[str, bytes] = {}
        self.trees: dict[str, dict[str, str]] = {}
        self.commits: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, tuple, dict]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def _record(self, name: str, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self.calls.append((name, args, kwargs))
        if name in self.failures:
            raise self.failures[name]

    def call_names(self) -> list[str]:
        return [name for name, _, _ in self.calls]

    def _repo(self, owner: str, repo: str) -> dict[str, Any]:
        if owner != self.login or repo not in self.repos:
            raise GitHubNotFoundError(f"GET /repos/{owner}/{repo}: not found")
        return self.repos[repo]

    def _public(self, repo: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": repo["name"],
            "full_name": f"{self.login}/{repo['name']}",
            "html_url": f"https://github.com/{self.login}/{repo['name']}",
            "default_branch": repo["default_branch"],
            "private": repo["private"],
        }

    def _store_tree(self, files: dict[str, str]) -> str:
        digest = hashlib.sha1(repr(sorted(files.items())).encode("utf-8")).hexdigest()
        self.trees[digest] = dict(files)
        return digest

    def _store_commit(self, message: str, tree: str, parents: list[str]) -> str:
        sha = f"commit-{next(self._counter)}"
        self.commits[sha] = {"message": message, "tree": tree, "parents": list(parents)}
        return sha

    def get_authenticated_user(self) -> dict[str, Any]:
        self._record("get_authenticated_user")
        return {"login": self.login, "id": 42, "avatar_url": "https://avatars.example/42"}

    def get_repo(self, owner: str, repo: str) -> dict[str, Any]:
        self._record("get_repo", owner, repo)
        return self._public(self._repo(owner, repo))

    def create_repo(
        self,
        name: str,
        *,
        private: bool = False,
        description: str = "",
        auto_init: bool = True,
    ) -> dict[str, Any]:
        self._record("create_repo", name, private=private, auto_init=auto_init)
        readme = self._put_blob(f"# {name}\n".encode())
        tree = self._store_tree({"README.md": readme})
        commit = self._store_commit("Initial commit", tree, [])
        self.repos[name] = {
            "name": name,
            "private": private,
            "default_branch": "main",
            "refs": {"heads/main": commit},
        }
        return self._public(self.repos[name])

    def get_ref(self, owner: str, repo: str, ref: str) -> dict[str, Any]:
        self._record("get_ref", owner, repo, ref)
        refs = self._repo(owner, repo)["refs"]
        if ref not in refs:
            raise GitHubNotFoundError(f"ref {ref} not found")
        return {"ref": f"refs/{ref}", "object": {"sha": refs[ref], "type": "commit"}}

    def get_commit(self, owner: str, repo: str, sha: str) -> dict[str, Any]:
        self._record("get_commit", owner, repo, sha)
        commit = self.commits[sha]
        return {
            "sha": sha,
            "tree": {"sha": commit["tree"]},
            "parents": [{"sha": parent} for parent in commit["parents"]],
        }

    def _put_blob(self, content: bytes) -> str:
        sha = hashlib.sha1(content).hexdigest()
        with self._lock:
            self.blobs[sha] = content
        return sha

    def create_blob(self, owner: str, repo: str, content_b64: str) -> dict[str, Any]:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self._record("create_blob", owner, repo)
            self._repo(owner, repo)
            return {"sha": self._put_blob(base64.b64decode(content_b64))}
        finally:
            with self._lock:
                self.in_flight -= 1

    def create_tree(
        self,
        owner: str,
        repo: str,
        tree: list[dict[str, str]],
        base_tree: str | None = None,
    ) -> dict[str, Any]:
        self._record("create_tree", owner, repo, base_tree=base_tree)
        self._repo(owner, repo)
        files = dict(self.trees[base_tree]) if base_tree else {}
        for item in tree:
            files[item["path"]] = item["sha"]
        return {"sha": self._store_tree(files)}

    def create_commit(
        self, owner: str, repo: str, *, message: str, tree: str, parents: list[str]
    ) -> dict[str, Any]:
        self._record("create_commit", owner, repo, message=message, parents=parents)
        self._repo(owner, repo)
        return {"sha": self._store_commit(message, tree, parents)}

    def update_ref(
        self, owner: str, repo: str, ref: str, sha: str, *, force: bool = False
    ) -> dict[str, Any]:
        self._record("update_ref", owner, repo, ref, sha)
        self._repo(owner, repo)["refs"][ref] = sha
        return {"ref": f"refs/{ref}", "object": {"sha": sha}}

    def head(self, repo: str) -> str:
        data = self.repos[repo]
        return data["refs"][f"heads/{data['default_branch']}"]

    def files(self, repo: str) -> dict[str, bytes]:
        """Return path -> content at the tip of the default branch."""
        tree = self.trees[self.commits[self.head(repo)]["tree"]]
        return {path: self.blobs[sha] for path, sha in tree.items()}


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()
