"""Minimal GitHub REST client for the git data (plumbing) API.

Only the calls the repository synchronizer needs are wrapped. A 404 is
raised as GitHubNotFoundError so callers can tell "missing" apart from every
other failure.
"""

from __future__ import annotations

import logging
import os
from typing import Any
from urllib.parse import urlencode

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30
OAUTH_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
OAUTH_TOKEN_URL = "https://github.com/login/oauth/access_token"


class GitHubAPIError(RuntimeError):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubNotFoundError(GitHubAPIError):
    """Raised when GitHub answers 404 for the requested resource."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


def get_api_url() -> str:
    """Return the GitHub API base URL, allowing overrides for GitHub Enterprise."""
    return os.getenv("GITHUB_API_URL", DEFAULT_API_URL).rstrip("/")


class GitHubClient:
    """Token-authenticated wrapper around ``requests.Session``."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str | None = None,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = (base_url or get_api_url()).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise GitHubAPIError(f"{method} {path} failed: {exc}") from exc

        logger.debug("%s %s -> %s", method, path, response.status_code)

        if response.status_code == 404:
            raise GitHubNotFoundError(f"{method} {path}: not found")
        if not response.ok:
            raise GitHubAPIError(
                f"{method} {path} returned {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        return response.json()

    def get_authenticated_user(self) -> dict[str, Any]:
        return self._request("GET", "/user")

    def get_repo(self, owner: str, repo: str) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}")

    def create_repo(
        self,
        name: str,
        *,
        private: bool = False,
        description: str = "Deployed via ZipShip",
        auto_init: bool = True,
    ) -> dict[str, Any]:
        """Create a repository under the authenticated user's account."""
        return self._request(
            "POST",
            "/user/repos",
            json={
                "name": name,
                "description": description,
                "private": private,
                "auto_init": auto_init,
            },
        )

    def get_ref(self, owner: str, repo: str, ref: str) -> dict[str, Any]:
        """Read a ref such as ``heads/main``."""
        return self._request("GET", f"/repos/{owner}/{repo}/git/ref/{ref}")

    def get_commit(self, owner: str, repo: str, sha: str) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/git/commits/{sha}")

    def create_blob(self, owner: str, repo: str, content_b64: str) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/blobs",
            json={"content": content_b64, "encoding": "base64"},
        )

    def create_tree(
        self,
        owner: str,
        repo: str,
        tree: list[dict[str, str]],
        base_tree: str | None = None,
    ) -> dict[str, Any]:
        """Create a tree; without *base_tree* it contains exactly *tree*."""
        payload: dict[str, Any] = {"tree": tree}
        if base_tree is not None:
            payload["base_tree"] = base_tree
        return self._request("POST", f"/repos/{owner}/{repo}/git/trees", json=payload)

    def create_commit(
        self,
        owner: str,
        repo: str,
        *,
        message: str,
        tree: str,
        parents: list[str],
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/commits",
            json={"message": message, "tree": tree, "parents": parents},
        )

    def update_ref(
        self, owner: str, repo: str, ref: str, sha: str, *, force: bool = False
    ) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/repos/{owner}/{repo}/git/refs/{ref}",
            json={"sha": sha, "force": force},
        )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text[:200]


def build_authorize_url(state: str, base_url: str | None = None) -> str:
    """Return the GitHub OAuth authorize URL for the ``repo`` scope.

    The redirect URI must match the callback registered with the OAuth app.
    """
    callback_base = base_url or os.getenv("APP_URL", "http://localhost:8000")
    params = {
        "client_id": os.getenv("GITHUB_CLIENT_ID", ""),
        "redirect_uri": f"{callback_base.rstrip('/')}/api/github/callback",
        "scope": "repo",
        "state": state,
        "prompt": "consent",
    }
    return f"{OAUTH_AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code_for_token(code: str, *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Exchange an OAuth callback code for an access token.

    Raises:
        GitHubAPIError: If GitHub rejects the code or the request fails.
    """
    try:
        response = requests.post(
            OAUTH_TOKEN_URL,
            headers={"Accept": "application/json"},
            json={
                "client_id": os.getenv("GITHUB_CLIENT_ID"),
                "client_secret": os.getenv("GITHUB_CLIENT_SECRET"),
                "code": code,
            },
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise GitHubAPIError(f"Token exchange failed: {exc}") from exc

    try:
        data = response.json()
    except ValueError:
        data = {}
    if not response.ok or data.get("error") or not data.get("access_token"):
        raise GitHubAPIError(
            data.get("error_description") or "Failed to exchange code for token",
            status_code=response.status_code,
        )
    return data["access_token"]
