"""Exception hierarchy for the deploy pipeline.

Each error carries the HTTP status the API layer reports for it, so route
handlers can translate failures without re-deriving the mapping.
"""

from __future__ import annotations


class ZipShipError(Exception):
    """Base class for all deploy pipeline failures."""

    http_status = 500
    code = "ZIPSHIP_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidArchiveError(ZipShipError):
    """Raised when the upload is not a ZIP archive or holds no usable files."""

    http_status = 400
    code = "INVALID_ARCHIVE"


class CreditExhaustedError(ZipShipError):
    """Raised when the account has no remaining deploy credit."""

    http_status = 402
    code = "CREDIT_EXHAUSTED"

    def __init__(self, message: str = "No deploys remaining. Please purchase more.") -> None:
        super().__init__(message)


class IdentityNotConnectedError(ZipShipError):
    """Raised when no GitHub credential is stored for the user."""

    http_status = 503
    code = "GITHUB_NOT_CONNECTED"

    def __init__(
        self,
        message: str = "GitHub is not connected. Please connect your GitHub account.",
    ) -> None:
        super().__init__(message)


class RemoteSyncError(ZipShipError):
    """Raised when any GitHub call during repository synchronization fails."""

    http_status = 502
    code = "REMOTE_SYNC_FAILED"


class RewriteCollaboratorError(ZipShipError):
    """Raised inside the AI rewriter; always downgraded to a warning."""

    code = "REWRITE_FAILED"
