"""In-memory data models for the deploy pipeline."""

from zipship.models.archive import ArchiveEntry, NormalizedArchive, RejectedEntry
from zipship.models.deploy import DeployOptions, DeployResult, SyncResult

__all__ = [
    "ArchiveEntry",
    "DeployOptions",
    "DeployResult",
    "NormalizedArchive",
    "RejectedEntry",
    "SyncResult",
]
