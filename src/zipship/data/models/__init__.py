"""ORM models package for database tables.

This package provides SQLAlchemy ORM models representing database tables:
- User: API caller and their subscription plan
- Purchase: Deploy credit grants, consumed oldest first
- Deployment: One row per deploy attempt and its outcome
- GithubConnection: The user's GitHub OAuth token (one per user)

All models inherit from the shared Base declarative class defined in data.db.
"""

from zipship.data.db import Base
from zipship.data.models.deployment import Deployment, DeploymentStatus
from zipship.data.models.github_connection import GithubConnection
from zipship.data.models.purchase import UNLIMITED_DEPLOYS, Purchase
from zipship.data.models.user import User

__all__ = [
    "UNLIMITED_DEPLOYS",
    "Base",
    "Deployment",
    "DeploymentStatus",
    "GithubConnection",
    "Purchase",
    "User",
]
