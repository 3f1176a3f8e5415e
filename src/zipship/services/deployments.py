"""Deployment ledger.

Every deploy attempt gets exactly one row, created ``pending`` before any
remote call and moved exactly once to ``success`` or ``failed``. Repeating a
terminal transition is a no-op so cleanup paths can call it unconditionally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import desc

from zipship.data.db import get_session
from zipship.data.models import Deployment, DeploymentStatus, Purchase
from zipship.errors import CreditExhaustedError
from zipship.services.credits import select_purchase_for_deploy

logger = logging.getLogger(__name__)

__all__ = [
    "DeploymentHandle",
    "begin_deployment",
    "complete_deployment",
    "fail_deployment",
    "get_deployment",
    "list_deployments",
]


@dataclass(frozen=True, slots=True)
class DeploymentHandle:
    """Reference to a pending deployment row."""

    deployment_id: int
    user_id: int
    purchase_id: int | None


def _deployment_to_dict(deployment: Deployment) -> dict:
    return {
        "id": deployment.id,
        "project_name": deployment.project_name,
        "status": deployment.status,
        "github_repo_url": deployment.github_repo_url,
        "github_repo_owner": deployment.github_repo_owner,
        "github_repo_name": deployment.github_repo_name,
        "files_count": deployment.files_count,
        "error_message": deployment.error_message,
        "created_at": deployment.created_at,
        "completed_at": deployment.completed_at,
    }


def begin_deployment(user_id: int, project_name: str) -> DeploymentHandle:
    """Charge one credit and record a pending deployment in one transaction.

    Raises:
        CreditExhaustedError: If no grant has credit left. No row is created.
    """
    with get_session() as session:
        purchase = select_purchase_for_deploy(session, user_id)
        if purchase is None:
            raise CreditExhaustedError()

        deployment = Deployment(
            user_id=user_id,
            purchase_id=purchase.id,
            project_name=project_name,
            status=DeploymentStatus.PENDING.value,
        )
        session.add(deployment)
        if not purchase.is_unlimited:
            purchase.deploys_used = Purchase.deploys_used + 1
        session.flush()

        logger.info("Started deployment %d for user %d", deployment.id, user_id)
        return DeploymentHandle(
            deployment_id=deployment.id, user_id=user_id, purchase_id=purchase.id
        )


def _get_pending(session, handle: DeploymentHandle) -> Deployment | None:
    deployment = session.get(Deployment, handle.deployment_id)
    if deployment is None:
        raise LookupError(f"Deployment {handle.deployment_id} does not exist")
    if deployment.status != DeploymentStatus.PENDING.value:
        logger.debug(
            "Deployment %d already %s; ignoring transition", deployment.id, deployment.status
        )
        return None
    return deployment


def complete_deployment(
    handle: DeploymentHandle,
    *,
    repo_url: str,
    owner: str,
    repo: str,
    file_count: int,
) -> None:
    """Mark a pending deployment successful and record where it landed."""
    with get_session() as session:
        deployment = _get_pending(session, handle)
        if deployment is None:
            return
        deployment.status = DeploymentStatus.SUCCESS.value
        deployment.github_repo_url = repo_url
        deployment.github_repo_owner = owner
        deployment.github_repo_name = repo
        deployment.files_count = file_count
        deployment.completed_at = datetime.now(UTC)


def fail_deployment(handle: DeploymentHandle, message: str | None = None) -> None:
    """Mark a pending deployment failed."""
    with get_session() as session:
        deployment = _get_pending(session, handle)
        if deployment is None:
            return
        deployment.status = DeploymentStatus.FAILED.value
        deployment.error_message = message
        deployment.completed_at = datetime.now(UTC)


def get_deployment(deployment_id: int) -> dict | None:
    with get_session() as session:
        deployment = session.get(Deployment, deployment_id)
        return _deployment_to_dict(deployment) if deployment is not None else None


def list_deployments(user_id: int) -> list[dict]:
    """Return the user's deployments, newest first."""
    with get_session() as session:
        deployments = (
            session.query(Deployment)
            .filter(Deployment.user_id == user_id)
            .order_by(desc(Deployment.created_at), desc(Deployment.id))
            .all()
        )
        return [_deployment_to_dict(deployment) for deployment in deployments]
