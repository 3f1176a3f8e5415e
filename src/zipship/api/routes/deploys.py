"""Deploy routes for the API."""

from __future__ import annotations

import os
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from zipship.api.dependencies import get_current_user_id
from zipship.api.schemas.deploys import DeploymentSummary, DeployResponse
from zipship.errors import CreditExhaustedError, ZipShipError
from zipship.models.deploy import DeployOptions
from zipship.services.credits import has_remaining_credit
from zipship.services.deploy import deploy
from zipship.services.deployments import list_deployments
from zipship.services.users import is_free_tier

router = APIRouter(prefix="/deploys", tags=["deploys"])

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024
_CHUNK_SIZE = 64 * 1024


def get_max_upload_bytes() -> int:
    """Return the upload size limit (``ZIPSHIP_MAX_UPLOAD_BYTES``)."""
    return int(os.getenv("ZIPSHIP_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES))


def _error_response(exc: ZipShipError) -> HTTPException:
    return HTTPException(status_code=exc.http_status, detail=exc.message)


def _read_upload(file: UploadFile, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = file.file.read(_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        if size > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"Upload exceeds the {limit} byte limit.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post(
    "/zip",
    response_model=DeployResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deploy a ZIP archive to GitHub",
    description=(
        "Publish the uploaded archive as the full contents of a GitHub repository "
        "named after the project. Redeploying the same project replaces its tree."
    ),
    responses={
        400: {"description": "Invalid or empty ZIP archive"},
        402: {"description": "No deploys remaining"},
        413: {"description": "Upload too large"},
        502: {"description": "GitHub synchronization failed"},
        503: {"description": "GitHub is not connected"},
    },
)
def deploy_zip(
    user_id: Annotated[int, Depends(get_current_user_id)],
    file: Annotated[UploadFile, File(description="ZIP archive containing project files")],
    project_name: Annotated[str, Form(min_length=1)],
    ai_fix_enabled: Annotated[bool, Form()] = False,
    private: Annotated[bool, Form()] = False,
) -> DeployResponse:
    # Refuse before touching the upload when there is nothing to charge.
    if not has_remaining_credit(user_id):
        raise _error_response(CreditExhaustedError())

    archive_bytes = _read_upload(file, get_max_upload_bytes())
    options = DeployOptions(
        ai_fix_enabled=ai_fix_enabled,
        is_free_tier=is_free_tier(user_id),
        private=private,
    )

    try:
        result = deploy(user_id, project_name, archive_bytes, options)
    except ZipShipError as exc:
        raise _error_response(exc) from exc

    return DeployResponse.model_validate(result)


@router.get(
    "",
    response_model=list[DeploymentSummary],
    summary="List deployments",
    description="Return the caller's deployments, newest first.",
)
def get_deployments(
    user_id: Annotated[int, Depends(get_current_user_id)],
) -> list[DeploymentSummary]:
    return [DeploymentSummary.model_validate(row) for row in list_deployments(user_id)]
