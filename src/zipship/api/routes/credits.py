"""Credit routes for the API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Body, Depends, HTTPException, status

from zipship.api.dependencies import (
    get_authorization_policy,
    get_current_user_id,
    get_current_username,
)
from zipship.api.schemas.credits import (
    GrantCreditsRequest,
    GrantCreditsResponse,
    UserStatsResponse,
)
from zipship.services.credits import AuthorizationPolicy, get_user_stats, grant_test_credits

router = APIRouter(tags=["credits"])


@router.get(
    "/user/stats",
    response_model=UserStatsResponse,
    summary="Get deploy credit stats",
)
def get_stats(user_id: Annotated[int, Depends(get_current_user_id)]) -> UserStatsResponse:
    return UserStatsResponse(**get_user_stats(user_id))


@router.post(
    "/test/grant-credits",
    response_model=GrantCreditsResponse,
    summary="Grant free test credits",
    description="Privileged accounts only. At most 10 credits per call.",
    responses={403: {"description": "Caller is not privileged"}},
)
def grant_credits(
    username: Annotated[str, Depends(get_current_username)],
    user_id: Annotated[int, Depends(get_current_user_id)],
    policy: Annotated[AuthorizationPolicy, Depends(get_authorization_policy)],
    payload: Annotated[GrantCreditsRequest | None, Body()] = None,
) -> GrantCreditsResponse:
    if not policy.is_privileged(username):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )

    amount = payload.amount if payload is not None else GrantCreditsRequest().amount
    granted = grant_test_credits(user_id, amount)
    return GrantCreditsResponse(
        success=True,
        granted=granted,
        message=f"Granted {granted} test credits",
    )
