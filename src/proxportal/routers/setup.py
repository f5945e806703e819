"""First-run setup: create the initial admin account."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    AppSettings,
    DbSession,
    request_context,
)
from proxportal.core.security import create_user, get_user_count
from proxportal.models import UserRole
from proxportal.routers.auth import issue_token
from proxportal.schemas import ApiResponse, SetupRequest, SetupStatus, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/setup", tags=["setup"])


@router.get("/status", response_model=ApiResponse[SetupStatus])
async def setup_status(db: DbSession) -> ApiResponse[SetupStatus]:
    """Report whether the first admin still has to be created."""
    needs_setup = await get_user_count(db) == 0
    message = "Initial setup required" if needs_setup else "Setup already completed"
    return ApiResponse(data=SetupStatus(needs_setup=needs_setup, message=message))


@router.post(
    "/initialize",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def initialize(
    request: Request,
    data: SetupRequest,
    db: DbSession,
    settings: AppSettings,
    activity: ActivityLogServiceDep,
) -> ApiResponse[TokenResponse]:
    """Create the first admin and sign them in."""
    if await get_user_count(db) > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Setup has already been completed",
        )

    user = await create_user(db, data.email, data.password, data.name, role=UserRole.ADMIN)
    logger.info(f"Initial admin {user.email} created")
    await activity.log(user.id, "setup.initialize", **request_context(request))

    return ApiResponse(message="Setup completed successfully", data=issue_token(user, settings))
