"""Authentication router for login, registration and the current user."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    AppSettings,
    CurrentUser,
    DbSession,
    UserServiceDep,
    request_context,
)
from proxportal.core.rate_limit import LoginLockout, rate_limit
from proxportal.core.security import authenticate_user, create_access_token, get_user_by_email
from proxportal.models import User, UserRole
from proxportal.schemas import (
    ApiResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    TokenResponse,
    UserCreate,
    UserResponse,
)
from proxportal.services.activity_log_service import status_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def issue_token(user: User, settings: AppSettings) -> TokenResponse:
    """Build the login response for a user."""
    return TokenResponse(
        token=create_access_token(user, settings),
        expires_in=settings.auth.jwt_expire_hours * 3600,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/login",
    response_model=ApiResponse[TokenResponse],
    dependencies=[Depends(rate_limit("login"))],
)
async def login(
    request: Request,
    data: LoginRequest,
    db: DbSession,
    settings: AppSettings,
    activity: ActivityLogServiceDep,
) -> ApiResponse[TokenResponse]:
    """Exchange email and password for an access token."""
    lockout: LoginLockout = request.app.state.login_lockout

    remaining = lockout.remaining_seconds(data.email)
    if remaining:
        minutes = max(1, (remaining + 59) // 60)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=(
                "Account temporarily locked due to too many failed login attempts. "
                f"Try again in {minutes} minutes."
            ),
            headers={"Retry-After": str(remaining)},
        )

    user = await authenticate_user(db, data.email, data.password)
    if not user:
        lockout.record_failure(data.email)
        logger.info(f"Failed login for {data.email}")
        known = await get_user_by_email(db, data.email)
        if known is not None:
            await activity.log(
                known.id,
                "auth.login",
                details={"email": data.email},
                status=status_for(status.HTTP_401_UNAUTHORIZED),
                **request_context(request),
            )
            # Keep the failure record when the request is rolled back
            await db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    lockout.reset(data.email)
    await activity.log(user.id, "auth.login", **request_context(request))

    return ApiResponse(message="Login successful", data=issue_token(user, settings))


@router.post(
    "/register",
    response_model=ApiResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("registration"))],
)
async def register(
    request: Request,
    data: RegisterRequest,
    settings: AppSettings,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[TokenResponse]:
    """Create a ``user`` account when self-service registration is enabled."""
    if not settings.auth.allow_registration:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Registration is disabled",
        )

    try:
        user = await users.create(
            UserCreate(
                email=data.email,
                password=data.password,
                name=data.name,
                username=data.username,
                role=UserRole.USER,
            )
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(user.id, "auth.register", **request_context(request))

    return ApiResponse(message="Registration successful", data=issue_token(user, settings))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    user: CurrentUser,
    activity: ActivityLogServiceDep,
) -> MessageResponse:
    """Acknowledge a logout. Tokens are stateless; the client discards its copy."""
    await activity.log(user.id, "auth.logout", **request_context(request))
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def me(user: CurrentUser) -> ApiResponse[UserResponse]:
    """Get the current user."""
    return ApiResponse(data=UserResponse.model_validate(user))


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: Request,
    data: ChangePasswordRequest,
    db: DbSession,
    user: CurrentUser,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> MessageResponse:
    """Change the current user's password."""
    try:
        await users.change_password(user, data.current_password, data.new_password)
    except ValueError as e:
        await activity.log(
            user.id,
            "auth.change_password",
            details={"error": str(e)},
            status=status_for(status.HTTP_400_BAD_REQUEST),
            **request_context(request),
        )
        await db.commit()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(user.id, "auth.change_password", **request_context(request))
    return MessageResponse(message="Password changed successfully")
