"""User router: own profile for everyone, account management for admins."""

from fastapi import APIRouter, HTTPException, Request, status

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    AdminUser,
    CurrentUser,
    UserServiceDep,
    request_context,
)
from proxportal.models import User
from proxportal.schemas import (
    ApiResponse,
    MessageResponse,
    UserCreate,
    UserResponse,
    UserStatusUpdate,
    UserUpdate,
)
from proxportal.services import UserService

router = APIRouter(prefix="/api/users", tags=["users"])


async def get_user_or_404(users: UserService, user_id: int) -> User:
    user = await users.get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(user: CurrentUser) -> ApiResponse[UserResponse]:
    """Get the current user's profile."""
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    request: Request,
    data: UserUpdate,
    user: CurrentUser,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[UserResponse]:
    """Update the current user's name, email or password."""
    try:
        user = await users.update_profile(user, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        user.id,
        "user.update_profile",
        details=data.model_dump(exclude_unset=True, mode="json"),
        **request_context(request),
    )
    return ApiResponse(message="Profile updated successfully", data=UserResponse.model_validate(user))


@router.get("", response_model=ApiResponse[list[UserResponse]])
async def list_users(admin: AdminUser, users: UserServiceDep) -> ApiResponse[list[UserResponse]]:
    """List every user."""
    all_users = await users.get_all()
    return ApiResponse(data=[UserResponse.model_validate(u) for u in all_users])


@router.post(
    "",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    request: Request,
    data: UserCreate,
    admin: AdminUser,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[UserResponse]:
    """Create a user with any role."""
    try:
        user = await users.create(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        admin.id,
        "user.create",
        resource=str(user.id),
        details={"email": user.email, "role": data.role.value},
        **request_context(request),
    )
    return ApiResponse(message="User created successfully", data=UserResponse.model_validate(user))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(user_id: int, admin: AdminUser, users: UserServiceDep) -> ApiResponse[UserResponse]:
    """Get a user by ID."""
    user = await get_user_or_404(users, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(
    request: Request,
    user_id: int,
    data: UserUpdate,
    admin: AdminUser,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[UserResponse]:
    """Update a user."""
    user = await get_user_or_404(users, user_id)
    try:
        user = await users.update(user, data, acting_user=admin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        admin.id,
        "user.update",
        resource=str(user.id),
        details=data.model_dump(exclude_unset=True, mode="json"),
        **request_context(request),
    )
    return ApiResponse(message="User updated successfully", data=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    request: Request,
    user_id: int,
    admin: AdminUser,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> MessageResponse:
    """Delete a user and the servers they own."""
    user = await get_user_or_404(users, user_id)
    email = user.email
    try:
        await users.delete(user, acting_user=admin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        admin.id,
        "user.delete",
        resource=str(user_id),
        details={"email": email},
        **request_context(request),
    )
    return MessageResponse(message="User deleted successfully")


@router.put("/{user_id}/status", response_model=ApiResponse[UserResponse])
async def set_user_status(
    request: Request,
    user_id: int,
    data: UserStatusUpdate,
    admin: AdminUser,
    users: UserServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[UserResponse]:
    """Activate or deactivate a user."""
    user = await get_user_or_404(users, user_id)
    try:
        user = await users.set_active(user, data.is_active, acting_user=admin)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        admin.id,
        "user.activate" if data.is_active else "user.deactivate",
        resource=str(user.id),
        **request_context(request),
    )
    state = "activated" if data.is_active else "deactivated"
    return ApiResponse(message=f"User {state} successfully", data=UserResponse.model_validate(user))
