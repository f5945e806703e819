"""User service for dashboard account management."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.core.security import (
    count_active_admins,
    create_user,
    get_user_by_email,
    hash_password,
    verify_password,
)
from proxportal.models import ActivityLog, User, UserRole
from proxportal.schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class UserService:
    """Service for user CRUD and the rules protecting admin access.

    Rule violations raise ValueError with a message fit for the client.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self) -> list[User]:
        """Get all users, newest first."""
        result = await self.db.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, user_id: int) -> User | None:
        """Get a user by ID."""
        return await self.db.get(User, user_id)

    async def create(self, data: UserCreate) -> User:
        """Create a user, rejecting duplicate emails."""
        if await get_user_by_email(self.db, data.email):
            raise ValueError("User with this email already exists")

        user = await create_user(
            self.db,
            email=data.email,
            password=data.password,
            name=data.name,
            role=data.role,
            username=data.username,
        )
        logger.info(f"Created user {user.email} with role {user.role}")
        return user

    async def update(self, user: User, data: UserUpdate, acting_user: User) -> User:
        """Update a user as an admin.

        Admins may not change their own role, and the last active admin
        may not be demoted.
        """
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        new_role = update_data.get("role")
        if new_role is not None and new_role != user.role:
            if user.id == acting_user.id:
                raise ValueError("You cannot change your own role")
            if user.role == UserRole.ADMIN and await self._is_last_active_admin(user):
                raise ValueError("Cannot demote the last active admin")

        return await self._apply(user, update_data)

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        """Update the current user's own profile. Roles cannot change here."""
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if "role" in update_data and update_data["role"] != user.role:
            raise ValueError("You cannot change your own role")
        update_data.pop("role", None)

        return await self._apply(user, update_data)

    async def _apply(self, user: User, update_data: dict) -> User:
        email = update_data.get("email")
        if email and email != user.email:
            existing = await get_user_by_email(self.db, email)
            if existing and existing.id != user.id:
                raise ValueError("Email is already in use")

        password = update_data.pop("password", None)
        if password:
            user.password_hash = hash_password(password)

        for field, value in update_data.items():
            setattr(user, field, value)

        await self.db.flush()
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """Change a user's password after checking the current one."""
        if not verify_password(current_password, user.password_hash):
            raise ValueError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        user.require_password_change = False
        await self.db.flush()
        logger.info(f"Password changed for {user.email}")

    async def delete(self, user: User, acting_user: User) -> None:
        """Delete a user. Admins cannot delete themselves or the last active admin."""
        if user.id == acting_user.id:
            raise ValueError("You cannot delete your own account")
        if user.role == UserRole.ADMIN and await self._is_last_active_admin(user):
            raise ValueError("Cannot delete the last active admin")

        # SQLite does not enforce ON DELETE CASCADE without a pragma
        await self.db.execute(delete(ActivityLog).where(ActivityLog.user_id == user.id))
        await self.db.delete(user)
        await self.db.flush()
        logger.info(f"Deleted user {user.email}")

    async def set_active(self, user: User, is_active: bool, acting_user: User) -> User:
        """Activate or deactivate a user."""
        if not is_active:
            if user.id == acting_user.id:
                raise ValueError("You cannot deactivate your own account")
            if user.role == UserRole.ADMIN and await self._is_last_active_admin(user):
                raise ValueError("Cannot deactivate the last active admin")

        user.is_active = is_active
        await self.db.flush()
        return user

    async def _is_last_active_admin(self, user: User) -> bool:
        return user.is_active and await count_active_admins(self.db) <= 1
