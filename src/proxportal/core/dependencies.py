"""FastAPI dependencies for authentication and common resources."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.config import Settings, get_settings
from proxportal.core.database import get_session
from proxportal.core.security import decode_access_token, get_user_by_id
from proxportal.models import User, UserRole
from proxportal.services import (
    ActivityLogService,
    ProxmoxService,
    ServerService,
    SettingsService,
    UserService,
)

logger = logging.getLogger(__name__)

# Type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]

bearer_scheme = HTTPBearer(auto_error=False)


# Service dependencies
def get_user_service(db: DbSession) -> UserService:
    """Get UserService instance."""
    return UserService(db)


def get_server_service(db: DbSession) -> ServerService:
    """Get ServerService instance."""
    return ServerService(db)


def get_settings_service(db: DbSession) -> SettingsService:
    """Get SettingsService instance."""
    return SettingsService(db)


def get_activity_log_service(db: DbSession) -> ActivityLogService:
    """Get ActivityLogService instance."""
    return ActivityLogService(db)


def get_proxmox_service(request: Request, db: DbSession, settings: AppSettings) -> ProxmoxService:
    """Get ProxmoxService instance, using a transport installed on the app if any."""
    transport = getattr(request.app.state, "proxmox_transport", None)
    return ProxmoxService(db, settings, transport=transport)


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
ServerServiceDep = Annotated[ServerService, Depends(get_server_service)]
SettingsServiceDep = Annotated[SettingsService, Depends(get_settings_service)]
ActivityLogServiceDep = Annotated[ActivityLogService, Depends(get_activity_log_service)]
ProxmoxServiceDep = Annotated[ProxmoxService, Depends(get_proxmox_service)]


def client_ip(request: Request) -> str | None:
    """Best guess at the caller's address, honouring proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return None


def request_context(request: Request) -> dict[str, str | None]:
    """Caller details recorded with activity log entries."""
    return {
        "ip_address": client_ip(request),
        "user_agent": request.headers.get("user-agent"),
    }


async def get_current_user(
    request: Request,
    db: DbSession,
    settings: AppSettings,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> User:
    """Resolve the bearer token to an active user, raising 401 otherwise."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials, settings)
    except JWTError as e:
        logger.debug(f"Rejected access token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user = await get_user_by_id(db, payload.user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    # Keys per-user rate limits
    request.state.user_id = user.id
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def require_roles(*roles: UserRole):
    """Build a dependency admitting only users with one of ``roles``."""

    async def dependency(user: CurrentUser) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return dependency


require_admin = require_roles(UserRole.ADMIN)
require_operator = require_roles(UserRole.ADMIN, UserRole.USER)

AdminUser = Annotated[User, Depends(require_admin)]
OperatorUser = Annotated[User, Depends(require_operator)]
