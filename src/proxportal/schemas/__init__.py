"""Pydantic schemas for validation and serialization."""

from proxportal.schemas.activity import ActivityLogPage, ActivityLogResponse, ActivityStats
from proxportal.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    SetupRequest,
    SetupStatus,
    TokenResponse,
    UserCreate,
    UserResponse,
)
from proxportal.schemas.common import ApiResponse, MessageResponse
from proxportal.schemas.proxmox import (
    ContainerResponse,
    NodeResponse,
    VMActionRequest,
    VMActionResult,
    VMResponse,
)
from proxportal.schemas.server import (
    ConnectionTestResult,
    ServerCreate,
    ServerResponse,
    ServerUpdate,
)
from proxportal.schemas.settings import WhiteLabelConfig, WhiteLabelUpdate
from proxportal.schemas.user import UserStatusUpdate, UserUpdate

__all__ = [
    "ApiResponse",
    "MessageResponse",
    "LoginRequest",
    "RegisterRequest",
    "SetupRequest",
    "SetupStatus",
    "ChangePasswordRequest",
    "TokenResponse",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "UserStatusUpdate",
    "ServerCreate",
    "ServerUpdate",
    "ServerResponse",
    "ConnectionTestResult",
    "NodeResponse",
    "VMResponse",
    "ContainerResponse",
    "VMActionRequest",
    "VMActionResult",
    "WhiteLabelConfig",
    "WhiteLabelUpdate",
    "ActivityLogResponse",
    "ActivityLogPage",
    "ActivityStats",
]
