"""Business logic services."""

from proxportal.services.activity_log_service import ActivityLogService
from proxportal.services.proxmox_service import ProxmoxService
from proxportal.services.server_service import ServerService
from proxportal.services.settings_service import SettingsService
from proxportal.services.user_service import UserService

__all__ = [
    "ActivityLogService",
    "ProxmoxService",
    "ServerService",
    "SettingsService",
    "UserService",
]
