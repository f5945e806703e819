"""HTTP routers."""

from proxportal.routers.activity import router as activity_router
from proxportal.routers.auth import router as auth_router
from proxportal.routers.health import router as health_router
from proxportal.routers.proxmox import router as proxmox_router
from proxportal.routers.servers import router as servers_router
from proxportal.routers.settings import router as settings_router
from proxportal.routers.setup import router as setup_router
from proxportal.routers.users import router as users_router

__all__ = [
    "activity_router",
    "auth_router",
    "health_router",
    "proxmox_router",
    "servers_router",
    "settings_router",
    "setup_router",
    "users_router",
]
