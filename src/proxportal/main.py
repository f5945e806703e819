"""FastAPI application factory and CLI entry point."""

import asyncio
import logging
import os
import secrets
import string
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from proxportal.config import init_settings
from proxportal.core.database import close_db, get_session_context, init_db
from proxportal.core.errors import register_exception_handlers
from proxportal.core.rate_limit import LoginLockout, build_rate_limiters, rate_limit
from proxportal.core.security import check_password_strength, get_user_by_email, hash_password
from proxportal.routers import (
    activity_router,
    auth_router,
    health_router,
    proxmox_router,
    servers_router,
    settings_router,
    setup_router,
    users_router,
)

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "PROXPORTAL_CONFIG_DIR"

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; img-src 'self' data:; style-src 'self' 'unsafe-inline'; "
        "frame-ancestors 'none'"
    ),
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Proxportal...")

    await init_db()
    logger.info("Database initialized")

    yield

    await close_db()
    logger.info("Proxportal shutdown complete")


def create_app(config_dir: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config_dir: Path to configuration directory. Falls back to
            $PROXPORTAL_CONFIG_DIR, then ./config

    Returns:
        Configured FastAPI application
    """
    if config_dir is None and os.environ.get(CONFIG_DIR_ENV):
        config_dir = Path(os.environ[CONFIG_DIR_ENV])
    settings = init_settings(config_dir)

    logging.basicConfig(
        level=settings.logging.level.upper(),
        format=settings.logging.format,
    )

    app = FastAPI(
        title="Proxportal",
        description="Proxmox VE management dashboard API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings and in-process limiter state in app state
    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.rate_limiters = build_rate_limiters(
        {
            "login": settings.rate_limit.login,
            "registration": settings.rate_limit.registration,
            "api": settings.rate_limit.api,
            "vm_operations": settings.rate_limit.vm_operations,
        }
    )
    app.state.login_lockout = LoginLockout(
        max_attempts=settings.auth.lockout_attempts,
        lockout_seconds=settings.auth.lockout_minutes * 60,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        """Add browser hardening headers to every response."""
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response

    register_exception_handlers(app)

    # Include routers
    api_limit = [Depends(rate_limit("api"))]
    app.include_router(health_router)
    app.include_router(setup_router)
    app.include_router(auth_router)
    app.include_router(users_router, dependencies=api_limit)
    app.include_router(servers_router, dependencies=api_limit)
    app.include_router(proxmox_router, dependencies=api_limit)
    app.include_router(settings_router, dependencies=api_limit)
    app.include_router(activity_router, dependencies=api_limit)

    return app


def generate_password(length: int = 16) -> str:
    """Generate a random password that satisfies the password policy."""
    alphabet = string.ascii_letters + string.digits
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(length))
        if check_password_strength(password) is None:
            return password


async def reset_password(email: str, password: str | None = None) -> str:
    """Set a new password for a user and require them to change it.

    Raises:
        ValueError: if no user has this email or the password is too weak.
    """
    password = password or generate_password()
    problem = check_password_strength(password)
    if problem:
        raise ValueError(problem)

    try:
        async with get_session_context() as db:
            user = await get_user_by_email(db, email)
            if user is None:
                raise ValueError(f"No user with email {email}")
            user.password_hash = hash_password(password)
            user.require_password_change = True
    finally:
        await close_db()

    return password


def cli():
    """CLI entry point for running the server."""
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="Proxportal - Proxmox VE management dashboard")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config"),
        help="Path to configuration directory",
    )
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    subparsers = parser.add_subparsers(dest="command")
    reset = subparsers.add_parser("reset-password", help="Reset a user's password")
    reset.add_argument("email", help="Email of the user")
    reset.add_argument("--password", help="New password (generated if omitted)")

    args = parser.parse_args()

    if args.command == "reset-password":
        init_settings(args.config)
        try:
            password = asyncio.run(reset_password(args.email, args.password))
        except ValueError as e:
            parser.exit(1, f"Error: {e}\n")
        print(f"Password for {args.email} reset to: {password}")
        print("The user must change it at next login.")
        return

    settings = init_settings(args.config)
    host = args.host or settings.server.host
    port = args.port or settings.server.port

    if args.reload:
        # The reloader imports the app itself, so hand over the config dir
        os.environ[CONFIG_DIR_ENV] = str(args.config)
        uvicorn.run("proxportal.main:create_app", factory=True, host=host, port=port, reload=True)
        return

    app = create_app(args.config)

    # Override settings from CLI
    if args.debug:
        app.state.settings.server.debug = True
        logging.getLogger().setLevel(logging.DEBUG)

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    cli()
