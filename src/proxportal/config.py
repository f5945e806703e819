"""Configuration loading from TOML files."""

from pathlib import Path
from typing import Any

import toml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 3002
    debug: bool = False


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite+aiosqlite:///./proxportal.db"


class AuthConfig(BaseModel):
    """Token issuance and password hashing."""

    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24
    bcrypt_rounds: int = 12
    allow_registration: bool = False
    lockout_attempts: int = 5
    lockout_minutes: int = 30


class RateLimitRule(BaseModel):
    """A fixed-window rate limit."""

    window_seconds: int
    max_requests: int
    message: str = "Too many requests, please try again later"


class RateLimitConfig(BaseModel):
    """Named rate limits."""

    enabled: bool = True
    login: RateLimitRule = RateLimitRule(
        window_seconds=15 * 60,
        max_requests=5,
        message="Too many login attempts, please try again in 15 minutes",
    )
    registration: RateLimitRule = RateLimitRule(
        window_seconds=60 * 60,
        max_requests=3,
        message="Too many registration attempts, please try again in 1 hour",
    )
    api: RateLimitRule = RateLimitRule(
        window_seconds=15 * 60,
        max_requests=100,
        message="Too many API requests, please slow down",
    )
    vm_operations: RateLimitRule = RateLimitRule(
        window_seconds=60,
        max_requests=10,
        message="Too many VM operations, please wait a moment",
    )


class ProxmoxDefaults(BaseModel):
    """Defaults applied to every Proxmox connection."""

    default_port: int = 8006
    timeout: float = 30.0
    allow_insecure: bool = False


class CorsConfig(BaseModel):
    """Cross-origin settings for the SPA."""

    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:8081"])


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SecretsConfig(BaseModel):
    """Secrets configuration loaded from secrets.toml."""

    jwt_secret: str = "change-me-in-production"


class Settings(BaseSettings):
    """Application settings loaded from TOML files."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    proxmox: ProxmoxDefaults = Field(default_factory=ProxmoxDefaults)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    # Paths
    config_dir: Path = Path("config")

    model_config = {"extra": "ignore"}


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file, returning empty dict if not found."""
    if path.exists():
        return toml.load(path)
    return {}


def load_settings(config_dir: Path | None = None) -> Settings:
    """Load settings from TOML configuration files.

    Args:
        config_dir: Path to configuration directory. Defaults to ./config

    Returns:
        Populated Settings object
    """
    if config_dir is None:
        config_dir = Path("config")

    config_data = load_toml_file(config_dir / "proxportal.toml")
    secrets_data = load_toml_file(config_dir / "secrets.toml")

    return Settings(
        **config_data,
        secrets=SecretsConfig(**secrets_data),
        config_dir=config_dir,
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def init_settings(config_dir: Path | None = None) -> Settings:
    """Initialize settings from a specific config directory."""
    global _settings
    _settings = load_settings(config_dir)
    return _settings
