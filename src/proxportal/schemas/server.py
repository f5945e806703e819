"""Proxmox server registry schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

HOST_PATTERN = r"^[A-Za-z0-9.\-:\[\]]+$"


class ServerBase(BaseModel):
    """Fields shared by server create and update."""

    name: str = Field(..., min_length=1, max_length=100)
    host: str = Field(..., min_length=1, max_length=255, pattern=HOST_PATTERN)
    port: int = Field(8006, ge=1, le=65535)
    description: str | None = Field(None, max_length=1000)
    verify_ssl: bool = True


class ServerCreate(ServerBase):
    """Register a new Proxmox server.

    Provide an API token (``token_id`` + ``token_secret``) or a login
    (``username`` + ``password``). Both may be given; the token is used.
    """

    token_id: str | None = Field(None, max_length=255)
    token_secret: str | None = Field(None, max_length=255)
    username: str | None = Field(None, max_length=100)
    password: str | None = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_credentials(self) -> "ServerCreate":
        has_token = bool(self.token_id and self.token_secret)
        has_login = bool(self.username and self.password)
        if not has_token and not has_login:
            raise ValueError(
                "Either token_id and token_secret or username and password are required"
            )
        return self


class ServerUpdate(BaseModel):
    """Server update data (all fields optional)."""

    name: str | None = Field(None, min_length=1, max_length=100)
    host: str | None = Field(None, min_length=1, max_length=255, pattern=HOST_PATTERN)
    port: int | None = Field(None, ge=1, le=65535)
    description: str | None = Field(None, max_length=1000)
    verify_ssl: bool | None = None
    is_active: bool | None = None
    token_id: str | None = Field(None, max_length=255)
    token_secret: str | None = Field(None, max_length=255)
    username: str | None = Field(None, max_length=100)
    password: str | None = Field(None, max_length=255)


class ServerResponse(BaseModel):
    """Server data for responses. Credentials are never included."""

    id: int
    name: str
    host: str
    port: int
    description: str | None = None
    is_active: bool
    verify_ssl: bool
    user_id: int
    token_id: str | None = None
    username: str | None = None
    auth_method: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ConnectionTestResult(BaseModel):
    """Outcome of a connection test."""

    success: bool
    message: str
