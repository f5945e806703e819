"""Server service for the Proxmox server registry."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.models import ProxmoxServer, User
from proxportal.schemas import ServerCreate, ServerUpdate

logger = logging.getLogger(__name__)


class ServerService:
    """Service for server CRUD operations.

    Users see the servers they own; admins see every server.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_all(self, user: User) -> list[ProxmoxServer]:
        """Get the servers visible to a user, newest first."""
        query = select(ProxmoxServer)
        if not user.is_admin:
            query = query.where(ProxmoxServer.user_id == user.id)

        result = await self.db.execute(
            query.order_by(ProxmoxServer.created_at.desc(), ProxmoxServer.id.desc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, server_id: int, user: User) -> ProxmoxServer | None:
        """Get a server by ID if the user may see it."""
        query = select(ProxmoxServer).where(ProxmoxServer.id == server_id)
        if not user.is_admin:
            query = query.where(ProxmoxServer.user_id == user.id)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_host_and_port(
        self, host: str, port: int, owner_id: int
    ) -> ProxmoxServer | None:
        """Get an owner's server registered at host:port."""
        result = await self.db.execute(
            select(ProxmoxServer).where(
                ProxmoxServer.host == host,
                ProxmoxServer.port == port,
                ProxmoxServer.user_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, data: ServerCreate, owner: User) -> ProxmoxServer:
        """Register a server owned by ``owner``."""
        if await self.get_by_host_and_port(data.host, data.port, owner.id):
            raise ValueError("A server with this host and port already exists")

        server = ProxmoxServer(
            name=data.name,
            host=data.host,
            port=data.port,
            token_id=data.token_id,
            token_secret=data.token_secret,
            username=data.username,
            password=data.password,
            description=data.description,
            verify_ssl=data.verify_ssl,
            is_active=True,
            user_id=owner.id,
        )
        self.db.add(server)
        await self.db.flush()
        logger.info(f"Registered server {server.name} ({server.host}:{server.port})")
        return server

    async def update(self, server: ProxmoxServer, data: ServerUpdate) -> ProxmoxServer:
        """Update a server. Moving it onto another registered host:port is rejected."""
        update_data = data.model_dump(exclude_unset=True)

        # Columns that may not be cleared
        for field in ("name", "host", "port", "verify_ssl", "is_active"):
            if update_data.get(field, ...) is None:
                del update_data[field]

        host = update_data.get("host", server.host)
        port = update_data.get("port", server.port)
        if (host, port) != (server.host, server.port):
            existing = await self.get_by_host_and_port(host, port, server.user_id)
            if existing and existing.id != server.id:
                raise ValueError("A server with this host and port already exists")

        merged = {
            field: update_data.get(field, getattr(server, field))
            for field in ("token_id", "token_secret", "username", "password")
        }
        has_token = bool(merged["token_id"] and merged["token_secret"])
        has_login = bool(merged["username"] and merged["password"])
        if not has_token and not has_login:
            raise ValueError(
                "Either token_id and token_secret or username and password are required"
            )

        for field, value in update_data.items():
            setattr(server, field, value)

        await self.db.flush()
        return server

    async def delete(self, server: ProxmoxServer) -> None:
        """Delete a server."""
        await self.db.delete(server)
        await self.db.flush()
        logger.info(f"Deleted server {server.name}")
