"""Proxmox service for forwarding dashboard calls to registered servers."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.config import Settings
from proxportal.integrations.proxmox import (
    ProxmoxClient,
    ProxmoxContainer,
    ProxmoxError,
    ProxmoxNode,
    ProxmoxVM,
)
from proxportal.models import ProxmoxServer, User

logger = logging.getLogger(__name__)

VM_ACTIONS = {
    "start": "start_vm",
    "stop": "stop_vm",
    "restart": "restart_vm",
    "reset": "reset_vm",
    "shutdown": "shutdown_vm",
}

CONTAINER_ACTIONS = {
    "start": "start_container",
    "stop": "stop_container",
    "restart": "restart_container",
}


class ProxmoxService:
    """Service that opens one authenticated client per call and relays the result.

    Nothing fetched from Proxmox is stored.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.db = db
        self.settings = settings
        self.transport = transport

    async def get_server(self, server_id: int, user: User) -> ProxmoxServer | None:
        """Get an active server visible to the user (own servers, or any for admins)."""
        query = select(ProxmoxServer).where(
            ProxmoxServer.id == server_id,
            ProxmoxServer.is_active == True,  # noqa: E712
        )
        if not user.is_admin:
            query = query.where(ProxmoxServer.user_id == user.id)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def create_client(self, server: ProxmoxServer) -> ProxmoxClient:
        """Build an unauthenticated client for a server record."""
        defaults = self.settings.proxmox
        return ProxmoxClient(
            host=server.host,
            port=server.port or defaults.default_port,
            token_id=server.token_id,
            token_secret=server.token_secret,
            verify_ssl=server.verify_ssl and not defaults.allow_insecure,
            timeout=defaults.timeout,
            transport=self.transport,
        )

    @asynccontextmanager
    async def connect(self, server: ProxmoxServer) -> AsyncIterator[ProxmoxClient]:
        """Open a client and authenticate it with the server's credentials.

        The API token is used when present, otherwise a ticket is obtained
        with the stored username and password.
        """
        async with self.create_client(server) as client:
            if server.uses_token_auth:
                await client.authenticate_with_token()
            elif server.username and server.password:
                await client.authenticate_with_password(server.username, server.password)
            else:
                raise ProxmoxError(f"Server '{server.name}' has no usable credentials")
            yield client

    async def test_connection(self, server: ProxmoxServer) -> tuple[bool, str]:
        """Authenticate against a server and fetch its version.

        Returns (success, message); failures are reported, not raised.
        """
        try:
            async with self.connect(server) as client:
                version = await client.get_version()
        except ProxmoxError as e:
            logger.warning(f"Connection test for server {server.id} failed: {e.message}")
            return False, e.message

        release = version.get("version")
        if release:
            return True, f"Successfully connected to Proxmox VE {release}"
        return True, "Successfully connected to Proxmox server"

    # Reads

    async def get_nodes(self, server: ProxmoxServer) -> list[ProxmoxNode]:
        """Get the nodes of the server's cluster."""
        async with self.connect(server) as client:
            return await client.get_nodes()

    async def get_vms(self, server: ProxmoxServer) -> list[ProxmoxVM]:
        """Get the VMs of every node. A node that fails is logged and skipped."""
        async with self.connect(server) as client:
            nodes = await client.get_nodes()
            vms: list[ProxmoxVM] = []
            for node in nodes:
                try:
                    vms.extend(await client.get_vms(node.node))
                except ProxmoxError as e:
                    logger.warning(f"Skipping node {node.node} on server {server.id}: {e.message}")
            return vms

    async def get_containers(self, server: ProxmoxServer) -> list[ProxmoxContainer]:
        """Get the containers of every node. A node that fails is logged and skipped."""
        async with self.connect(server) as client:
            nodes = await client.get_nodes()
            containers: list[ProxmoxContainer] = []
            for node in nodes:
                try:
                    containers.extend(await client.get_containers(node.node))
                except ProxmoxError as e:
                    logger.warning(f"Skipping node {node.node} on server {server.id}: {e.message}")
            return containers

    async def get_vm(self, server: ProxmoxServer, node: str, vmid: int) -> dict:
        """Get the current status of one VM."""
        async with self.connect(server) as client:
            return await client.get_vm_status(node, vmid)

    async def get_cluster_stats(self, server: ProxmoxServer) -> list[dict]:
        async with self.connect(server) as client:
            return await client.get_cluster_status()

    async def get_node_stats(self, server: ProxmoxServer, node: str) -> dict:
        async with self.connect(server) as client:
            return await client.get_node_status(node)

    # Lifecycle

    async def vm_action(
        self, server: ProxmoxServer, node: str, vmid: int, action: str
    ) -> str | None:
        """Run a lifecycle action on a VM, returning the task UPID."""
        method = VM_ACTIONS.get(action)
        if method is None:
            raise ValueError(f"Unsupported VM action: {action}")

        async with self.connect(server) as client:
            task_id = await getattr(client, method)(node, vmid)
        logger.info(f"VM {vmid} on {server.name}/{node}: {action} -> {task_id}")
        return task_id

    async def container_action(
        self, server: ProxmoxServer, node: str, vmid: int, action: str
    ) -> str | None:
        """Run a lifecycle action on a container, returning the task UPID."""
        method = CONTAINER_ACTIONS.get(action)
        if method is None:
            raise ValueError(f"Unsupported container action: {action}")

        async with self.connect(server) as client:
            task_id = await getattr(client, method)(node, vmid)
        logger.info(f"Container {vmid} on {server.name}/{node}: {action} -> {task_id}")
        return task_id
