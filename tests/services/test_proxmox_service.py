"""Tests for the ProxmoxService."""

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.config import Settings
from proxportal.integrations.proxmox import ProxmoxError
from proxportal.models import ProxmoxServer, User
from proxportal.services import ProxmoxService

TICKET_REPLY = {"data": {"ticket": "PVE:root@pam:T", "CSRFPreventionToken": "csrf"}}


@pytest.fixture
def service(db: AsyncSession, settings: Settings, fake_api) -> ProxmoxService:
    return ProxmoxService(db, settings, transport=fake_api.transport)


@pytest.fixture
async def password_server(db: AsyncSession, admin: User) -> ProxmoxServer:
    server = ProxmoxServer(
        name="pve-pw",
        host="10.0.0.9",
        username="root@pam",
        password="hunter2",
        user_id=admin.id,
    )
    db.add(server)
    await db.commit()
    return server


class TestServerLookup:
    """Tests for resolving the server behind a proxied call."""

    @pytest.mark.asyncio
    async def test_owner_and_admin_see_server(
        self, service: ProxmoxService, token_server: ProxmoxServer, admin: User
    ):
        assert await service.get_server(token_server.id, admin) is token_server

    @pytest.mark.asyncio
    async def test_other_user_does_not(
        self, service: ProxmoxService, token_server: ProxmoxServer, operator: User
    ):
        assert await service.get_server(token_server.id, operator) is None

    @pytest.mark.asyncio
    async def test_inactive_server_hidden(
        self, db: AsyncSession, service: ProxmoxService, token_server: ProxmoxServer, admin: User
    ):
        token_server.is_active = False
        await db.commit()

        assert await service.get_server(token_server.id, admin) is None


class TestConnect:
    """Tests for client construction and authentication."""

    @pytest.mark.asyncio
    async def test_token_auth_preferred(
        self, service: ProxmoxService, token_server: ProxmoxServer, fake_api
    ):
        token_server.username = "root@pam"
        token_server.password = "pw"

        async with service.connect(token_server) as client:
            assert client.ticket is None

        assert fake_api.paths() == [("GET", "/version")]
        assert fake_api.requests[0].headers["Authorization"].startswith("PVEAPIToken=")

    @pytest.mark.asyncio
    async def test_ticket_auth_for_password_servers(
        self, service: ProxmoxService, password_server: ProxmoxServer, fake_api
    ):
        fake_api.on("POST", "/access/ticket", TICKET_REPLY)

        async with service.connect(password_server) as client:
            assert client.ticket == "PVE:root@pam:T"

        assert fake_api.paths() == [("POST", "/access/ticket")]

    @pytest.mark.asyncio
    async def test_no_credentials(self, service: ProxmoxService, admin: User):
        server = ProxmoxServer(name="bare", host="pve", port=8006, user_id=admin.id)
        with pytest.raises(ProxmoxError, match="no usable credentials"):
            async with service.connect(server):
                pass

    @pytest.mark.asyncio
    async def test_tls_verification(
        self, db: AsyncSession, settings: Settings, token_server: ProxmoxServer
    ):
        """Verification follows the server flag unless insecure mode is on."""
        assert ProxmoxService(db, settings).create_client(token_server).verify_ssl is True

        token_server.verify_ssl = False
        assert ProxmoxService(db, settings).create_client(token_server).verify_ssl is False

        token_server.verify_ssl = True
        insecure = settings.model_copy(
            update={"proxmox": settings.proxmox.model_copy(update={"allow_insecure": True})}
        )
        assert ProxmoxService(db, insecure).create_client(token_server).verify_ssl is False

    @pytest.mark.asyncio
    async def test_timeout_from_settings(
        self, db: AsyncSession, settings: Settings, token_server: ProxmoxServer
    ):
        settings.proxmox.timeout = 5.0
        assert ProxmoxService(db, settings).create_client(token_server).timeout == 5.0


class TestConnectionTest:
    """Tests for the registry's connection test."""

    @pytest.mark.asyncio
    async def test_success_reports_version(
        self, service: ProxmoxService, token_server: ProxmoxServer
    ):
        success, message = await service.test_connection(token_server)
        assert success is True
        assert "8.1.3" in message

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(
        self, service: ProxmoxService, token_server: ProxmoxServer, fake_api
    ):
        fake_api.fail("GET", "/version", httpx.ConnectError("refused"))

        success, message = await service.test_connection(token_server)

        assert success is False
        assert "No response from server" in message


class TestForwarding:
    """Tests for the relayed reads and actions."""

    @pytest.mark.asyncio
    async def test_vms_from_failing_node_skipped(
        self, service: ProxmoxService, token_server: ProxmoxServer, fake_api
    ):
        fake_api.on("GET", "/nodes", {"data": [{"node": "pve1"}, {"node": "pve2"}]})
        fake_api.on("GET", "/nodes/pve1/qemu", {"data": None}, status_code=500)
        fake_api.on("GET", "/nodes/pve2/qemu", {"data": [{"vmid": 100, "status": "stopped"}]})

        vms = await service.get_vms(token_server)

        assert [(vm.node, vm.vmid) for vm in vms] == [("pve2", 100)]

    @pytest.mark.asyncio
    async def test_containers_across_nodes(
        self, service: ProxmoxService, token_server: ProxmoxServer, fake_api
    ):
        fake_api.on("GET", "/nodes", {"data": [{"node": "pve1"}, {"node": "pve2"}]})
        fake_api.on("GET", "/nodes/pve1/lxc", {"data": [{"vmid": 200}]})
        fake_api.on("GET", "/nodes/pve2/lxc", {"data": [{"vmid": 201}]})

        containers = await service.get_containers(token_server)

        assert [c.vmid for c in containers] == [200, 201]

    @pytest.mark.asyncio
    async def test_node_listing_failure_propagates(
        self, service: ProxmoxService, token_server: ProxmoxServer, fake_api
    ):
        fake_api.on("GET", "/nodes", {"message": "permission denied"}, status_code=403)

        with pytest.raises(ProxmoxError, match="permission denied"):
            await service.get_vms(token_server)

    @pytest.mark.asyncio
    async def test_vm_action(self, service: ProxmoxService, token_server: ProxmoxServer, fake_api):
        fake_api.on("POST", "/nodes/pve1/qemu/100/status/shutdown", {"data": "UPID:shutdown"})

        task_id = await service.vm_action(token_server, "pve1", 100, "shutdown")

        assert task_id == "UPID:shutdown"

    @pytest.mark.asyncio
    async def test_unknown_action(self, service: ProxmoxService, token_server: ProxmoxServer):
        with pytest.raises(ValueError, match="Unsupported VM action"):
            await service.vm_action(token_server, "pve1", 100, "migrate")

        with pytest.raises(ValueError, match="Unsupported container action"):
            await service.container_action(token_server, "pve1", 100, "reset")
