"""Tests for the Proxmox API client."""

import httpx
import pytest

from proxportal.integrations.proxmox import ProxmoxClient, ProxmoxError


@pytest.fixture
def fake(fake_api):
    return fake_api


def make_client(fake, **kwargs) -> ProxmoxClient:
    return ProxmoxClient(
        host="pve.example.com",
        token_id=kwargs.pop("token_id", "root@pam!test"),
        token_secret=kwargs.pop("token_secret", "secret-uuid"),
        transport=fake.transport,
        **kwargs,
    )


class TestConstruction:
    """Tests for client configuration."""

    def test_base_url(self):
        """Base URL uses HTTPS, the port and the JSON API root."""
        client = ProxmoxClient(host="10.0.0.5", port=8443)
        assert client.base_url == "https://10.0.0.5:8443/api2/json"

    def test_default_port(self):
        """Port defaults to 8006."""
        assert ProxmoxClient(host="pve").port == 8006

    def test_ipv6_host_is_bracketed(self):
        assert ProxmoxClient(host="fd00::10").base_url == "https://[fd00::10]:8006/api2/json"
        assert ProxmoxClient(host="[fd00::10]").base_url == "https://[fd00::10]:8006/api2/json"

    @pytest.mark.asyncio
    async def test_unusable_address_is_a_proxmox_error(self):
        """An address httpx cannot parse fails like any other call."""
        with pytest.raises(ProxmoxError, match="Invalid server address"):
            async with ProxmoxClient(host="[not-an-address]"):
                pass

    def test_client_outside_context_raises(self):
        """Using the client outside its context is an error."""
        with pytest.raises(RuntimeError):
            ProxmoxClient(host="pve").client


class TestTokenAuth:
    """Tests for API token authentication."""

    @pytest.mark.asyncio
    async def test_sets_authorization_header(self, fake):
        """The token is sent as a PVEAPIToken header and checked against /version."""
        async with make_client(fake) as client:
            await client.authenticate_with_token()
            assert client.is_authenticated

        request = fake.requests[0]
        assert request.url.path == "/api2/json/version"
        assert request.headers["Authorization"] == "PVEAPIToken=root@pam!test=secret-uuid"

    @pytest.mark.asyncio
    async def test_missing_secret_fails_before_any_call(self, fake):
        """A token without a secret is rejected locally."""
        async with make_client(fake, token_secret=None) as client:
            with pytest.raises(ProxmoxError, match="Token ID and secret are required"):
                await client.authenticate_with_token()

        assert fake.requests == []

    @pytest.mark.asyncio
    async def test_rejected_token(self, fake):
        """A 401 from /version becomes a token authentication error."""
        fake.on("GET", "/version", {"data": None}, status_code=401)

        async with make_client(fake) as client:
            with pytest.raises(ProxmoxError, match="Token authentication failed") as exc_info:
                await client.authenticate_with_token()

        assert exc_info.value.status_code == 401


class TestTicketAuth:
    """Tests for ticket (username/password) authentication."""

    @pytest.mark.asyncio
    async def test_ticket_and_csrf_attached_to_later_calls(self, fake):
        """The ticket becomes a cookie and the CSRF token a header."""
        fake.on(
            "POST",
            "/access/ticket",
            {"data": {"ticket": "PVE:root@pam:ABC", "CSRFPreventionToken": "csrf-123"}},
        )
        fake.on("GET", "/nodes", {"data": []})

        async with make_client(fake, token_id=None, token_secret=None) as client:
            await client.authenticate_with_password("root@pam", "hunter2")
            await client.get_nodes()

            assert client.ticket == "PVE:root@pam:ABC"
            assert client.csrf_token == "csrf-123"

        login, nodes = fake.requests
        assert b"username=root%40pam" in login.content
        assert "CSRFPreventionToken" not in login.headers
        assert nodes.headers["Cookie"] == "PVEAuthCookie=PVE:root@pam:ABC"
        assert nodes.headers["CSRFPreventionToken"] == "csrf-123"

    @pytest.mark.asyncio
    async def test_bad_credentials(self, fake):
        """A rejected login raises an authentication error."""
        fake.on("POST", "/access/ticket", {"message": "authentication failure"}, status_code=401)

        async with make_client(fake, token_id=None, token_secret=None) as client:
            with pytest.raises(ProxmoxError, match="Authentication failed: authentication failure"):
                await client.authenticate_with_password("root@pam", "wrong")

            assert client.ticket is None

    @pytest.mark.asyncio
    async def test_reply_without_ticket(self, fake):
        """A reply missing the ticket is an authentication error."""
        fake.on("POST", "/access/ticket", {"data": {"username": "root@pam"}})

        async with make_client(fake, token_id=None, token_secret=None) as client:
            with pytest.raises(ProxmoxError, match="Authentication failed"):
                await client.authenticate_with_password("root@pam", "pw")


class TestNodes:
    """Tests for node and cluster calls."""

    @pytest.mark.asyncio
    async def test_get_nodes(self, fake):
        """Nodes are mapped to dataclasses with missing fields left empty."""
        fake.on(
            "GET",
            "/nodes",
            {
                "data": [
                    {"node": "pve1", "status": "online", "cpu": 0.12, "maxcpu": 8, "uptime": 3600},
                    {"node": "pve2"},
                ]
            },
        )

        async with make_client(fake) as client:
            nodes = await client.get_nodes()

        assert [n.node for n in nodes] == ["pve1", "pve2"]
        assert nodes[0].maxcpu == 8
        assert nodes[1].status == "unknown"
        assert nodes[1].cpu is None

    @pytest.mark.asyncio
    async def test_node_status_and_cluster_status(self, fake):
        """Stats calls return the data member unchanged."""
        fake.on("GET", "/nodes/pve1/status", {"data": {"uptime": 42, "cpu": 0.5}})
        fake.on("GET", "/cluster/status", {"data": [{"type": "cluster", "quorate": 1}]})

        async with make_client(fake) as client:
            assert await client.get_node_status("pve1") == {"uptime": 42, "cpu": 0.5}
            assert await client.get_cluster_status() == [{"type": "cluster", "quorate": 1}]

    @pytest.mark.asyncio
    async def test_connection_test_never_raises(self, fake):
        """An unreachable server reports False."""
        fake.fail("GET", "/version", httpx.ConnectError("refused"))

        async with make_client(fake) as client:
            assert await client.test_connection() is False


class TestVMs:
    """Tests for VM listing and lifecycle calls."""

    @pytest.mark.asyncio
    async def test_running_vm_gets_ip_from_guest_agent(self, fake):
        """Running VMs are enriched with their first non-loopback IPv4 address."""
        fake.on(
            "GET",
            "/nodes/pve1/qemu",
            {
                "data": [
                    {"vmid": 100, "name": "web", "status": "running", "cpus": 2},
                    {"vmid": 101, "name": "db", "status": "stopped", "maxcpu": 4, "template": 1},
                ]
            },
        )
        fake.on(
            "GET",
            "/nodes/pve1/qemu/100/agent/network-get-interfaces",
            {
                "data": {
                    "result": [
                        {
                            "name": "lo",
                            "ip-addresses": [
                                {"ip-address-type": "ipv4", "ip-address": "127.0.0.1"}
                            ],
                        },
                        {
                            "name": "eth0",
                            "ip-addresses": [
                                {"ip-address-type": "ipv6", "ip-address": "fe80::1"},
                                {"ip-address-type": "ipv4", "ip-address": "192.168.1.20"},
                            ],
                        },
                    ]
                }
            },
        )

        async with make_client(fake) as client:
            web, db = await client.get_vms("pve1")

        assert web.node == "pve1"
        assert web.maxcpu == 2
        assert web.ip_address == "192.168.1.20"
        assert web.netin == 0
        assert db.ip_address is None
        assert db.template is True
        # No guest agent query for the stopped VM
        assert ("GET", "/nodes/pve1/qemu/101/agent/network-get-interfaces") not in fake.paths()

    @pytest.mark.asyncio
    async def test_guest_agent_failure_is_not_an_error(self, fake):
        """A VM without a running agent simply has no IP address."""
        fake.on("GET", "/nodes/pve1/qemu", {"data": [{"vmid": 100, "status": "running"}]})
        fake.on(
            "GET",
            "/nodes/pve1/qemu/100/agent/network-get-interfaces",
            {"message": "QEMU guest agent is not running"},
            status_code=500,
        )

        async with make_client(fake) as client:
            (vm,) = await client.get_vms("pve1")

        assert vm.name == "vm-100"
        assert vm.ip_address is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("method", "command"),
        [
            ("start_vm", "start"),
            ("stop_vm", "stop"),
            ("restart_vm", "reboot"),
            ("reset_vm", "reset"),
            ("shutdown_vm", "shutdown"),
        ],
    )
    async def test_lifecycle_returns_upid(self, fake, method: str, command: str):
        """Each lifecycle call posts to its status endpoint and returns the task id."""
        upid = f"UPID:pve1:0001:{command}"
        fake.on("POST", f"/nodes/pve1/qemu/100/status/{command}", {"data": upid})

        async with make_client(fake) as client:
            assert await getattr(client, method)("pve1", 100) == upid

        assert fake.paths() == [("POST", f"/nodes/pve1/qemu/100/status/{command}")]

    @pytest.mark.asyncio
    async def test_vm_status_and_config(self, fake):
        fake.on("GET", "/nodes/pve1/qemu/100/status/current", {"data": {"status": "running"}})
        fake.on("GET", "/nodes/pve1/qemu/100/config", {"data": {"cores": 2}})

        async with make_client(fake) as client:
            assert await client.get_vm_status("pve1", 100) == {"status": "running"}
            assert await client.get_vm_config("pve1", 100) == {"cores": 2}


class TestContainers:
    """Tests for LXC container calls."""

    @pytest.mark.asyncio
    async def test_get_containers(self, fake):
        fake.on(
            "GET",
            "/nodes/pve1/lxc",
            {"data": [{"vmid": 200, "name": "dns", "status": "running", "cpus": 1}]},
        )

        async with make_client(fake) as client:
            (container,) = await client.get_containers("pve1")

        assert container.vmid == 200
        assert container.node == "pve1"
        assert container.maxcpu == 1

    @pytest.mark.asyncio
    async def test_restart_container_reboots(self, fake):
        fake.on("POST", "/nodes/pve1/lxc/200/status/reboot", {"data": "UPID:pve1:lxc"})

        async with make_client(fake) as client:
            assert await client.restart_container("pve1", 200) == "UPID:pve1:lxc"


class TestErrorMessages:
    """Tests for error extraction from failed calls."""

    @pytest.mark.asyncio
    async def test_errors_mapping_is_joined(self, fake):
        """Proxmox field errors are reported as 'field: message' pairs."""
        fake.on(
            "POST",
            "/nodes/pve1/qemu/100/status/start",
            {"errors": {"vmid": "invalid format", "node": "unknown node"}},
            status_code=400,
        )

        async with make_client(fake) as client:
            with pytest.raises(ProxmoxError) as exc_info:
                await client.start_vm("pve1", 100)

        assert str(exc_info.value) == (
            "Failed to start VM 100: vmid: invalid format, node: unknown node"
        )
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_status_line_when_body_has_no_message(self, fake):
        """Without a message the HTTP status and reason are used."""
        fake.on("GET", "/nodes", None, status_code=503)

        async with make_client(fake) as client:
            with pytest.raises(ProxmoxError, match="Failed to get nodes: HTTP 503: Service Unavailable"):
                await client.get_nodes()

    @pytest.mark.asyncio
    async def test_transport_failure(self, fake):
        """A connection failure has its own message and no status."""
        fake.fail("GET", "/nodes", httpx.ConnectTimeout("timed out"))

        async with make_client(fake) as client:
            with pytest.raises(ProxmoxError) as exc_info:
                await client.get_nodes()

        assert "No response from server - check connection and credentials" in exc_info.value.message
        assert exc_info.value.status_code is None
