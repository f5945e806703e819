"""Proxmox VE API client for node and VM operations."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8006
DEFAULT_TIMEOUT = 30.0


class ProxmoxError(Exception):
    """A Proxmox API call failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ProxmoxNode:
    """Represents a Proxmox cluster node."""

    node: str
    status: str
    cpu: float | None = None
    maxcpu: int | None = None
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None
    uptime: int | None = None


@dataclass
class ProxmoxVM:
    """Represents a QEMU virtual machine."""

    vmid: int
    name: str
    node: str
    status: str
    cpu: float | None = None
    maxcpu: int | None = None
    mem: int | None = None  # Current memory in bytes
    maxmem: int | None = None  # Max memory in bytes
    disk: int | None = None
    maxdisk: int | None = None
    uptime: int | None = None
    template: bool = False
    netin: int = 0
    netout: int = 0
    pid: int | None = None
    ip_address: str | None = None


@dataclass
class ProxmoxContainer:
    """Represents an LXC container."""

    vmid: int
    name: str
    node: str
    status: str
    cpu: float | None = None
    maxcpu: int | None = None
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None
    uptime: int | None = None


class ProxmoxClient:
    """Async client for the Proxmox VE REST API.

    One instance serves one dashboard request. After ticket authentication
    the ticket and CSRF token are kept on the instance and sent with every
    later call; nothing else is retained.
    """

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        token_id: str | None = None,
        token_secret: str | None = None,
        verify_ssl: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.host = host
        self.port = port
        self.token_id = token_id
        self.token_secret = token_secret
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.ticket: str | None = None
        self.csrf_token: str | None = None
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        host = self.host
        # IPv6 literals must be bracketed in URLs
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"https://{host}:{self.port}/api2/json"

    async def __aenter__(self) -> "ProxmoxClient":
        """Enter async context."""
        try:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                verify=self.verify_ssl,
                timeout=self.timeout,
                transport=self._transport,
            )
        except httpx.InvalidURL as e:
            raise ProxmoxError(f"Invalid server address {self.host}: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, raising if not in context."""
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    # Authentication

    async def authenticate_with_password(self, username: str, password: str) -> None:
        """Obtain a ticket and CSRF token and attach them to later calls."""
        try:
            response = await self.client.post(
                "/access/ticket",
                data={"username": username, "password": password},
            )
            response.raise_for_status()
            data = response.json().get("data") or {}
            ticket = data["ticket"]
            csrf_token = data["CSRFPreventionToken"]
        except KeyError as e:
            raise ProxmoxError(f"Authentication failed: response is missing {e}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProxmoxError(
                f"Authentication failed: {self._error_message(e)}", self._status_of(e)
            ) from e

        self.ticket = ticket
        self.csrf_token = csrf_token
        self.client.headers["Cookie"] = f"PVEAuthCookie={ticket}"
        self.client.headers["CSRFPreventionToken"] = csrf_token
        logger.debug(f"Obtained Proxmox ticket for {username} on {self.host}")

    async def authenticate_with_token(self) -> None:
        """Attach the API token and verify it against /version."""
        if not self.token_id or not self.token_secret:
            raise ProxmoxError("Token ID and secret are required for token authentication")

        self.client.headers["Authorization"] = f"PVEAPIToken={self.token_id}={self.token_secret}"
        try:
            response = await self.client.get("/version")
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ProxmoxError(
                f"Token authentication failed: {self._error_message(e)}", self._status_of(e)
            ) from e

    @property
    def is_authenticated(self) -> bool:
        return self.ticket is not None or "Authorization" in self.client.headers

    # Requests

    async def _request(self, method: str, path: str, action: str, **kwargs: Any) -> Any:
        """Issue a single call and return the ``data`` member of the reply."""
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json().get("data")
        except (httpx.HTTPError, ValueError) as e:
            message = f"Failed to {action}: {self._error_message(e)}"
            logger.error(f"Proxmox {method} {path} on {self.host} failed: {message}")
            raise ProxmoxError(message, self._status_of(e)) from e

    async def _get(self, path: str, action: str, **kwargs: Any) -> Any:
        return await self._request("GET", path, action, **kwargs)

    async def _post(self, path: str, action: str, **kwargs: Any) -> Any:
        return await self._request("POST", path, action, **kwargs)

    @staticmethod
    def _status_of(error: Exception) -> int | None:
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code
        return None

    @staticmethod
    def _error_message(error: Exception) -> str:
        """Extract a readable message from a failed call."""
        if isinstance(error, httpx.HTTPStatusError):
            response = error.response
            try:
                body = response.json()
            except ValueError:
                body = None

            if isinstance(body, dict):
                errors = body.get("errors")
                if isinstance(errors, dict) and errors:
                    return ", ".join(f"{field}: {msg}".strip() for field, msg in errors.items())
                if isinstance(errors, list) and errors:
                    return ", ".join(
                        str(err.get("message", err)) if isinstance(err, dict) else str(err)
                        for err in errors
                    )
                if body.get("message"):
                    return str(body["message"]).strip()

            return f"HTTP {response.status_code}: {response.reason_phrase}"

        if isinstance(error, httpx.RequestError):
            return "No response from server - check connection and credentials"

        return str(error) or "Unknown error occurred"

    # Cluster and nodes

    async def test_connection(self) -> bool:
        """Test the connection to Proxmox and return True if successful."""
        try:
            response = await self.client.get("/version")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Proxmox connection test failed: {self._error_message(e)}")
            return False

    async def get_version(self) -> dict:
        """Get Proxmox VE version information."""
        return await self._get("/version", "get version") or {}

    async def get_nodes(self) -> list[ProxmoxNode]:
        """Get all nodes in the cluster."""
        data = await self._get("/nodes", "get nodes") or []
        return [
            ProxmoxNode(
                node=node_data.get("node", ""),
                status=node_data.get("status", "unknown"),
                cpu=node_data.get("cpu"),
                maxcpu=node_data.get("maxcpu"),
                mem=node_data.get("mem"),
                maxmem=node_data.get("maxmem"),
                disk=node_data.get("disk"),
                maxdisk=node_data.get("maxdisk"),
                uptime=node_data.get("uptime"),
            )
            for node_data in data
        ]

    async def get_node_status(self, node: str) -> dict:
        """Get CPU, memory and uptime statistics for a node."""
        return await self._get(f"/nodes/{node}/status", f"get node {node} stats") or {}

    async def get_cluster_status(self) -> list[dict]:
        """Get cluster membership and quorum status."""
        return await self._get("/cluster/status", "get cluster status") or []

    # Virtual machines

    async def get_vms(self, node: str) -> list[ProxmoxVM]:
        """Get the QEMU VMs on a node.

        Running VMs are enriched with an IP address from the guest agent
        when one is available.
        """
        data = await self._get(f"/nodes/{node}/qemu", f"get VMs for node {node}") or []

        vms = []
        for vm_data in data:
            vmid = vm_data.get("vmid", 0)
            vm = ProxmoxVM(
                vmid=vmid,
                name=vm_data.get("name", f"vm-{vmid}"),
                node=node,
                status=vm_data.get("status", "unknown"),
                cpu=vm_data.get("cpu"),
                maxcpu=vm_data.get("cpus") or vm_data.get("maxcpu") or 0,
                mem=vm_data.get("mem"),
                maxmem=vm_data.get("maxmem"),
                disk=vm_data.get("disk"),
                maxdisk=vm_data.get("maxdisk"),
                uptime=vm_data.get("uptime"),
                template=bool(vm_data.get("template", 0)),
                netin=vm_data.get("netin") or 0,
                netout=vm_data.get("netout") or 0,
                pid=vm_data.get("pid"),
            )
            if vm.status == "running":
                vm.ip_address = await self.get_vm_ip_address(node, vmid)
            vms.append(vm)

        logger.info(f"Found {len(vms)} VMs on node {node}")
        return vms

    async def get_vm_ip_address(self, node: str, vmid: int) -> str | None:
        """Get the first non-loopback IPv4 address reported by the guest agent."""
        endpoint = f"/nodes/{node}/qemu/{vmid}/agent/network-get-interfaces"
        try:
            response = await self.client.get(endpoint)
            if response.status_code != 200:
                logger.debug(f"Guest agent unavailable for VM {vmid}: {response.status_code}")
                return None
            interfaces = (response.json().get("data") or {}).get("result") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Failed to query guest agent for VM {vmid}: {e}")
            return None

        for iface in interfaces:
            for address in iface.get("ip-addresses") or []:
                ip = address.get("ip-address", "")
                if address.get("ip-address-type") == "ipv4" and not ip.startswith("127."):
                    return ip

        return None

    async def get_vm_status(self, node: str, vmid: int) -> dict:
        """Get the current runtime status of a VM."""
        return (
            await self._get(f"/nodes/{node}/qemu/{vmid}/status/current", f"get VM {vmid} details")
            or {}
        )

    async def get_vm_config(self, node: str, vmid: int) -> dict:
        """Get the configuration of a VM."""
        return await self._get(f"/nodes/{node}/qemu/{vmid}/config", f"get VM {vmid} config") or {}

    async def _vm_action(self, node: str, vmid: int, command: str, verb: str) -> str | None:
        return await self._post(
            f"/nodes/{node}/qemu/{vmid}/status/{command}", f"{verb} VM {vmid}"
        )

    async def start_vm(self, node: str, vmid: int) -> str | None:
        """Start a VM, returning the task UPID."""
        return await self._vm_action(node, vmid, "start", "start")

    async def stop_vm(self, node: str, vmid: int) -> str | None:
        """Stop a VM immediately."""
        return await self._vm_action(node, vmid, "stop", "stop")

    async def restart_vm(self, node: str, vmid: int) -> str | None:
        """Reboot a VM through the guest OS."""
        return await self._vm_action(node, vmid, "reboot", "restart")

    async def reset_vm(self, node: str, vmid: int) -> str | None:
        """Hard-reset a VM."""
        return await self._vm_action(node, vmid, "reset", "reset")

    async def shutdown_vm(self, node: str, vmid: int) -> str | None:
        """Shut a VM down gracefully."""
        return await self._vm_action(node, vmid, "shutdown", "shutdown")

    # Containers

    async def get_containers(self, node: str) -> list[ProxmoxContainer]:
        """Get the LXC containers on a node."""
        data = await self._get(f"/nodes/{node}/lxc", f"get containers for node {node}") or []
        return [
            ProxmoxContainer(
                vmid=ct_data.get("vmid", 0),
                name=ct_data.get("name", f"ct-{ct_data.get('vmid', 0)}"),
                node=node,
                status=ct_data.get("status", "unknown"),
                cpu=ct_data.get("cpu"),
                maxcpu=ct_data.get("cpus") or ct_data.get("maxcpu"),
                mem=ct_data.get("mem"),
                maxmem=ct_data.get("maxmem"),
                disk=ct_data.get("disk"),
                maxdisk=ct_data.get("maxdisk"),
                uptime=ct_data.get("uptime"),
            )
            for ct_data in data
        ]

    async def get_container_status(self, node: str, vmid: int) -> dict:
        """Get the current runtime status of a container."""
        return (
            await self._get(
                f"/nodes/{node}/lxc/{vmid}/status/current", f"get container {vmid} details"
            )
            or {}
        )

    async def _container_action(self, node: str, vmid: int, command: str, verb: str) -> str | None:
        return await self._post(
            f"/nodes/{node}/lxc/{vmid}/status/{command}", f"{verb} container {vmid}"
        )

    async def start_container(self, node: str, vmid: int) -> str | None:
        """Start a container."""
        return await self._container_action(node, vmid, "start", "start")

    async def stop_container(self, node: str, vmid: int) -> str | None:
        """Stop a container."""
        return await self._container_action(node, vmid, "stop", "stop")

    async def restart_container(self, node: str, vmid: int) -> str | None:
        """Reboot a container."""
        return await self._container_action(node, vmid, "reboot", "restart")
