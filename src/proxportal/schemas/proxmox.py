"""Schemas for data relayed from Proxmox."""

from pydantic import BaseModel, Field

NODE_PATTERN = r"^[A-Za-z0-9]([A-Za-z0-9.-]*[A-Za-z0-9])?$"


class NodeResponse(BaseModel):
    """A cluster node."""

    node: str
    status: str
    cpu: float | None = None
    maxcpu: int | None = None
    mem: int | None = None
    maxmem: int | None = None
    disk: int | None = None
    maxdisk: int | None = None
    uptime: int | None = None

    model_config = {"from_attributes": True}


class VMResponse(BaseModel):
    """A QEMU virtual machine."""

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
    template: bool = False
    netin: int = 0
    netout: int = 0
    pid: int | None = None
    ip_address: str | None = None

    model_config = {"from_attributes": True}


class ContainerResponse(BaseModel):
    """An LXC container."""

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

    model_config = {"from_attributes": True}


class VMActionRequest(BaseModel):
    """Body of a lifecycle call: the node the guest lives on."""

    node: str = Field(..., min_length=1, max_length=100, pattern=NODE_PATTERN)


class VMActionResult(BaseModel):
    """Result of a lifecycle call."""

    vmid: int
    node: str
    action: str
    task_id: str | None = None  # Proxmox UPID
