"""Proxmox router: pass-through calls to a registered server."""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request, status

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    CurrentUser,
    DbSession,
    OperatorUser,
    ProxmoxServiceDep,
    request_context,
)
from proxportal.core.rate_limit import rate_limit
from proxportal.integrations.proxmox import ProxmoxError
from proxportal.models import ActivityStatus, ProxmoxServer, User
from proxportal.schemas import (
    ApiResponse,
    ContainerResponse,
    NodeResponse,
    VMActionRequest,
    VMActionResult,
    VMResponse,
)
from proxportal.schemas.proxmox import NODE_PATTERN
from proxportal.services import ActivityLogService, ProxmoxService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proxmox/servers/{server_id}", tags=["proxmox"])

# Must follow the user parameter so the limit is keyed by user
VMOperationLimit = Annotated[None, Depends(rate_limit("vm_operations"))]

NodeName = Annotated[str, Path(min_length=1, max_length=100, pattern=NODE_PATTERN)]
VMID = Annotated[int, Path(ge=1)]


async def get_active_server(
    proxmox: ProxmoxService, server_id: int, user: User
) -> ProxmoxServer:
    server = await proxmox.get_server(server_id, user)
    if server is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Server not found or inactive",
        )
    return server


async def run_action(
    request: Request,
    db: DbSession,
    proxmox: ProxmoxService,
    activity: ActivityLogService,
    user: User,
    server_id: int,
    kind: Literal["vm", "container"],
    vmid: int,
    node: str,
    action: str,
) -> VMActionResult:
    """Run a lifecycle action and record it, whether it succeeds or not."""
    server = await get_active_server(proxmox, server_id, user)
    details = {"server_id": server.id, "server": server.name, "node": node, "vmid": vmid}
    log_action = f"{kind}.{action}"

    try:
        if kind == "vm":
            task_id = await proxmox.vm_action(server, node, vmid, action)
        else:
            task_id = await proxmox.container_action(server, node, vmid, action)
    except ProxmoxError as e:
        await activity.log(
            user.id,
            log_action,
            resource=str(vmid),
            details={**details, "error": e.message},
            status=ActivityStatus.ERROR,
            **request_context(request),
        )
        # Keep the failure record when the request is rolled back
        await db.commit()
        raise

    await activity.log(
        user.id,
        log_action,
        resource=str(vmid),
        details={**details, "task_id": task_id},
        **request_context(request),
    )
    return VMActionResult(vmid=vmid, node=node, action=action, task_id=task_id)


@router.get("/nodes", response_model=ApiResponse[list[NodeResponse]])
async def list_nodes(
    server_id: int, user: CurrentUser, proxmox: ProxmoxServiceDep
) -> ApiResponse[list[NodeResponse]]:
    """List cluster nodes."""
    server = await get_active_server(proxmox, server_id, user)
    nodes = await proxmox.get_nodes(server)
    return ApiResponse(data=[NodeResponse.model_validate(n) for n in nodes])


@router.get("/vms", response_model=ApiResponse[list[VMResponse]])
async def list_vms(
    server_id: int, user: CurrentUser, proxmox: ProxmoxServiceDep
) -> ApiResponse[list[VMResponse]]:
    """List the VMs on every node."""
    server = await get_active_server(proxmox, server_id, user)
    vms = await proxmox.get_vms(server)
    return ApiResponse(data=[VMResponse.model_validate(vm) for vm in vms])


@router.get("/vms/{vmid}", response_model=ApiResponse[dict])
async def get_vm(
    server_id: int,
    vmid: VMID,
    user: CurrentUser,
    proxmox: ProxmoxServiceDep,
    node: Annotated[str | None, Query(max_length=100, pattern=NODE_PATTERN)] = None,
) -> ApiResponse[dict]:
    """Get the current status of a VM."""
    if not node:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Node parameter is required",
        )

    server = await get_active_server(proxmox, server_id, user)
    return ApiResponse(data=await proxmox.get_vm(server, node, vmid))


@router.post(
    "/vms/{vmid}/{action}",
    response_model=ApiResponse[VMActionResult],
)
async def vm_action(
    request: Request,
    server_id: int,
    vmid: VMID,
    action: Literal["start", "stop", "restart", "reset", "shutdown"],
    data: VMActionRequest,
    db: DbSession,
    user: OperatorUser,
    _limit: VMOperationLimit,
    proxmox: ProxmoxServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[VMActionResult]:
    """Start, stop, restart, reset or shut down a VM."""
    result = await run_action(
        request, db, proxmox, activity, user, server_id, "vm", vmid, data.node, action
    )
    return ApiResponse(message=f"VM {action} initiated successfully", data=result)


@router.get("/containers", response_model=ApiResponse[list[ContainerResponse]])
async def list_containers(
    server_id: int, user: CurrentUser, proxmox: ProxmoxServiceDep
) -> ApiResponse[list[ContainerResponse]]:
    """List the containers on every node."""
    server = await get_active_server(proxmox, server_id, user)
    containers = await proxmox.get_containers(server)
    return ApiResponse(data=[ContainerResponse.model_validate(ct) for ct in containers])


@router.post(
    "/containers/{vmid}/{action}",
    response_model=ApiResponse[VMActionResult],
)
async def container_action(
    request: Request,
    server_id: int,
    vmid: VMID,
    action: Literal["start", "stop", "restart"],
    data: VMActionRequest,
    db: DbSession,
    user: OperatorUser,
    _limit: VMOperationLimit,
    proxmox: ProxmoxServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[VMActionResult]:
    """Start, stop or restart a container."""
    result = await run_action(
        request, db, proxmox, activity, user, server_id, "container", vmid, data.node, action
    )
    return ApiResponse(message=f"Container {action} initiated successfully", data=result)


@router.get("/stats", response_model=ApiResponse[list[dict]])
async def cluster_stats(
    server_id: int, user: CurrentUser, proxmox: ProxmoxServiceDep
) -> ApiResponse[list[dict]]:
    """Get cluster status."""
    server = await get_active_server(proxmox, server_id, user)
    return ApiResponse(data=await proxmox.get_cluster_stats(server))


@router.get("/nodes/{node}/stats", response_model=ApiResponse[dict])
async def node_stats(
    server_id: int, node: NodeName, user: CurrentUser, proxmox: ProxmoxServiceDep
) -> ApiResponse[dict]:
    """Get CPU, memory and uptime figures for a node."""
    server = await get_active_server(proxmox, server_id, user)
    return ApiResponse(data=await proxmox.get_node_stats(server, node))
