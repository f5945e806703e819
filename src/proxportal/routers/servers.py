"""Servers router for the Proxmox server registry."""

from fastapi import APIRouter, HTTPException, Request, status

from proxportal.core.dependencies import (
    ActivityLogServiceDep,
    CurrentUser,
    OperatorUser,
    ProxmoxServiceDep,
    ServerServiceDep,
    request_context,
)
from proxportal.models import ProxmoxServer, User
from proxportal.schemas import (
    ApiResponse,
    ConnectionTestResult,
    MessageResponse,
    ServerCreate,
    ServerResponse,
    ServerUpdate,
)
from proxportal.services import ServerService

router = APIRouter(prefix="/api/servers", tags=["servers"])


async def get_server_or_404(servers: ServerService, server_id: int, user: User) -> ProxmoxServer:
    server = await servers.get_by_id(server_id, user)
    if server is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Server not found")
    return server


@router.get("", response_model=ApiResponse[list[ServerResponse]])
async def list_servers(
    user: CurrentUser, servers: ServerServiceDep
) -> ApiResponse[list[ServerResponse]]:
    """List the servers visible to the current user."""
    records = await servers.get_all(user)
    return ApiResponse(data=[ServerResponse.model_validate(s) for s in records])


@router.get("/{server_id}", response_model=ApiResponse[ServerResponse])
async def get_server(
    server_id: int, user: CurrentUser, servers: ServerServiceDep
) -> ApiResponse[ServerResponse]:
    """Get a server by ID."""
    server = await get_server_or_404(servers, server_id, user)
    return ApiResponse(data=ServerResponse.model_validate(server))


@router.post(
    "",
    response_model=ApiResponse[ServerResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_server(
    request: Request,
    data: ServerCreate,
    user: OperatorUser,
    servers: ServerServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[ServerResponse]:
    """Register a server owned by the current user."""
    try:
        server = await servers.create(data, owner=user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        user.id,
        "server.create",
        resource=str(server.id),
        details=data.model_dump(mode="json"),
        **request_context(request),
    )
    return ApiResponse(
        message="Server created successfully", data=ServerResponse.model_validate(server)
    )


@router.put("/{server_id}", response_model=ApiResponse[ServerResponse])
async def update_server(
    request: Request,
    server_id: int,
    data: ServerUpdate,
    user: OperatorUser,
    servers: ServerServiceDep,
    activity: ActivityLogServiceDep,
) -> ApiResponse[ServerResponse]:
    """Update a server."""
    server = await get_server_or_404(servers, server_id, user)
    try:
        server = await servers.update(server, data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    await activity.log(
        user.id,
        "server.update",
        resource=str(server.id),
        details=data.model_dump(exclude_unset=True, mode="json"),
        **request_context(request),
    )
    return ApiResponse(
        message="Server updated successfully", data=ServerResponse.model_validate(server)
    )


@router.delete("/{server_id}", response_model=MessageResponse)
async def delete_server(
    request: Request,
    server_id: int,
    user: OperatorUser,
    servers: ServerServiceDep,
    activity: ActivityLogServiceDep,
) -> MessageResponse:
    """Delete a server."""
    server = await get_server_or_404(servers, server_id, user)
    await servers.delete(server)

    await activity.log(
        user.id,
        "server.delete",
        resource=str(server_id),
        details={"name": server.name, "host": server.host},
        **request_context(request),
    )
    return MessageResponse(message="Server deleted successfully")


@router.post("/{server_id}/test", response_model=ApiResponse[ConnectionTestResult])
async def test_server_connection(
    server_id: int,
    user: OperatorUser,
    servers: ServerServiceDep,
    proxmox: ProxmoxServiceDep,
) -> ApiResponse[ConnectionTestResult]:
    """Try to authenticate against a server. A failed test is not an HTTP error."""
    server = await get_server_or_404(servers, server_id, user)
    success, message = await proxmox.test_connection(server)
    return ApiResponse(
        message="Connection successful" if success else "Connection test completed",
        data=ConnectionTestResult(success=success, message=message),
    )
