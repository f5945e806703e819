"""Proxmox VE integration for node, VM and container operations."""

from proxportal.integrations.proxmox.client import (
    ProxmoxClient,
    ProxmoxContainer,
    ProxmoxError,
    ProxmoxNode,
    ProxmoxVM,
)

__all__ = ["ProxmoxClient", "ProxmoxContainer", "ProxmoxError", "ProxmoxNode", "ProxmoxVM"]
