"""Tests for the white-label settings endpoints."""

import pytest
from httpx import AsyncClient

from proxportal.models import DEFAULT_COMPANY_NAME, User


@pytest.mark.asyncio
async def test_public_read(client: AsyncClient):
    """Branding is readable without a token."""
    response = await client.get("/api/settings")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["id"] == "default"
    assert data["company_name"] == DEFAULT_COMPANY_NAME
    assert data["logo_data"] is None


@pytest.mark.asyncio
async def test_admin_update_and_reset(client: AsyncClient, admin: User, auth_headers):
    headers = auth_headers(admin)

    response = await client.put(
        "/api/settings",
        json={"company_name": "Acme Cloud", "primary_color": "#1e90ff"},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["company_name"] == "Acme Cloud"

    public = await client.get("/api/settings")
    assert public.json()["data"]["primary_color"] == "#1e90ff"

    response = await client.post("/api/settings/reset", headers=headers)
    assert response.json()["data"]["company_name"] == DEFAULT_COMPANY_NAME
    assert response.json()["data"]["primary_color"] is None


@pytest.mark.asyncio
async def test_bad_color(client: AsyncClient, admin: User, auth_headers):
    response = await client.put(
        "/api/settings", json={"primary_color": "blue"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "primary_color"


@pytest.mark.asyncio
async def test_non_admin_cannot_update(client: AsyncClient, operator: User, auth_headers):
    response = await client.put(
        "/api/settings", json={"company_name": "Mine"}, headers=auth_headers(operator)
    )

    assert response.status_code == 403
