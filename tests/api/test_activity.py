"""Tests for the activity log endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from proxportal.models import ActivityLog, ActivityStatus, User, utcnow
from tests.conftest import TEST_PASSWORD


@pytest.mark.asyncio
async def test_admin_only(client: AsyncClient, operator: User, auth_headers):
    headers = auth_headers(operator)

    assert (await client.get("/api/activity", headers=headers)).status_code == 403
    assert (await client.get("/api/activity/stats", headers=headers)).status_code == 403
    assert (await client.delete("/api/activity", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_list_with_filters(
    client: AsyncClient, admin: User, operator: User, auth_headers
):
    await client.post(
        "/api/auth/login", json={"email": operator.email, "password": TEST_PASSWORD}
    )
    await client.post(
        "/api/auth/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "Changed123"},
        headers=auth_headers(operator),
    )

    response = await client.get(
        "/api/activity",
        params={"user_id": operator.id, "limit": 1},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    page = response.json()["data"]
    assert page["pagination"] == {"page": 1, "limit": 1, "total": 2, "total_pages": 2}
    (entry,) = page["logs"]
    assert entry["action"] == "auth.change_password"
    assert entry["user"]["email"] == operator.email
    assert entry["ip_address"] == "127.0.0.1"

    response = await client.get(
        "/api/activity", params={"action": "auth.login"}, headers=auth_headers(admin)
    )
    assert [e["action"] for e in response.json()["data"]["logs"]] == ["auth.login"]


@pytest.mark.asyncio
async def test_details_are_redacted(client: AsyncClient, admin: User, auth_headers):
    await client.post(
        "/api/servers",
        json={"name": "lab", "host": "10.0.0.1", "username": "root@pam", "password": "pw"},
        headers=auth_headers(admin),
    )

    response = await client.get("/api/activity", headers=auth_headers(admin))

    (entry,) = response.json()["data"]["logs"]
    assert entry["details"]["username"] == "root@pam"
    assert entry["details"]["password"] == "[REDACTED]"


@pytest.mark.asyncio
async def test_stats(client: AsyncClient, db: AsyncSession, admin: User, auth_headers):
    db.add_all(
        [
            ActivityLog(user_id=admin.id, action="vm.start"),
            ActivityLog(user_id=admin.id, action="vm.start", status=ActivityStatus.ERROR),
            ActivityLog(user_id=admin.id, action="vm.stop"),
        ]
    )
    await db.commit()

    response = await client.get(
        "/api/activity/stats", params={"days": 7}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["days"] == 7
    assert stats["total_logs"] == 3
    assert stats["by_action"][0] == {"action": "vm.start", "count": 2}


@pytest.mark.asyncio
async def test_cleanup(client: AsyncClient, db: AsyncSession, admin: User, auth_headers):
    db.add_all(
        [
            ActivityLog(user_id=admin.id, action="old", created_at=utcnow() - timedelta(days=40)),
            ActivityLog(user_id=admin.id, action="new"),
        ]
    )
    await db.commit()

    response = await client.delete(
        "/api/activity", params={"days_to_keep": 30}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Deleted 1 activity log entries"

    response = await client.get("/api/activity", headers=auth_headers(admin))
    actions = {e["action"] for e in response.json()["data"]["logs"]}
    assert actions == {"new", "activity.cleanup"}
