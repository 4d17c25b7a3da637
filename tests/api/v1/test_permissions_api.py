"""Tests for permissions API endpoints."""

import pytest
from httpx import AsyncClient

from aloha.core.permissions import Permission


@pytest.fixture
async def admin_headers(make_user, login) -> dict[str, str]:
    await make_user("permadmin", permissions=["permission_manage"])
    return await login("permadmin")


@pytest.mark.api
class TestPermissionNames:
    async def test_names_are_public(self, client: AsyncClient):
        response = await client.get("/api/v1/permissions/names")

        assert response.status_code == 200
        data = response.json()
        assert data["POST_TWEET"] == "post_tweet"
        assert set(data) == {p.name for p in Permission}


@pytest.mark.api
class TestPermissionCrud:
    async def test_create_update_delete(self, client: AsyncClient, admin_headers):
        created = await client.post(
            "/api/v1/permissions",
            headers=admin_headers,
            json={"name": "beta_features", "description": "Try new things"},
        )
        assert created.status_code == 201
        permission_id = created.json()["id"]

        updated = await client.patch(
            f"/api/v1/permissions/{permission_id}",
            headers=admin_headers,
            json={"description": "Early access"},
        )
        assert updated.status_code == 200
        assert updated.json()["name"] == "beta_features"
        assert updated.json()["description"] == "Early access"

        deleted = await client.delete(f"/api/v1/permissions/{permission_id}", headers=admin_headers)
        assert deleted.status_code == 204
        missing = await client.get(f"/api/v1/permissions/{permission_id}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_duplicate_name_conflicts(self, client: AsyncClient, admin_headers):
        # permission_manage already exists, created for the admin
        response = await client.post(
            "/api/v1/permissions", headers=admin_headers, json={"name": "permission_manage"}
        )

        assert response.status_code == 409

    @pytest.mark.parametrize("name", ["Has-Caps", "1starts_with_digit", "has space", ""])
    async def test_invalid_names(self, client: AsyncClient, admin_headers, name: str):
        response = await client.post(
            "/api/v1/permissions", headers=admin_headers, json={"name": name}
        )

        assert response.status_code == 422

    async def test_list(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/v1/permissions", headers=admin_headers)

        assert response.status_code == 200
        assert [p["name"] for p in response.json()["items"]] == ["permission_manage"]

    async def test_deleting_permission_revokes_it_immediately(
        self, client: AsyncClient, admin_headers, make_user, login, permission_id
    ):
        await make_user("poster", permissions=["post_tweet"])
        poster_headers = await login("poster")

        await client.delete(
            f"/api/v1/permissions/{await permission_id('post_tweet')}", headers=admin_headers
        )

        response = await client.post(
            "/api/v1/tweets", headers=poster_headers, json={"content": "still here?"}
        )
        assert response.status_code == 403

    async def test_requires_permission_manage(self, client: AsyncClient, make_user, login):
        await make_user("someone")
        headers = await login("someone")

        response = await client.get("/api/v1/permissions", headers=headers)

        assert response.status_code == 403
