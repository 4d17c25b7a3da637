"""
Tests for authentication API endpoints.

These tests cover the /api/v1/auth endpoints including:
- Login (session cookie, generic failures)
- Logout and logout-all
- The caller's profile and permissions
- Change password
- Flash messages
- Session store outages
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from aloha.core.errors import StoreUnavailable

TEST_PASSWORD = "TestPassword123!"


@pytest.mark.api
class TestLogin:
    """Tests for POST /api/v1/auth/login endpoint."""

    async def test_login_success(self, client: AsyncClient, make_user):
        user = await make_user("loginuser")

        response = await client.post(
            "/api/v1/auth/login",
            json={"username": "loginuser", "password": TEST_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == str(user.id)
        assert data["username"] == "loginuser"
        assert data["expires_in"] > 0

        # Session token travels only in the HttpOnly cookie
        assert "session_id" in response.cookies
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=strict" in set_cookie
        assert response.cookies["session_id"] not in response.text

    async def test_cookie_authenticates_following_requests(self, client: AsyncClient, make_user):
        await make_user("cookieuser")
        login_response = await client.post(
            "/api/v1/auth/login",
            json={"username": "cookieuser", "password": TEST_PASSWORD},
        )
        token = login_response.cookies["session_id"]
        client.cookies.clear()

        response = await client.get("/api/v1/auth/me", headers={"Cookie": f"session_id={token}"})

        assert response.status_code == 200
        assert response.json()["username"] == "cookieuser"

    async def test_wrong_password_and_unknown_user_look_the_same(
        self, client: AsyncClient, make_user
    ):
        await make_user("loginuser")

        wrong_password = await client.post(
            "/api/v1/auth/login",
            json={"username": "loginuser", "password": "WrongPassword1!"},
        )
        unknown_user = await client.post(
            "/api/v1/auth/login",
            json={"username": "nobody", "password": TEST_PASSWORD},
        )

        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json() == {
            "detail": "Invalid username or password"
        }
        assert "session_id" not in wrong_password.cookies


@pytest.mark.api
class TestLogout:
    async def test_logout_ends_session(self, client: AsyncClient, make_user, login):
        await make_user("leaving")
        headers = await login("leaving")

        response = await client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 204

        response = await client.get("/api/v1/auth/me", headers=headers)
        assert response.status_code == 401

    async def test_logout_is_idempotent(self, client: AsyncClient, make_user, login):
        await make_user("leaving")
        headers = await login("leaving")

        await client.post("/api/v1/auth/logout", headers=headers)
        response = await client.post("/api/v1/auth/logout", headers=headers)
        assert response.status_code == 204

        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 204

    async def test_logout_all_ends_every_session(self, client: AsyncClient, make_user, login):
        await make_user("everywhere")
        laptop = await login("everywhere")
        phone = await login("everywhere")

        response = await client.post("/api/v1/auth/logout-all", headers=laptop)

        assert response.status_code == 200
        assert response.json() == {"revoked": 2}
        assert (await client.get("/api/v1/auth/me", headers=phone)).status_code == 401


@pytest.mark.api
class TestMe:
    async def test_me_lists_effective_permissions(self, client: AsyncClient, make_user, login):
        user = await make_user("me", permissions=["post_tweet", "edit_tweet"])
        headers = await login("me")

        response = await client.get("/api/v1/auth/me", headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "user_id": str(user.id),
            "username": "me",
            "user_group_id": None,
            "permissions": ["edit_tweet", "post_tweet"],
        }

    async def test_requires_session(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json() == {"detail": "Not authenticated"}
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer not-a-session"}
        )

        assert response.status_code == 401


@pytest.mark.api
class TestChangePassword:
    async def test_change_password_logs_out_everywhere(
        self, client: AsyncClient, make_user, login
    ):
        await make_user("changer")
        headers = await login("changer")
        other = await login("changer")

        response = await client.post(
            "/api/v1/auth/change-password",
            headers=headers,
            json={"current_password": TEST_PASSWORD, "new_password": "NewPassword456!"},
        )

        assert response.status_code == 200
        assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 401
        assert (await client.get("/api/v1/auth/me", headers=other)).status_code == 401
        await login("changer", "NewPassword456!")

    async def test_wrong_current_password(self, client: AsyncClient, make_user, login):
        await make_user("changer")
        headers = await login("changer")

        response = await client.post(
            "/api/v1/auth/change-password",
            headers=headers,
            json={"current_password": "WrongPassword1!", "new_password": "NewPassword456!"},
        )

        assert response.status_code == 401
        assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200

    async def test_weak_new_password(self, client: AsyncClient, make_user, login):
        await make_user("changer")
        headers = await login("changer")

        response = await client.post(
            "/api/v1/auth/change-password",
            headers=headers,
            json={"current_password": TEST_PASSWORD, "new_password": "weakpassword"},
        )

        assert response.status_code == 422


@pytest.mark.api
class TestMessages:
    async def test_admin_action_leaves_one_shot_message(
        self, client: AsyncClient, make_user, login
    ):
        await make_user("groupadmin", permissions=["group_manage"])
        headers = await login("groupadmin")
        await client.post("/api/v1/groups", headers=headers, json={"group_name": "editors"})

        first = await client.get("/api/v1/auth/messages", headers=headers)
        second = await client.get("/api/v1/auth/messages", headers=headers)

        assert first.status_code == 200
        assert first.json() == {
            "messages": [{"level": "success", "message": "Group 'editors' created"}]
        }
        assert second.json() == {"messages": []}

    async def test_requires_session(self, client: AsyncClient):
        assert (await client.get("/api/v1/auth/messages")).status_code == 401


@pytest.mark.api
class TestStoreOutage:
    async def test_session_store_outage_is_503_not_401(self, client: AsyncClient):
        with patch(
            "aloha.services.sessions.SessionManager.resolve_session",
            AsyncMock(side_effect=StoreUnavailable()),
        ):
            response = await client.get(
                "/api/v1/auth/me", headers={"Authorization": "Bearer some-token"}
            )

        assert response.status_code == 503
        assert response.json() == {"detail": "Service temporarily unavailable"}
        assert "retry-after" in response.headers

    async def test_login_during_outage_is_503(self, client: AsyncClient, make_user):
        await make_user("unlucky")

        with patch(
            "aloha.services.sessions.SessionManager.create_session",
            AsyncMock(side_effect=StoreUnavailable()),
        ):
            response = await client.post(
                "/api/v1/auth/login",
                json={"username": "unlucky", "password": TEST_PASSWORD},
            )

        assert response.status_code == 503
