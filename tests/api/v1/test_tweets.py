"""
Tests for tweets API endpoints.

Reading is public; posting needs post_tweet; touching someone else's tweet
needs edit_tweet or delete_post.
"""

import pytest
from httpx import AsyncClient


async def _post(client: AsyncClient, headers: dict[str, str], content: str) -> dict:
    response = await client.post("/api/v1/tweets", headers=headers, json={"content": content})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.api
class TestReadTweets:
    async def test_list_is_public_and_newest_first(self, client: AsyncClient, make_user, login):
        await make_user("poster", permissions=["post_tweet"])
        headers = await login("poster")
        await _post(client, headers, "first")
        await _post(client, headers, "second")

        response = await client.get("/api/v1/tweets")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [t["content"] for t in data["items"]] == ["second", "first"]

    async def test_filter_by_user(self, client: AsyncClient, make_user, login):
        alice = await make_user("alice", permissions=["post_tweet"])
        await make_user("bob", permissions=["post_tweet"])
        await _post(client, await login("alice"), "from alice")
        await _post(client, await login("bob"), "from bob")

        response = await client.get(f"/api/v1/tweets?user_id={alice.id}")

        assert [t["content"] for t in response.json()["items"]] == ["from alice"]

    async def test_unknown_tweet(self, client: AsyncClient):
        response = await client.get("/api/v1/tweets/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404


@pytest.mark.api
class TestWriteTweets:
    async def test_post_requires_permission(self, client: AsyncClient, make_user, login):
        await make_user("lurker")
        headers = await login("lurker")

        response = await client.post("/api/v1/tweets", headers=headers, json={"content": "hi"})

        assert response.status_code == 403
        assert response.json() == {"detail": "Forbidden"}

    async def test_post_requires_session(self, client: AsyncClient):
        response = await client.post("/api/v1/tweets", json={"content": "hi"})

        assert response.status_code == 401

    @pytest.mark.parametrize("content", ["", "   ", "x" * 281])
    async def test_content_validation(self, client: AsyncClient, make_user, login, content: str):
        await make_user("poster", permissions=["post_tweet"])
        headers = await login("poster")

        response = await client.post("/api/v1/tweets", headers=headers, json={"content": content})

        assert response.status_code == 422

    async def test_owner_edits_and_deletes_own_tweet(self, client: AsyncClient, make_user, login):
        await make_user("poster", permissions=["post_tweet"])
        headers = await login("poster")
        tweet = await _post(client, headers, "typo")

        response = await client.patch(
            f"/api/v1/tweets/{tweet['id']}", headers=headers, json={"content": "fixed"}
        )
        assert response.status_code == 200
        assert response.json()["content"] == "fixed"

        response = await client.delete(f"/api/v1/tweets/{tweet['id']}", headers=headers)
        assert response.status_code == 204
        assert (await client.get(f"/api/v1/tweets/{tweet['id']}")).status_code == 404

    async def test_cannot_touch_someone_elses_tweet(self, client: AsyncClient, make_user, login):
        await make_user("alice", permissions=["post_tweet"])
        await make_user("bob", permissions=["post_tweet"])
        tweet = await _post(client, await login("alice"), "mine")
        bob = await login("bob")

        edit = await client.patch(
            f"/api/v1/tweets/{tweet['id']}", headers=bob, json={"content": "yours now"}
        )
        delete = await client.delete(f"/api/v1/tweets/{tweet['id']}", headers=bob)

        assert edit.status_code == 403
        assert delete.status_code == 403

    async def test_moderators_act_on_any_tweet(self, client: AsyncClient, make_user, login):
        await make_user("alice", permissions=["post_tweet"])
        await make_user("editor", permissions=["edit_tweet"])
        await make_user("janitor", permissions=["delete_post"])
        tweet = await _post(client, await login("alice"), "needs work")

        edit = await client.patch(
            f"/api/v1/tweets/{tweet['id']}",
            headers=await login("editor"),
            json={"content": "edited"},
        )
        assert edit.status_code == 200

        janitor = await login("janitor")
        # delete_post does not allow editing
        edit = await client.patch(
            f"/api/v1/tweets/{tweet['id']}", headers=janitor, json={"content": "no"}
        )
        assert edit.status_code == 403
        delete = await client.delete(f"/api/v1/tweets/{tweet['id']}", headers=janitor)
        assert delete.status_code == 204
