"""
API tests for channel endpoints.
"""

from uuid import uuid4


CHANNELS_URL = "/api/v1/channels"


def create(client, auth_headers, user_id="user-1", **overrides):
    body = {"name": "Cooking with Sam", "handle": "samcooks", "description": "Weeknight dinners"}
    body.update(overrides)
    return client.post(CHANNELS_URL, headers=auth_headers(user_id), json=body)


class TestCreateChannel:

    def test_creates_channel_for_viewer(self, client, auth_headers):
        response = create(client, auth_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["owner_id"] == "user-1"
        assert body["name"] == "Cooking with Sam"
        assert body["handle"] == "@samcooks"
        assert body["subscriber_count"] == 0
        assert body["avatar_url"] is None

    def test_leading_at_is_not_doubled(self, client, auth_headers):
        response = create(client, auth_headers, handle="@samcooks")

        assert response.json()["handle"] == "@samcooks"

    def test_one_channel_per_user(self, client, auth_headers):
        create(client, auth_headers)

        response = create(client, auth_headers, handle="another")

        assert response.status_code == 409

    def test_handle_must_be_unique_ignoring_case(self, client, auth_headers):
        create(client, auth_headers, user_id="user-1")

        response = create(client, auth_headers, user_id="user-2", handle="SamCooks")

        assert response.status_code == 409

    def test_invalid_handle(self, client, auth_headers):
        response = create(client, auth_headers, handle="sam cooks!")

        assert response.status_code == 422

    def test_blank_name(self, client, auth_headers):
        response = create(client, auth_headers, name="   ")

        assert response.status_code == 422

    def test_requires_sign_in(self, client, auth_headers):
        response = create(client, auth_headers, user_id=None)

        assert response.status_code == 401


class TestGetChannel:

    def test_my_channel(self, client, auth_headers):
        created = create(client, auth_headers).json()

        response = client.get(f"{CHANNELS_URL}/me", headers=auth_headers("user-1"))

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_my_channel_before_creating_one(self, client, auth_headers):
        response = client.get(f"{CHANNELS_URL}/me", headers=auth_headers("user-1"))

        assert response.status_code == 404

    def test_by_id(self, client, auth_headers):
        created = create(client, auth_headers).json()

        response = client.get(f"{CHANNELS_URL}/{created['id']}", headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["handle"] == "@samcooks"

    def test_unknown_id(self, client, auth_headers):
        response = client.get(f"{CHANNELS_URL}/{uuid4()}", headers=auth_headers())

        assert response.status_code == 404
