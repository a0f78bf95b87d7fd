"""
API tests for the profile endpoints.
The actor comes from the auth dependency, never from the request body.
"""
import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from patchguard.core.auth import verify_auth_header
from patchguard.main import create_app

PROFILE_URL = "/v1/workspaces/ws_1/users/{user_id}/profile"


def _client_as(actor_id: str) -> TestClient:
    app = create_app()

    # Must keep the Request annotation so FastAPI injects it.
    async def mock_verify_auth_header(request: Request) -> None:
        request.state.uid = actor_id

    app.dependency_overrides[verify_auth_header] = mock_verify_auth_header
    return TestClient(app)


@pytest.fixture
def client_as(store):
    return _client_as


class TestPatchProfile:

    def test_self_update_filters_payload(self, client_as):
        client = client_as("client_1")
        response = client.patch(PROFILE_URL.format(user_id="client_1"), json={
            "fullName": "Cal Updated",
            "role": "ADMIN",
            "workspaceId": "ws_2",
            "passwordHash": "pwned",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["fullName"] == "Cal Updated"
        assert body["data"]["role"] == "CLIENT"
        assert body["data"]["workspaceId"] == "ws_1"
        assert "passwordHash" not in body["data"]
        assert "requestId" in body["metadata"]

    def test_request_id_is_echoed(self, client_as):
        client = client_as("client_1")
        response = client.patch(
            PROFILE_URL.format(user_id="client_1"),
            json={"phone": "9"},
            headers={"X-Request-ID": "req-123"},
        )
        assert response.json()["metadata"]["requestId"] == "req-123"

    def test_actor_in_body_is_ignored(self, client_as):
        client = client_as("client_1")
        response = client.patch(PROFILE_URL.format(user_id="client_1"), json={
            "actorId": "admin_1",
            "email": "new@example.com",
        })
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "EMAIL_RESTRICTED"

    def test_non_object_body_is_a_no_op(self, client_as):
        client = client_as("client_1")
        response = client.patch(PROFILE_URL.format(user_id="client_1"), json=["fullName", "x"])
        assert response.status_code == 200
        assert response.json()["data"]["fullName"] == "Cal Client"

    def test_missing_body_is_bad_request(self, client_as):
        client = client_as("client_1")
        response = client.patch(PROFILE_URL.format(user_id="client_1"))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "BAD_REQUEST"

    def test_admin_email_conflict(self, client_as):
        client = client_as("admin_1")
        response = client.patch(PROFILE_URL.format(user_id="client_1"), json={
            "email": "admin@example.com",
        })
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_IN_USE"

    def test_unknown_user(self, client_as):
        client = client_as("admin_1")
        response = client.patch(PROFILE_URL.format(user_id="ghost"), json={"fullName": "x"})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_out_of_range_integer_coordinate_is_nulled(self, client_as):
        client = client_as("admin_1")
        response = client.patch(
            PROFILE_URL.format(user_id="admin_1"),
            content='{"storefrontLat": 1' + "0" * 400 + ', "storefrontLng": 2}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["storefrontLat"] is None
        assert response.json()["data"]["storefrontLng"] == 2.0

    def test_cross_workspace_forbidden(self, client_as):
        client = client_as("admin_1")
        response = client.patch("/v1/workspaces/ws_2/users/client_2/profile", json={"fullName": "x"})
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


class TestReadProfile:

    def test_read_public_profile(self, client_as):
        client = client_as("client_1")
        response = client.get("/v1/workspaces/ws_1/users/client_1")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "client@example.com"
        assert "passwordHash" not in data


class TestAuth:

    def test_missing_token(self, store):
        client = TestClient(create_app())
        response = client.patch(PROFILE_URL.format(user_id="client_1"), json={"fullName": "x"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_dev_token_acts_as_dev_uid(self, store):
        store.add_user({"id": "dev_uid", "workspaceId": "ws_1", "role": "ADMIN", "email": "dev@example.com"})
        client = TestClient(create_app())
        response = client.patch(
            PROFILE_URL.format(user_id="client_1"),
            json={"fullName": "Set by dev"},
            headers={"Authorization": "Bearer dev-token"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["fullName"] == "Set by dev"

    def test_wrong_dev_token(self, store):
        client = TestClient(create_app())
        response = client.patch(
            PROFILE_URL.format(user_id="client_1"),
            json={"fullName": "x"},
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401
