"""Tests for User endpoints."""
from tests.conftest import create_test_user


class TestUserCRUD:
    """User create / get / list."""

    def test_create_user(self, client):
        data = create_test_user(client, name="Alice")
        assert data["display_name"] == "Alice"
        assert data["enabled"] is True
        assert data["deleted_at"] is None
        assert data["deletion_status"] == "ACTIVE"

    def test_get_user(self, client):
        user = create_test_user(client)
        resp = client.get(f"/api/users/{user['user_id']}")
        assert resp.status_code == 200
        assert resp.json()["display_name"] == "Test User"

    def test_get_user_not_found(self, client):
        resp = client.get("/api/users/00000000-0000-0000-0000-000000000000")
        assert resp.status_code == 404

    def test_list_users(self, client):
        create_test_user(client, name="Alice")
        create_test_user(client, name="Bob")
        names = [u["display_name"] for u in client.get("/api/users/").json()]
        assert "Alice" in names
        assert "Bob" in names
