"""Tests for the self-service user endpoints."""

import uuid

from sqlmodel import select

from conftest import USER_ID, auth_headers

from app.core.auth import create_access_token
from app.models.order import Order
from app.models.user import User


class TestReadMe:
    def test_bearer_token_provisions_profile(self, client, user_headers, session):
        response = client.get("/api/users/me", headers=user_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(USER_ID)
        assert data["email"] == "priya@anvima.test"
        assert data["name"] == "priya"
        assert data["role"] == "user"

        assert session.get(User, USER_ID) is not None

    def test_auth_cookie(self, client):
        client.cookies.set("auth-token", create_access_token(USER_ID, "priya@anvima.test"))

        response = client.get("/api/users/me")
        assert response.status_code == 200
        assert response.json()["id"] == str(USER_ID)

    def test_invalid_token(self, client):
        response = client.get("/api/users/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_anonymous(self, client):
        response = client.get("/api/users/me")
        assert response.status_code == 401


class TestDeleteAccount:
    def test_orders_are_anonymized(self, client, place_order, user_headers, session):
        order = place_order()
        place_order()

        response = client.delete("/api/users/me", headers=user_headers)
        assert response.status_code == 200
        assert response.json() == {
            "message": "Account deleted successfully",
            "anonymized_orders": 2,
        }
        assert "auth-token=" in response.headers["set-cookie"]

        kept = session.get(Order, uuid.UUID(order["id"]))
        assert kept is not None
        assert kept.user_id is None
        assert kept.shipping_name == "Deleted User"
        assert kept.shipping_phone == "0000000000"
        assert kept.shipping_email == "deleted@user.com"
        assert kept.total == order["total"]

        assert session.get(User, USER_ID) is None

    def test_other_users_orders_untouched(self, client, place_order, user_headers, other_user_headers, session):
        place_order(headers=other_user_headers)

        client.delete("/api/users/me", headers=user_headers)

        orders = session.exec(select(Order)).all()
        assert len(orders) == 1
        assert orders[0].shipping_name == "Priya Sharma"
        assert orders[0].user_id is not None

    def test_admin_cannot_delete_self(self, client, admin_headers):
        response = client.delete("/api/users/me", headers=admin_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "Admin accounts cannot be deleted"

    def test_deleted_order_no_longer_listed(self, client, place_order, session):
        headers = auth_headers(uuid.uuid4(), "meera@anvima.test")
        place_order(headers=headers)

        client.delete("/api/users/me", headers=headers)

        # The same identity comes back as a fresh, empty profile
        response = client.get("/api/orders", headers=headers)
        assert response.status_code == 200
        assert response.json() == []
