"""Tests for order placement, owner reads and owner cancellation."""

import pytest
from sqlmodel import select

from conftest import SHIPPING_ADDRESS

from app.models.coupon import Coupon
from app.models.order import Order
from app.services import order_service


class TestCreateOrder:
    def test_totals_with_coupon(self, client, place_order, coupon, session):
        order = place_order(coupon_code="save10")

        assert order["subtotal"] == 1000
        assert order["discount"] == 100
        assert order["shipping_cost"] == 0
        assert order["tax"] == 0
        assert order["total"] == 900
        assert order["coupon_code"] == "SAVE10"
        assert order["status"] == "pending"
        assert order["payment_status"] == "pending"
        assert order["order_number"].startswith("ANV-")

        session.refresh(coupon)
        assert coupon.used_count == 1

    def test_initial_timeline(self, place_order):
        order = place_order()

        assert len(order["timeline"]) == 1
        assert order["timeline"][0]["status"] == "pending"
        assert order["timeline"][0]["message"] == "Order placed"

    def test_snapshots_live_price(self, client, user_headers, product):
        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 1}],
                "shipping_address": SHIPPING_ADDRESS,
            },
            headers=user_headers,
        )
        assert response.status_code == 201
        item = response.json()["items"][0]
        assert item["price"] == 500
        assert item["name"] == "Resin Name Plate"
        assert item["image"] == "https://cdn.anvima.test/rnp.jpg"
        assert item["line_total"] == 500

    def test_flat_shipping_below_threshold(self, client, user_headers, cheap_product):
        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(cheap_product.id), "quantity": 2}],
                "shipping_address": SHIPPING_ADDRESS,
            },
            headers=user_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["subtotal"] == 300
        assert data["shipping_cost"] == 99
        assert data["total"] == 399

    def test_reserves_stock(self, place_order, product, session):
        place_order()
        session.refresh(product)
        assert product.stock == 8

    def test_cash_on_delivery_is_confirmed(self, place_order):
        order = place_order(payment_method="cod")

        assert order["status"] == "confirmed"
        assert [e["status"] for e in order["timeline"]] == ["pending", "confirmed"]
        assert order["timeline"][1]["message"] == "Order confirmed (Cash on Delivery)"

    def test_variant_and_customization_kept(self, client, user_headers, product):
        response = client.post(
            "/api/orders",
            json={
                "items": [
                    {
                        "product_id": str(product.id),
                        "quantity": 1,
                        "variant": {"name": "Size", "option": "Large"},
                        "customization": "Priya & Arjun",
                    }
                ],
                "shipping_address": SHIPPING_ADDRESS,
            },
            headers=user_headers,
        )
        item = response.json()["items"][0]
        assert item["variant"] == {"name": "Size", "option": "Large"}
        assert item["customization"] == "Priya & Arjun"

    def test_notifies_order_placed(self, place_order, notifier):
        order = place_order()

        assert notifier.names == ["order_placed"]
        notice = notifier.events[0][1]
        assert notice.order_number == order["order_number"]
        assert notice.customer_email == "priya.sharma@gmail.com"

    def test_insufficient_stock_rolls_back(self, client, user_headers, product, cheap_product, session):
        response = client.post(
            "/api/orders",
            json={
                "items": [
                    {"product_id": str(product.id), "quantity": 2},
                    {"product_id": str(cheap_product.id), "quantity": 5},
                ],
                "shipping_address": SHIPPING_ADDRESS,
            },
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Insufficient stock for Mini Keychain"

        session.refresh(product)
        session.refresh(cheap_product)
        assert product.stock == 10
        assert cheap_product.stock == 3
        assert session.exec(select(Order)).all() == []

    def test_inactive_product_rejected(self, client, user_headers, product, session):
        product.is_active = False
        session.add(product)
        session.commit()

        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 1}],
                "shipping_address": SHIPPING_ADDRESS,
            },
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_unknown_coupon_rejected(self, client, user_headers, product):
        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 1}],
                "shipping_address": SHIPPING_ADDRESS,
                "coupon_code": "NOPE",
            },
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid coupon code"

    def test_exhausted_coupon_rejected(self, client, user_headers, product, coupon, session):
        coupon.usage_limit = 1
        coupon.used_count = 1
        session.add(coupon)
        session.commit()

        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 2}],
                "shipping_address": SHIPPING_ADDRESS,
                "coupon_code": "SAVE10",
            },
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "This coupon has reached its usage limit"

    def test_missing_shipping_field(self, client, user_headers, product):
        address = {**SHIPPING_ADDRESS, "city": "   "}
        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 1}],
                "shipping_address": address,
            },
            headers=user_headers,
        )
        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert "shipping_address.city" in data["errors"]

    def test_empty_items_rejected(self, client, user_headers):
        response = client.post(
            "/api/orders",
            json={"items": [], "shipping_address": SHIPPING_ADDRESS},
            headers=user_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "No items in order"

    def test_requires_login(self, client, product):
        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 1}],
                "shipping_address": SHIPPING_ADDRESS,
            },
        )
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "message": "Unauthorized - Please log in",
        }

    def test_order_number_collision(
        self, client, place_order, user_headers, product, session, monkeypatch
    ):
        first = place_order()
        monkeypatch.setattr(
            order_service, "generate_order_number", lambda prefix: first["order_number"]
        )

        response = client.post(
            "/api/orders",
            json={
                "items": [{"product_id": str(product.id), "quantity": 2}],
                "shipping_address": SHIPPING_ADDRESS,
            },
            headers=user_headers,
        )
        assert response.status_code == 409

        session.refresh(product)
        assert product.stock == 8


class TestReadOrders:
    def test_list_own_orders(self, client, place_order, user_headers, other_user_headers):
        place_order()
        place_order()
        place_order(headers=other_user_headers)

        response = client.get("/api/orders", headers=user_headers)
        assert response.status_code == 200
        assert len(response.json()) == 2

    @pytest.mark.parametrize("query", ["skip=-1", "limit=0", "limit=-5", "limit=101"])
    def test_list_rejects_out_of_range_paging(self, client, user_headers, query):
        response = client.get(f"/api/orders?{query}", headers=user_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"

    def test_get_by_id_and_number(self, client, place_order, user_headers):
        order = place_order()

        by_id = client.get(f"/api/orders/{order['id']}", headers=user_headers)
        by_number = client.get(
            f"/api/orders/{order['order_number'].lower()}", headers=user_headers
        )
        assert by_id.status_code == 200
        assert by_number.status_code == 200
        assert by_id.json()["id"] == by_number.json()["id"]

    def test_other_users_order_is_not_found(self, client, place_order, other_user_headers):
        order = place_order()

        response = client.get(f"/api/orders/{order['id']}", headers=other_user_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Order not found"

    def test_invoice(self, client, place_order, user_headers, coupon):
        order = place_order(coupon_code="SAVE10")

        response = client.get(f"/api/orders/{order['id']}/invoice", headers=user_headers)
        assert response.status_code == 200
        invoice = response.json()
        assert invoice["invoice_number"] == f"INV-{order['order_number']}"
        assert invoice["customer"]["name"] == "Priya Sharma"
        assert invoice["items"][0]["total"] == 1000
        assert invoice["discount"] == 100
        assert invoice["total"] == 900
        assert invoice["company"]["name"] == "Anvima Creations"


class TestCancelOrder:
    def test_cancel_pending(self, client, place_order, user_headers, product, session, notifier):
        order = place_order()

        response = client.put(
            f"/api/orders/{order['id']}",
            json={"action": "cancel", "reason": "Ordered twice"},
            headers=user_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert len(data["timeline"]) == 2
        assert data["timeline"][-1]["status"] == "cancelled"
        assert data["timeline"][-1]["message"] == "Order cancelled by customer"

        session.refresh(product)
        assert product.stock == 10
        assert notifier.names[-1] == "order_cancelled"
        assert notifier.events[-1][1].note == "Ordered twice"

    def test_cancel_confirmed(self, client, place_order, user_headers):
        order = place_order(payment_method="cod")

        response = client.put(
            f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers
        )
        assert response.status_code == 200
        assert len(response.json()["timeline"]) == 3

    def test_cannot_cancel_shipped(self, client, place_order, user_headers, admin_headers):
        order = place_order()
        client.put(
            f"/api/admin/orders/{order['id']}", json={"status": "shipped"}, headers=admin_headers
        )

        response = client.put(
            f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Order cannot be cancelled at this stage"

        detail = client.get(f"/api/orders/{order['id']}", headers=user_headers).json()
        assert detail["status"] == "shipped"
        assert len(detail["timeline"]) == 2

    @pytest.mark.parametrize("status", ["delivered", "refunded"])
    def test_cannot_cancel_finished_order(
        self, client, place_order, user_headers, admin_headers, status
    ):
        order = place_order()
        client.put(
            f"/api/admin/orders/{order['id']}", json={"status": status}, headers=admin_headers
        )

        response = client.put(
            f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Order cannot be cancelled at this stage"

        detail = client.get(f"/api/orders/{order['id']}", headers=user_headers).json()
        assert detail["status"] == status
        assert len(detail["timeline"]) == 2

    def test_cannot_cancel_twice(self, client, place_order, user_headers):
        order = place_order()
        client.put(f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers)

        response = client.put(
            f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers
        )
        assert response.status_code == 400

        detail = client.get(f"/api/orders/{order['id']}", headers=user_headers).json()
        assert len(detail["timeline"]) == 2

    def test_unknown_action(self, client, place_order, user_headers):
        order = place_order()

        response = client.put(
            f"/api/orders/{order['id']}", json={"action": "return"}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid action"

    def test_cannot_cancel_someone_elses_order(self, client, place_order, other_user_headers):
        order = place_order()

        response = client.put(
            f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=other_user_headers
        )
        assert response.status_code == 404


def _admin_status(client, order, status, headers):
    return client.put(f"/api/admin/orders/{order['id']}", json={"status": status}, headers=headers)


class TestStockAcrossStatusChanges:
    def test_reopened_order_reserves_again(
        self, client, place_order, user_headers, admin_headers, product, session
    ):
        order = place_order()
        client.put(f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers)
        session.refresh(product)
        assert product.stock == 10

        response = _admin_status(client, order, "confirmed", admin_headers)
        assert response.status_code == 200
        session.refresh(product)
        assert product.stock == 8

        client.put(f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers)
        session.refresh(product)
        assert product.stock == 10

    def test_cancelled_again_after_refund_releases_nothing(
        self, client, place_order, admin_headers, product, session
    ):
        order = place_order()
        _admin_status(client, order, "cancelled", admin_headers)
        _admin_status(client, order, "refunded", admin_headers)
        _admin_status(client, order, "cancelled", admin_headers)

        session.refresh(product)
        assert product.stock == 10

    def test_cancel_reopen_cancel_keeps_stock_balanced(
        self, client, place_order, admin_headers, product, session
    ):
        order = place_order()
        for status in ("cancelled", "pending", "cancelled"):
            assert _admin_status(client, order, status, admin_headers).status_code == 200

        session.refresh(product)
        assert product.stock == 10

    def test_reopen_rejected_when_stock_is_short(
        self, client, place_order, user_headers, admin_headers, product, session
    ):
        order = place_order()
        client.put(f"/api/orders/{order['id']}", json={"action": "cancel"}, headers=user_headers)
        client.patch(f"/api/admin/inventory/{product.id}", json={"stock": 1}, headers=admin_headers)

        response = _admin_status(client, order, "processing", admin_headers)
        assert response.status_code == 400
        assert response.json()["message"] == "Insufficient stock for Resin Name Plate"

        detail = client.get(f"/api/orders/{order['id']}", headers=user_headers).json()
        assert detail["status"] == "cancelled"
        assert len(detail["timeline"]) == 2
        session.refresh(product)
        assert product.stock == 1


def test_coupon_usage_not_consumed_on_failed_order(client, user_headers, cheap_product, coupon, session):
    response = client.post(
        "/api/orders",
        json={
            "items": [{"product_id": str(cheap_product.id), "quantity": 10}],
            "shipping_address": SHIPPING_ADDRESS,
            "coupon_code": "SAVE10",
        },
        headers=user_headers,
    )
    assert response.status_code == 400

    assert session.get(Coupon, coupon.id).used_count == 0
