"""Pytest fixtures for the storefront API tests."""

import os
import uuid
from datetime import timedelta

# Settings are read at import time, so the environment is fixed first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "test-key-secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["NOTIFICATIONS_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.core.auth import create_access_token
from app.core.notifications import get_notifier
from app.core.payment_gateway import RazorpayGateway, get_payment_gateway
from app.core.time_utils import utcnow
from app.database import build_engine, get_session
from app.main import app
from app.models.coupon import Coupon
from app.models.product import Product

KEY_SECRET = "test-key-secret"
WEBHOOK_SECRET = "test-webhook-secret"

USER_ID = uuid.UUID("11111111-1111-4111-8111-111111111111")
OTHER_USER_ID = uuid.UUID("22222222-2222-4222-8222-222222222222")
ADMIN_ID = uuid.UUID("33333333-3333-4333-8333-333333333333")

SHIPPING_ADDRESS = {
    "name": "Priya Sharma",
    "phone": "+91 98765 43210",
    "address": "12 MG Road",
    "city": "Hyderabad",
    "state": "Telangana",
    "pincode": "500001",
    "email": "priya.sharma@gmail.com",
}


class FakeGateway(RazorpayGateway):
    """Real signing logic, canned remote order creation."""

    def __init__(self):
        super().__init__(
            key_id="rzp_test_key",
            key_secret=KEY_SECRET,
            webhook_secret=WEBHOOK_SECRET,
        )
        self.created: list[dict] = []

    def create_order(self, amount, currency, receipt, notes=None):
        entity = {
            "id": f"order_test{len(self.created) + 1}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        self.created.append(entity)
        return entity


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, event, notice):
        self.events.append((event, notice))

    @property
    def names(self):
        return [event for event, _ in self.events]


def auth_headers(user_id: uuid.UUID, email: str, role: str = "user") -> dict[str, str]:
    token = create_access_token(user_id, email, role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(session, gateway, notifier):
    """Test client sharing the test's session, gateway and notifier."""
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notifier] = lambda: notifier

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def user_headers():
    return auth_headers(USER_ID, "priya@anvima.test")


@pytest.fixture
def other_user_headers():
    return auth_headers(OTHER_USER_ID, "rahul@anvima.test")


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, "admin@anvima.test", role="admin")


@pytest.fixture
def product(session):
    """A 500.00 product with 10 units in stock."""
    product = Product(
        name="Resin Name Plate",
        slug="resin-name-plate",
        sku="RNP-001",
        price=500.0,
        image_url="https://cdn.anvima.test/rnp.jpg",
        stock=10,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture
def cheap_product(session):
    product = Product(
        name="Mini Keychain",
        slug="mini-keychain",
        sku="KC-002",
        price=150.0,
        stock=3,
        low_stock_threshold=5,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture
def coupon(session):
    """SAVE10: 10% off, valid now."""
    now = utcnow()
    coupon = Coupon(
        code="SAVE10",
        description="10% off",
        discount_type="percentage",
        discount_value=10,
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=30),
    )
    session.add(coupon)
    session.commit()
    session.refresh(coupon)
    return coupon


@pytest.fixture
def place_order(client, user_headers, product):
    """Place an order for 2 x product (subtotal 1000) as the default user."""

    def _place(headers=None, **overrides):
        payload = {
            "items": [{"product_id": str(product.id), "quantity": 2}],
            "shipping_address": SHIPPING_ADDRESS,
        }
        payload.update(overrides)
        response = client.post("/api/orders", json=payload, headers=headers or user_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _place
