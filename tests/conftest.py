"""
Shared fixtures.

Settings are read from the environment on first import of storefront, so the
test database and gateway keys are set up before anything is imported.
"""
import asyncio
import os
import tempfile
from datetime import datetime, timedelta

_TMP = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["LOG_DIR"] = os.path.join(_TMP, "logs")
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["SHIPROCKET_PICKUP_POSTCODE"] = "400001"
os.environ["INITIAL_ADMIN_EMAIL"] = ""
os.environ["INITIAL_ADMIN_PASSWORD"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from storefront.api import deps  # noqa: E402
from storefront.connectors.shiprocket_connector import ShiprocketConnector  # noqa: E402
from storefront.connectors.token_cache import TokenCache  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.middleware.security_middleware import reset_rate_limits  # noqa: E402
from storefront.models.base import SessionLocal, drop_db, init_db  # noqa: E402
from storefront.models.order import Order, OrderItem  # noqa: E402
from storefront.models.product import Product  # noqa: E402
from storefront.models.shipping import ShippingRate, ShippingZone, ShiprocketIntegration  # noqa: E402
from storefront.services import auth_service  # noqa: E402
from storefront.utils.cache import clear_cache  # noqa: E402

CARRIER_BASE = "https://carrier.test/v1/external"


def run(coro):
    """Run an async coroutine in a sync test."""
    return asyncio.run(coro)


class FakeShiprocket(ShiprocketConnector):
    """
    ShiprocketConnector with the HTTP transport replaced by scripted replies.

    `responses` maps (method, path) to (status, payload). Unscripted calls
    fail the test. Every call is recorded in `calls`.
    """

    def __init__(self, db, token_cache=None, responses=None):
        super().__init__(db, token_cache or TokenCache(), base_url=CARRIER_BASE)
        self.responses = dict(responses or {})
        self.calls = []

    def reply(self, method, path, status=200, payload=None):
        self.responses[(method, path)] = (status, payload or {})

    def paths(self):
        return [path for _, path, _ in self.calls]

    async def _send(self, method, url, headers=None, json=None, params=None, auth=None):
        path = url[len(CARRIER_BASE):]
        self.calls.append((method, path, json if json is not None else params))
        self.request_count += 1
        if (method, path) not in self.responses:
            raise AssertionError(f"Unexpected carrier call: {method} {path}")
        status, payload = self.responses[(method, path)]
        return status, payload


@pytest.fixture(autouse=True)
def fresh_state():
    drop_db()
    init_db()
    clear_cache()
    reset_rate_limits()
    deps.TOKEN_CACHE.invalidate()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin(db):
    return auth_service.create_user(db, "admin", "admin@example.com", "secret123", is_admin=True)


@pytest.fixture
def admin_headers(db, admin):
    return {"Authorization": f"Bearer {auth_service.create_session(db, admin.id)}"}


@pytest.fixture
def user_headers(db):
    user = auth_service.create_user(db, "shopper", "shopper@example.com", "secret123")
    return {"Authorization": f"Bearer {auth_service.create_session(db, user.id)}"}


@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        data = {
            "title": f"Product {counter['n']}",
            "slug": f"product-{counter['n']}",
            "description": "A sample product used in tests",
            "image": "https://img.test/p.jpg",
            "categories": ["sensors"],
            "price": 100.0,
            "stock": 10,
        }
        data.update(overrides)
        product = Product(**data)
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def make_rate(db):
    def _make(**overrides):
        data = {
            "name": "Standard Shipping",
            "description": "Regular delivery",
            "base_rate": 50,
            "per_km_rate": 2,
            "free_shipping_threshold": 1500,
            "estimated_days": "3-5",
        }
        data.update(overrides)
        rate = ShippingRate(**data)
        db.add(rate)
        db.commit()
        db.refresh(rate)
        return rate

    return _make


@pytest.fixture
def make_zone(db):
    def _make(**overrides):
        data = {
            "name": "West India Zone",
            "states": ["Maharashtra", "Gujarat", "Goa"],
            "rate": 80,
            "estimated_days": "3-5",
        }
        data.update(overrides)
        zone = ShippingZone(**data)
        db.add(zone)
        db.commit()
        db.refresh(zone)
        return zone

    return _make


@pytest.fixture
def make_order(db, make_product):
    """Order row written directly, bypassing checkout."""

    def _make(status="paid", products=None, **overrides):
        products = products or [make_product()]
        data = {
            "customer_name": "Asha Rao",
            "customer_email": "asha@example.com",
            "customer_phone": "9876543210",
            "street": "12 MG Road, Flat 4",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411001",
            "country": "India",
            "payment_method": "online",
            "status": status,
        }
        data.update(overrides)
        order = Order(**data)
        for product in products:
            order.items.append(
                OrderItem(product_id=product.id, title=product.title, unit_price=product.price, quantity=1)
            )
        order.subtotal = sum(p.price for p in products)
        order.shipping_charges = 0.0
        order.amount = order.subtotal
        db.add(order)
        db.commit()
        db.refresh(order)
        return order

    return _make


@pytest.fixture
def integration(db):
    record = ShiprocketIntegration(
        email="ops@example.com",
        token="carrier-token",
        token_expiry=datetime.utcnow() + timedelta(days=5),
        last_authenticated=datetime.utcnow(),
        is_active=True,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def carrier(db, integration):
    return FakeShiprocket(db)


@pytest.fixture
def use_carrier(carrier):
    """Route the API's carrier dependency to the fake."""
    app.dependency_overrides[deps.get_shiprocket] = lambda: carrier
    return carrier
