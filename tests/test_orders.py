"""
Guest checkout, order lookup and admin status changes.
"""
import pytest

from storefront.exceptions import ConflictError, ValidationError
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.schemas import OrderCreate, OrderStatusUpdate
from storefront.services.order_service import OrderService


def _checkout(product_ids, payment_method="online", quantity=1, phone="+91 98765-43210"):
    return {
        "customer": {"name": "Asha Rao", "email": "Asha@Example.com", "phone": phone},
        "address": {
            "street": "12 MG Road, Flat 4",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411 001",
        },
        "items": [{"product_id": pid, "quantity": quantity} for pid in product_ids],
        "payment_method": payment_method,
    }


class TestCreateOrder:

    def test_cod_order_is_paid_on_creation(self, db, make_product):
        product = make_product(price=250)
        order = OrderService(db).create_order(OrderCreate(**_checkout([product.id], "cod")))
        assert order.status == "paid"
        assert order.payment_date is not None

    def test_online_order_waits_for_payment(self, db, make_product):
        product = make_product(price=250)
        order = OrderService(db).create_order(OrderCreate(**_checkout([product.id])))
        assert order.status == "pending"
        assert order.payment_date is None

    def test_amount_is_computed_server_side(self, db, make_product, make_rate, make_zone):
        make_rate(free_shipping_threshold=5000)
        make_zone(states=["Maharashtra"], rate=80)
        a = make_product(price=250)
        b = make_product(price=100.5)
        order = OrderService(db).create_order(OrderCreate(**_checkout([a.id, b.id], quantity=2)))
        assert order.subtotal == 701.0
        assert order.shipping_charges == 80
        assert order.amount == 781.0
        assert [i.unit_price for i in order.items] == [250, 100.5]

    def test_shipping_is_zero_without_rates(self, db, make_product):
        product = make_product(price=300)
        order = OrderService(db).create_order(OrderCreate(**_checkout([product.id])))
        assert order.shipping_charges == 0
        assert order.amount == 300

    def test_contact_is_normalised(self, db, make_product):
        product = make_product()
        order = OrderService(db).create_order(OrderCreate(**_checkout([product.id])))
        assert order.customer_phone == "9876543210"
        assert order.customer_email == "asha@example.com"
        assert order.pincode == "411001"
        assert order.country == "India"

    def test_stock_is_decremented(self, db, make_product):
        product = make_product(stock=5)
        OrderService(db).create_order(OrderCreate(**_checkout([product.id], quantity=3)))
        db.refresh(product)
        assert product.stock == 2

    def test_insufficient_stock_changes_nothing(self, db, make_product):
        plenty = make_product(stock=10)
        scarce = make_product(stock=1)
        with pytest.raises(ValidationError) as exc:
            OrderService(db).create_order(OrderCreate(**_checkout([plenty.id, scarce.id], quantity=2)))
        assert exc.value.field == "items"
        db.rollback()
        assert db.get(Product, plenty.id).stock == 10
        assert db.query(Order).count() == 0

    def test_inactive_product_rejected(self, db, make_product):
        product = make_product(active=False)
        with pytest.raises(ValidationError):
            OrderService(db).create_order(OrderCreate(**_checkout([product.id])))

    def test_unknown_product_rejected(self, db):
        with pytest.raises(ValidationError):
            OrderService(db).create_order(OrderCreate(**_checkout([999])))


class TestContactLookup:

    def test_matches_normalised_contact(self, db, make_product):
        product = make_product()
        service = OrderService(db)
        service.create_order(OrderCreate(**_checkout([product.id])))
        found = service.get_orders_by_contact(" ASHA@example.com ", "098765 43210")
        assert len(found) == 1

    def test_other_phone_not_matched(self, db, make_product):
        product = make_product()
        service = OrderService(db)
        service.create_order(OrderCreate(**_checkout([product.id])))
        assert service.get_orders_by_contact("asha@example.com", "9123456780") == []


class TestStatusUpdate:

    def test_paid_cannot_be_set_manually(self, db, make_order):
        order = make_order(status="pending")
        with pytest.raises(ValidationError):
            OrderService(db).update_order_status(order.id, OrderStatusUpdate(status="paid"))

    def test_shipped_requires_awb(self, db, make_order):
        order = make_order(status="paid")
        with pytest.raises(ValidationError) as exc:
            OrderService(db).update_order_status(order.id, OrderStatusUpdate(status="shipped"))
        assert exc.value.field == "awb"

    def test_shipped_with_awb(self, db, make_order):
        order = make_order(status="paid")
        updated = OrderService(db).update_order_status(
            order.id, OrderStatusUpdate(status="shipped", awb="AWB123", courier_name="Delhivery")
        )
        assert updated.status == "shipped"
        assert updated.awb_code == "AWB123"
        assert updated.courier_name == "Delhivery"

    def test_duplicate_awb_conflicts(self, db, make_order):
        make_order(status="shipped", awb_code="AWB123")
        order = make_order(status="paid")
        with pytest.raises(ConflictError):
            OrderService(db).update_order_status(order.id, OrderStatusUpdate(status="shipped", awb="AWB123"))

    @pytest.mark.parametrize("current,target", [
        ("pending", "shipped"),
        ("pending", "delivered"),
        ("delivered", "cancelled"),
        ("cancelled", "pending"),
    ])
    def test_disallowed_transitions(self, db, make_order, current, target):
        order = make_order(status=current, awb_code="AWB9")
        with pytest.raises(ValidationError):
            OrderService(db).update_order_status(order.id, OrderStatusUpdate(status=target))

    def test_cancel_pending(self, db, make_order):
        order = make_order(status="pending")
        assert OrderService(db).update_order_status(order.id, OrderStatusUpdate(status="cancelled")).status == "cancelled"


class TestApi:

    def test_checkout_is_public(self, client, make_product):
        product = make_product(price=499)
        response = client.post("/api/v1/orders", json=_checkout([product.id], "cod"))
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "paid"
        assert body["data"]["amount"] == 499

    def test_client_amount_is_ignored(self, client, make_product):
        product = make_product(price=499)
        payload = _checkout([product.id])
        payload["amount"] = 1
        response = client.post("/api/v1/orders", json=payload)
        assert response.json()["data"]["amount"] == 499

    def test_short_phone_is_400(self, client, make_product):
        product = make_product()
        response = client.post("/api/v1/orders", json=_checkout([product.id], phone="12345"))
        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["errors"][0]["field"] == "customer.phone"

    def test_empty_items_is_400(self, client):
        payload = _checkout([])
        assert client.post("/api/v1/orders", json=payload).status_code == 400

    def test_track_by_contact(self, client, make_product):
        product = make_product()
        client.post("/api/v1/orders", json=_checkout([product.id]))
        response = client.get(
            "/api/v1/orders/track", params={"email": "asha@example.com", "phone": "9876543210"}
        )
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_listing_requires_admin(self, client, user_headers, admin_headers, make_order):
        make_order()
        assert client.get("/api/v1/orders", headers=user_headers).status_code == 403
        response = client.get("/api/v1/orders", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["pagination"]["totalItems"] == 1

    def test_status_update_endpoint(self, client, admin_headers, make_order):
        order = make_order(status="paid")
        response = client.put(
            f"/api/v1/orders/{order.id}/status", headers=admin_headers, json={"status": "paid"}
        )
        assert response.status_code == 400
        assert response.json()["field"] == "status"

    def test_missing_order_is_404(self, client, admin_headers):
        assert client.get("/api/v1/orders/999", headers=admin_headers).status_code == 404

    def test_tracking_without_awb_is_400(self, client, admin_headers, make_order):
        order = make_order(status="paid")
        response = client.get(f"/api/v1/orders/{order.id}/tracking", headers=admin_headers)
        assert response.status_code == 400
