"""
Shipment creation: validation, pickup location, courier choice, atomic write.

A failure at any carrier step must leave the order's shipment fields and
status exactly as they were.
"""
import pytest

from conftest import run
from storefront.exceptions import (
    CarrierApiError,
    NoCourierAvailable,
    NoPickupLocation,
    TokenExpired,
    ValidationError,
)
from storefront.services.shipment_service import ShipmentService, compute_package, select_courier
from storefront.connectors.shiprocket_connector import pick_pickup_location

PICKUP = {"data": {"shipping_address": [
    {"pickup_location": "Warehouse-B", "status": 0, "is_primary_location": 1},
    {"pickup_location": "Warehouse-A", "status": 1},
]}}
REGISTERED = {"order_id": 9001, "shipment_id": 7001, "status": "NEW"}
QUOTES = {"data": {"available_courier_companies": [
    {"courier_company_id": 10, "courier_name": "BlueDart", "rate": 120.0},
    {"courier_company_id": 11, "courier_name": "Delhivery", "rate": 85.5},
    {"courier_company_id": 12, "courier_name": "Ekart", "rate": "85.5"},
]}}
ASSIGNED = {"awb_assign_status": 1, "response": {"data": {"awb_code": "AWB777", "courier_name": "Delhivery Surface"}}}


def _script_success(carrier):
    carrier.reply("GET", "/settings/company/pickup", 200, PICKUP)
    carrier.reply("POST", "/orders/create/adhoc", 200, REGISTERED)
    carrier.reply("GET", "/courier/serviceability/", 200, QUOTES)
    carrier.reply("POST", "/courier/assign/awb", 200, ASSIGNED)


class TestSelectCourier:

    def test_lowest_rate_wins(self):
        assert select_courier(QUOTES["data"]["available_courier_companies"])["courier_company_id"] == 11

    def test_tie_goes_to_first_listed(self):
        quotes = [
            {"courier_company_id": 1, "rate": 50},
            {"courier_company_id": 2, "rate": 50.0},
        ]
        assert select_courier(quotes)["courier_company_id"] == 1
        assert select_courier(list(reversed(quotes)))["courier_company_id"] == 2

    def test_same_input_same_choice(self):
        quotes = QUOTES["data"]["available_courier_companies"]
        assert {select_courier(quotes)["courier_company_id"] for _ in range(10)} == {11}

    def test_unusable_quotes_ignored(self):
        quotes = [
            {"courier_company_id": 1, "rate": None},
            {"courier_name": "No id", "rate": 1},
            {"courier_company_id": 3, "rate": "n/a"},
            {"courier_company_id": 4, "freight_charge": 70},
        ]
        assert select_courier(quotes)["courier_company_id"] == 4

    def test_no_quotes(self):
        with pytest.raises(NoCourierAvailable):
            select_courier([])


class TestPickupLocation:

    def test_active_preferred_over_primary(self):
        assert pick_pickup_location(PICKUP["data"]["shipping_address"]) == "Warehouse-A"

    def test_primary_when_none_active(self):
        addresses = [
            {"pickup_location": "First", "status": 0},
            {"pickup_location": "Primary", "status": 0, "is_primary_location": True},
        ]
        assert pick_pickup_location(addresses) == "Primary"

    def test_first_named_as_last_resort(self):
        addresses = [{"status": 0}, {"name": "Fallback", "status": "inactive"}]
        assert pick_pickup_location(addresses) == "Fallback"

    def test_none_configured(self):
        with pytest.raises(NoPickupLocation):
            pick_pickup_location([])
        with pytest.raises(NoPickupLocation):
            pick_pickup_location([{"status": 1}])


class TestPackage:

    def test_max_of_each_dimension(self, make_order, make_product):
        order = make_order(products=[
            make_product(weight=0.2, length=30, breadth=5),
            make_product(weight=1.5, length=10, breadth=12, height=4),
        ])
        assert compute_package(order) == {"weight": 1.5, "length": 30, "breadth": 12, "height": 4}

    def test_defaults_when_undeclared(self, make_order):
        package = compute_package(make_order())
        assert package == {"weight": 0.5, "length": 10.0, "breadth": 10.0, "height": 5.0}


class TestCreateShipment:

    def test_success_writes_shipment_and_ships(self, db, carrier, make_order):
        _script_success(carrier)
        order = make_order(status="paid", customer_phone="9876543210")

        result = run(ShipmentService(db, carrier).create_shipment(order.id))

        db.refresh(order)
        assert order.status == "shipped"
        assert order.awb_code == "AWB777"
        assert order.carrier_order_id == "9001"
        assert order.shipment_id == "7001"
        assert order.courier_id == "11"
        assert order.courier_name == "Delhivery Surface"
        assert order.shipment_cost == 85.5
        assert order.pickup_location == "Warehouse-A"
        assert result["awb_code"] == "AWB777"
        assert carrier.paths() == [
            "/settings/company/pickup",
            "/orders/create/adhoc",
            "/courier/serviceability/",
            "/courier/assign/awb",
        ]

    def test_registration_payload(self, db, carrier, make_order, make_product):
        _script_success(carrier)
        order = make_order(products=[make_product(weight=2.0, sku="SNS-1")])
        run(ShipmentService(db, carrier).create_shipment(order.id))

        payload = carrier.calls[1][2]
        assert payload["order_id"] == str(order.id)
        assert payload["pickup_location"] == "Warehouse-A"
        assert payload["billing_customer_name"] == "Asha"
        assert payload["billing_last_name"] == "Rao"
        assert payload["billing_phone"] == "9876543210"
        assert payload["billing_pincode"] == "411001"
        assert payload["billing_country"] == "India"
        assert payload["payment_method"] == "Prepaid"
        assert payload["weight"] == 2.0
        assert payload["order_items"][0]["sku"] == "SNS-1"

        assign = carrier.calls[3][2]
        assert assign == {"shipment_id": "7001", "courier_id": "11"}

    def test_cod_order_registered_as_cod(self, db, carrier, make_order):
        _script_success(carrier)
        order = make_order(payment_method="cod")
        run(ShipmentService(db, carrier).create_shipment(order.id))
        assert carrier.calls[1][2]["payment_method"] == "COD"

    @pytest.mark.parametrize("failure,error", [
        (("POST", "/orders/create/adhoc", 422, {"message": "Invalid pincode"}), CarrierApiError),
        (("GET", "/courier/serviceability/", 200, {"data": {"available_courier_companies": []}}), NoCourierAvailable),
        (("POST", "/courier/assign/awb", 200, {
            "awb_assign_status": 0,
            "response": {"data": {"awb_assign_error": "Insufficient wallet balance"}},
        }), CarrierApiError),
        (("POST", "/courier/assign/awb", 500, {"message": "Internal error"}), CarrierApiError),
        (("GET", "/courier/serviceability/", 401, {"message": "Token expired"}), TokenExpired),
    ])
    def test_failure_leaves_order_untouched(self, db, carrier, make_order, failure, error):
        _script_success(carrier)
        carrier.reply(*failure)
        order = make_order(status="paid")
        before = order.shipment_snapshot()

        with pytest.raises(error):
            run(ShipmentService(db, carrier).create_shipment(order.id))

        db.expire_all()
        db.refresh(order)
        assert order.shipment_snapshot() == before
        assert order.status == "paid"

    def test_awb_failure_reports_carrier_reason(self, db, carrier, make_order):
        _script_success(carrier)
        carrier.reply("POST", "/courier/assign/awb", 200, {
            "awb_assign_status": 0,
            "response": {"data": {"awb_assign_error": "Insufficient wallet balance"}},
        })
        order = make_order()
        with pytest.raises(CarrierApiError) as exc:
            run(ShipmentService(db, carrier).create_shipment(order.id))
        assert exc.value.message == "Insufficient wallet balance"
        # No fallback to another courier
        assert carrier.paths().count("/courier/assign/awb") == 1

    @pytest.mark.parametrize("status", ["pending", "cancelled", "delivered"])
    def test_unshippable_status(self, db, carrier, make_order, status):
        order = make_order(status=status)
        with pytest.raises(ValidationError):
            run(ShipmentService(db, carrier).create_shipment(order.id))
        assert carrier.calls == []

    def test_existing_awb_rejected(self, db, carrier, make_order):
        order = make_order(status="shipped", awb_code="AWB1")
        with pytest.raises(ValidationError) as exc:
            run(ShipmentService(db, carrier).create_shipment(order.id))
        assert exc.value.field == "awb_code"

    def test_bad_phone_names_field(self, db, carrier, make_order):
        order = make_order(customer_phone="12345")
        with pytest.raises(ValidationError) as exc:
            run(ShipmentService(db, carrier).create_shipment(order.id))
        assert exc.value.field == "customer_phone"
        assert carrier.calls == []

    def test_blank_city_names_field(self, db, carrier, make_order):
        order = make_order(city="  ")
        with pytest.raises(ValidationError) as exc:
            run(ShipmentService(db, carrier).create_shipment(order.id))
        assert exc.value.field == "city"

    def test_no_pickup_location(self, db, carrier, make_order):
        carrier.reply("GET", "/settings/company/pickup", 200, {"data": {"shipping_address": []}})
        order = make_order()
        with pytest.raises(NoPickupLocation):
            run(ShipmentService(db, carrier).create_shipment(order.id))
        assert carrier.paths() == ["/settings/company/pickup"]


class TestApi:

    def test_create_shipment_endpoint(self, client, admin_headers, use_carrier, make_order):
        _script_success(use_carrier)
        order = make_order()
        response = client.post(f"/api/v1/shiprocket/orders/{order.id}/shipment", headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["data"]["awb_code"] == "AWB777"

    def test_no_courier_is_422(self, client, admin_headers, use_carrier, make_order):
        _script_success(use_carrier)
        use_carrier.reply("GET", "/courier/serviceability/", 200, {"data": {}})
        order = make_order()
        response = client.post(f"/api/v1/shiprocket/orders/{order.id}/shipment", headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["code"] == "no_courier_available"

    def test_expired_token_is_401(self, client, admin_headers, use_carrier, integration, db, make_order):
        integration.token = None
        db.commit()
        order = make_order()
        response = client.post(f"/api/v1/shiprocket/orders/{order.id}/shipment", headers=admin_headers)
        assert response.status_code == 401
        assert response.json()["code"] == "carrier_token_expired"

    def test_requires_admin(self, client, user_headers, make_order):
        order = make_order()
        response = client.post(f"/api/v1/shiprocket/orders/{order.id}/shipment", headers=user_headers)
        assert response.status_code == 403

    def test_pickup_locations_endpoint(self, client, admin_headers, use_carrier):
        use_carrier.reply("GET", "/settings/company/pickup", 200, PICKUP)
        response = client.get("/api/v1/shiprocket/pickup-locations", headers=admin_headers)
        assert response.json()["data"]["selected"] == "Warehouse-A"

    def test_pickup_locations_without_usable_name(self, client, admin_headers, use_carrier):
        use_carrier.reply("GET", "/settings/company/pickup", 200, {"data": {"shipping_address": [{"id": 3, "status": 1}]}})
        response = client.get("/api/v1/shiprocket/pickup-locations", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["selected"] is None
