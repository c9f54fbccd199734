"""
Local shipping estimate rules and rate/zone administration.
"""
import pytest

from storefront.exceptions import NoRatesConfigured, ValidationError
from storefront.services.shipping_service import ShippingService


class TestEstimate:

    def test_free_shipping_at_exact_threshold(self, db, make_rate, make_zone):
        make_rate(free_shipping_threshold=1500)
        make_zone()
        estimate = ShippingService(db).estimate("Maharashtra", 1500)
        assert estimate["cost"] == 0
        assert estimate["rule"] == "free_shipping"

    def test_zone_rate_below_threshold(self, db, make_rate, make_zone):
        make_rate(free_shipping_threshold=1500)
        make_zone(states=["Maharashtra"], rate=80)
        estimate = ShippingService(db).estimate("Maharashtra", 1000)
        assert estimate["cost"] == 80
        assert estimate["rule"] == "zone"

    def test_zone_match_is_case_insensitive(self, db, make_rate, make_zone):
        make_rate()
        make_zone(states=["Maharashtra"], rate=80)
        assert ShippingService(db).estimate("  maharashtra ", 100)["cost"] == 80

    def test_default_rate_uses_weight(self, db, make_rate):
        make_rate(base_rate=50, per_km_rate=2)
        estimate = ShippingService(db).estimate("Kerala", 100, weight=3)
        assert estimate["cost"] == 56
        assert estimate["rule"] == "default_rate"

    def test_default_weight_is_one(self, db, make_rate):
        make_rate(base_rate=50, per_km_rate=2)
        assert ShippingService(db).estimate("Kerala", 100)["cost"] == 52

    def test_inactive_rates_and_zones_ignored(self, db, make_rate, make_zone):
        make_rate(name="Cheap", free_shipping_threshold=10, active=False)
        make_rate(name="Standard", base_rate=40, per_km_rate=0)
        make_zone(active=False)
        estimate = ShippingService(db).estimate("Maharashtra", 100)
        assert estimate["cost"] == 40

    def test_no_rates_configured(self, db):
        with pytest.raises(NoRatesConfigured):
            ShippingService(db).estimate("Maharashtra", 100)


class TestAdmin:

    def test_duplicate_zone_name_rejected(self, db):
        service = ShippingService(db)
        service.create_zone({"name": "North", "states": ["Delhi"], "rate": 60, "estimated_days": "2-4"})
        with pytest.raises(ValidationError) as exc:
            service.create_zone({"name": " north ", "states": ["Punjab"], "rate": 60, "estimated_days": "2-4"})
        assert exc.value.field == "name"

    def test_toggle_rate(self, db, make_rate):
        rate = make_rate()
        assert ShippingService(db).toggle_rate(rate.id).active is False
        assert ShippingService(db).toggle_rate(rate.id).active is True


class TestApi:

    def test_calculate_is_public(self, client, make_rate, make_zone):
        make_rate()
        make_zone()
        response = client.post(
            "/api/v1/shipping/calculate",
            json={"state": "Maharashtra", "pincode": "411001", "order_amount": 1000},
        )
        assert response.status_code == 200
        assert response.json()["data"]["cost"] == 80

    def test_calculate_without_rates_is_404(self, client):
        response = client.post("/api/v1/shipping/calculate", json={"state": "Goa", "order_amount": 10})
        assert response.status_code == 404
        assert response.json()["code"] == "no_rates_configured"

    def test_rates_require_admin(self, client, user_headers, admin_headers):
        assert client.get("/api/v1/shipping/rates").status_code == 401
        assert client.get("/api/v1/shipping/rates", headers=user_headers).status_code == 403
        assert client.get("/api/v1/shipping/rates", headers=admin_headers).status_code == 200

    def test_create_zone(self, client, admin_headers):
        response = client.post(
            "/api/v1/shipping/zones",
            headers=admin_headers,
            json={"name": "South", "states": ["Kerala", " Karnataka "], "rate": 100, "estimated_days": "4-6"},
        )
        assert response.status_code == 201
        assert response.json()["data"]["states"] == ["Kerala", "Karnataka"]
