"""
Admin analytics: revenue statuses, sales grouping, customer stats, caching.
"""
from datetime import datetime, timedelta

import pytest

from storefront.exceptions import ValidationError
from storefront.schemas import OrderStatusUpdate
from storefront.services.analytics_service import AnalyticsService
from storefront.services.order_service import OrderService


@pytest.fixture
def orders(make_order, make_product):
    sensor = make_product(price=100, categories=["sensors"])
    motor = make_product(price=300, categories=["motors"])
    return [
        make_order(status="paid", products=[sensor]),
        make_order(status="shipped", products=[motor], awb_code="AWB1"),
        make_order(status="delivered", products=[sensor, motor], customer_email="ravi@example.com"),
        make_order(status="pending", products=[motor]),
        make_order(status="cancelled", products=[sensor]),
    ]


class TestDashboard:

    def test_revenue_counts_paid_shipped_delivered(self, db, orders):
        data = AnalyticsService(db).get_dashboard()
        assert data["overview"]["total_revenue"] == 100 + 300 + 400
        assert data["overview"]["total_orders"] == 5
        assert data["orders_by_status"]["pending"] == 1

    def test_top_products_by_units(self, db, orders):
        top = AnalyticsService(db).get_dashboard()["top_products"]
        assert [p["total_sold"] for p in top] == [2, 2]

    def test_low_stock(self, db, make_product):
        make_product(title="Nearly gone", stock=2)
        make_product(title="Plenty", stock=50)
        low = AnalyticsService(db).get_dashboard()["low_stock_products"]
        assert [p["title"] for p in low] == ["Nearly gone"]

    def test_inverted_range_rejected(self, db):
        now = datetime.utcnow()
        with pytest.raises(ValidationError):
            AnalyticsService(db).get_dashboard(now, now - timedelta(days=1))

    def test_cached_until_orders_change(self, db, orders):
        service = AnalyticsService(db)
        assert service.get_dashboard()["overview"]["total_orders"] == 5
        orders[0].status = "cancelled"
        db.commit()
        # Cached: a direct write does not clear it
        assert service.get_dashboard()["orders_by_status"].get("cancelled") == 1

        OrderService(db).update_order_status(orders[1].id, OrderStatusUpdate(status="delivered"))
        assert service.get_dashboard()["orders_by_status"].get("delivered") == 2


class TestSales:

    def test_metrics_and_categories(self, db, orders):
        data = AnalyticsService(db).get_sales("month")
        assert data["metrics"]["total_sales"] == 800
        assert data["metrics"]["total_orders"] == 3
        assert data["metrics"]["average_order_value"] == pytest.approx(266.67)
        by_category = {row["category"]: row["sales"] for row in data["sales_by_category"]}
        assert by_category == {"motors": 600, "sensors": 200}

    def test_year_groups_by_month(self, db, orders):
        periods = AnalyticsService(db).get_sales("year")["sales_by_period"]
        assert len(periods) == 1
        assert len(periods[0]["period"]) == 7

    def test_custom_needs_dates(self, db):
        with pytest.raises(ValidationError):
            AnalyticsService(db).get_sales("custom")

    def test_unknown_period(self, db):
        with pytest.raises(ValidationError):
            AnalyticsService(db).get_sales("decade")


class TestCustomers:

    def test_repeat_customers_and_retention(self, db, orders):
        data = AnalyticsService(db).get_customers()
        assert data["total_customers"] == 2
        assert data["repeat_customers"] == 1
        assert data["retention_rate"] == 50.0
        top = data["top_customers"][0]
        assert top["email"] == "asha@example.com"
        assert top["total_orders"] == 4
        assert top["total_spent"] == 400


class TestApi:

    def test_admin_only(self, client, user_headers, admin_headers):
        assert client.get("/api/v1/analytics/dashboard", headers=user_headers).status_code == 403
        assert client.get("/api/v1/analytics/dashboard", headers=admin_headers).status_code == 200

    def test_sales_endpoint(self, client, admin_headers, orders):
        response = client.get("/api/v1/analytics/sales", params={"period": "week"}, headers=admin_headers)
        assert response.json()["data"]["metrics"]["total_orders"] == 3

    def test_order_analytics(self, client, admin_headers, orders):
        data = client.get("/api/v1/orders/analytics", headers=admin_headers).json()["data"]
        assert data["total_revenue"] == 800
        assert data["orders_by_status"]["cancelled"] == 1
