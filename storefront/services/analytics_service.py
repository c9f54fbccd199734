"""
Admin analytics service

Dashboard, sales and customer reports. Aggregation that depends on dates or
JSON columns is done in Python so SQLite and Postgres give the same answers.
Revenue counts orders that are paid, shipped or delivered.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.article import Article
from storefront.models.order import Order, OrderItem, REVENUE_STATUSES
from storefront.models.product import Product
from storefront.models.user import User
from storefront.config import get_settings
from storefront.exceptions import ValidationError
from storefront.utils.cache import _MISS, get_cached, set_cached
from storefront.utils.helpers import calculate_date_range, group_sum, round_money, safe_divide
from storefront.utils.logger import log

settings = get_settings()

SALES_PERIODS = {"week": 7, "month": 30, "year": 365}


def _day(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


class AnalyticsService:
    """Admin reporting over orders, products, users and articles"""

    def __init__(self, db: Session):
        self.db = db

    def _revenue_orders(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Order]:
        query = self.db.query(Order).filter(Order.status.in_(REVENUE_STATUSES))
        if start:
            query = query.filter(Order.created_at >= start)
        if end:
            query = query.filter(Order.created_at <= end)
        return query.order_by(Order.created_at).all()

    # ── Dashboard ──────────────────────────────────────────

    def get_dashboard(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Overview for the admin home page. Defaults to the last 30 days."""
        default_start, default_end = calculate_date_range(30)
        start = start_date or default_start
        end = end_date or default_end
        if start > end:
            raise ValidationError("start_date must be before end_date", field="start_date")

        cache_key = f"analytics_dashboard_{_day(start)}_{_day(end)}"
        cached = get_cached(cache_key)
        if cached is not _MISS:
            return cached

        in_range = [Order.created_at >= start, Order.created_at <= end]
        orders_by_status = dict(
            self.db.query(Order.status, func.count(Order.id)).filter(*in_range).group_by(Order.status).all()
        )

        revenue_orders = self._revenue_orders(start, end)
        overview = {
            "total_products": self.db.query(func.count(Product.id)).scalar(),
            "total_orders": sum(orders_by_status.values()),
            "total_users": self.db.query(func.count(User.id)).filter(User.is_admin == False).scalar(),  # noqa: E712
            "total_articles": self.db.query(func.count(Article.id)).scalar(),
            "total_revenue": round_money(sum(o.amount for o in revenue_orders)),
        }

        # Daily revenue, last 7 days
        week_start, _ = calculate_date_range(7)
        daily: Dict[str, Dict[str, Any]] = {}
        for o in self._revenue_orders(week_start):
            bucket = daily.setdefault(_day(o.created_at), {"date": _day(o.created_at), "revenue": 0.0, "orders": 0})
            bucket["revenue"] += o.amount
            bucket["orders"] += 1
        daily_revenue = [{**b, "revenue": round_money(b["revenue"])} for _, b in sorted(daily.items())]

        top_rows = (
            self.db.query(
                OrderItem.product_id,
                func.sum(OrderItem.quantity).label("units"),
                func.sum(OrderItem.quantity * OrderItem.unit_price).label("revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .filter(Order.status.in_(REVENUE_STATUSES))
            .group_by(OrderItem.product_id)
            .order_by(func.sum(OrderItem.quantity).desc())
            .limit(5)
            .all()
        )
        products = {
            p.id: p
            for p in self.db.query(Product).filter(Product.id.in_([r.product_id for r in top_rows])).all()
        }
        top_products = [
            {
                "product_id": r.product_id,
                "title": products[r.product_id].title if r.product_id in products else None,
                "image": products[r.product_id].image if r.product_id in products else None,
                "total_sold": int(r.units),
                "revenue": round_money(r.revenue),
            }
            for r in top_rows
        ]

        recent_orders = [
            {
                "id": o.id,
                "customer_name": o.customer_name,
                "customer_email": o.customer_email,
                "amount": o.amount,
                "status": o.status,
                "created_at": o.created_at.isoformat() if o.created_at else None,
            }
            for o in self.db.query(Order)
            .filter(*in_range)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(10)
            .all()
        ]

        low_stock_products = [
            {"id": p.id, "title": p.title, "stock": p.stock, "price": p.price, "image": p.image}
            for p in self.db.query(Product)
            .filter(Product.stock <= settings.low_stock_threshold)
            .order_by(Product.stock, Product.id)
            .limit(10)
            .all()
        ]

        growth: Dict[str, int] = {}
        for (created_at,) in (
            self.db.query(User.created_at)
            .filter(User.is_admin == False, User.created_at >= default_start)  # noqa: E712
            .all()
        ):
            if created_at:
                growth[_day(created_at)] = growth.get(_day(created_at), 0) + 1
        user_growth = [{"date": d, "new_users": n} for d, n in sorted(growth.items())]

        top_articles = [
            {
                "id": a.id,
                "title": a.title,
                "views": a.views,
                "likes": a.likes,
                "published_at": a.published_at.isoformat() if a.published_at else None,
            }
            for a in self.db.query(Article)
            .filter(Article.status == "published")
            .order_by(Article.views.desc(), Article.id)
            .limit(5)
            .all()
        ]

        result = {
            "period": {"start": start.isoformat(), "end": end.isoformat()},
            "overview": overview,
            "orders_by_status": orders_by_status,
            "daily_revenue": daily_revenue,
            "top_products": top_products,
            "recent_orders": recent_orders,
            "low_stock_products": low_stock_products,
            "user_growth": user_growth,
            "top_articles": top_articles,
        }
        set_cached(cache_key, result, settings.analytics_cache_seconds)
        return result

    # ── Sales ──────────────────────────────────────────────

    def get_sales(
        self,
        period: str = "month",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        if period == "custom":
            if not start_date or not end_date:
                raise ValidationError("start_date and end_date are required for a custom period", field="period")
            start, end = start_date, end_date
        elif period in SALES_PERIODS:
            start, end = calculate_date_range(SALES_PERIODS[period])
        else:
            raise ValidationError("Period must be week, month, year or custom", field="period")

        cache_key = f"analytics_sales_{period}_{_day(start)}_{_day(end)}"
        cached = get_cached(cache_key)
        if cached is not _MISS:
            return cached

        orders = self._revenue_orders(start, end)
        total_sales = sum(o.amount for o in orders)

        bucket_format = "%Y-%m" if period == "year" else "%Y-%m-%d"
        by_period: Dict[str, Dict[str, Any]] = {}
        for o in orders:
            key = o.created_at.strftime(bucket_format)
            bucket = by_period.setdefault(key, {"period": key, "sales": 0.0, "orders": 0})
            bucket["sales"] += o.amount
            bucket["orders"] += 1

        category_rows = []
        for o in orders:
            for item in o.items:
                categories = (item.product.categories if item.product else None) or ["uncategorized"]
                for category in categories:
                    category_rows.append({
                        "category": category,
                        "sales": item.unit_price * item.quantity,
                        "quantity": item.quantity,
                    })
        sales = group_sum(category_rows, "category", "sales")
        quantity = group_sum(category_rows, "category", "quantity")
        sales_by_category = sorted(
            (
                {"category": c, "sales": round_money(s), "quantity": int(quantity[c])}
                for c, s in sales.items()
            ),
            key=lambda r: r["sales"],
            reverse=True,
        )

        result = {
            "period": {"type": period, "start": start.isoformat(), "end": end.isoformat()},
            "metrics": {
                "total_sales": round_money(total_sales),
                "total_orders": len(orders),
                "average_order_value": round_money(safe_divide(total_sales, len(orders))),
            },
            "sales_by_period": [
                {**b, "sales": round_money(b["sales"])} for _, b in sorted(by_period.items())
            ],
            "sales_by_category": sales_by_category,
        }
        set_cached(cache_key, result, settings.analytics_cache_seconds)
        return result

    # ── Customers ──────────────────────────────────────────

    def get_customers(self) -> Dict[str, Any]:
        cached = get_cached("analytics_customers")
        if cached is not _MISS:
            return cached

        stats: Dict[str, Dict[str, Any]] = {}
        locations: Dict[tuple, Dict[str, Any]] = {}
        for o in self.db.query(Order).order_by(Order.created_at, Order.id).all():
            counts_as_revenue = o.status in REVENUE_STATUSES
            customer = stats.setdefault(o.customer_email, {
                "email": o.customer_email,
                "name": o.customer_name,
                "total_orders": 0,
                "total_spent": 0.0,
                "last_order_date": None,
                "city": o.city,
                "state": o.state,
            })
            customer["total_orders"] += 1
            if counts_as_revenue:
                customer["total_spent"] += o.amount
            if o.created_at and (customer["last_order_date"] is None or o.created_at > customer["last_order_date"]):
                customer["last_order_date"] = o.created_at

            if counts_as_revenue:
                loc = locations.setdefault((o.state, o.city), {
                    "state": o.state, "city": o.city, "customers": set(), "orders": 0, "revenue": 0.0,
                })
                loc["customers"].add(o.customer_email)
                loc["orders"] += 1
                loc["revenue"] += o.amount

        customers = list(stats.values())
        for c in customers:
            c["total_spent"] = round_money(c["total_spent"])
            c["last_order_date"] = c["last_order_date"].isoformat() if c["last_order_date"] else None

        repeat = [c for c in customers if c["total_orders"] > 1]
        by_location = sorted(
            (
                {
                    "state": loc["state"],
                    "city": loc["city"],
                    "unique_customers": len(loc["customers"]),
                    "orders": loc["orders"],
                    "revenue": round_money(loc["revenue"]),
                }
                for loc in locations.values()
            ),
            key=lambda r: r["revenue"],
            reverse=True,
        )[:20]

        result = {
            "total_customers": len(customers),
            "repeat_customers": len(repeat),
            "retention_rate": round(safe_divide(len(repeat), len(customers)) * 100, 2),
            "top_customers": sorted(customers, key=lambda c: c["total_spent"], reverse=True)[:10],
            "customers_by_location": by_location,
            "average_order_value": round_money(
                safe_divide(sum(safe_divide(c["total_spent"], c["total_orders"]) for c in customers), len(customers))
            ),
        }
        log.debug(f"Customer analytics computed for {len(customers)} customers")
        set_cached("analytics_customers", result, settings.analytics_cache_seconds)
        return result
