"""
Order service

Guest checkout, contact-based order lookup and admin order management.
Totals are computed here from catalog prices; client-sent amounts are ignored.
"""
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from datetime import datetime, timedelta
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from storefront.models.order import Order, OrderItem, ORDER_STATUSES, REVENUE_STATUSES
from storefront.models.product import Product
from storefront.schemas import OrderCreate, OrderStatusUpdate
from storefront.services.shipping_service import ShippingService
from storefront.config import get_settings
from storefront.exceptions import ConflictError, NoRatesConfigured, NotFound, ValidationError
from storefront.utils.cache import _MISS, clear_for_source, get_cached, set_cached
from storefront.utils.helpers import normalize_phone, paginate, pagination_meta, round_money
from storefront.utils.logger import log

if TYPE_CHECKING:
    from storefront.services.shipment_service import ShipmentService

settings = get_settings()

CONTACT_LOOKUP_LIMIT = 10

# status -> statuses an admin may move the order to
ALLOWED_TRANSITIONS = {
    "pending": ("cancelled",),
    "paid": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": (),
    "cancelled": (),
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def order_out(o: Order) -> Dict[str, Any]:
    return {
        "id": o.id,
        "customer": {
            "name": o.customer_name,
            "email": o.customer_email,
            "phone": o.customer_phone,
        },
        "address": {
            "street": o.street,
            "city": o.city,
            "state": o.state,
            "pincode": o.pincode,
            "country": o.country,
        },
        "items": [
            {
                "product_id": i.product_id,
                "title": i.title,
                "unit_price": i.unit_price,
                "quantity": i.quantity,
                "line_total": round_money(i.unit_price * i.quantity),
            }
            for i in o.items
        ],
        "subtotal": o.subtotal,
        "shipping_charges": o.shipping_charges,
        "amount": o.amount,
        "payment_method": o.payment_method,
        "status": o.status,
        "razorpay_order_id": o.razorpay_order_id,
        "razorpay_payment_id": o.razorpay_payment_id,
        "payment_date": _iso(o.payment_date),
        "shipment": {
            "carrier_order_id": o.carrier_order_id,
            "shipment_id": o.shipment_id,
            "awb_code": o.awb_code,
            "courier_id": o.courier_id,
            "courier_name": o.courier_name,
            "status": o.shipment_status,
            "cost": o.shipment_cost,
            "last_location": o.last_location,
            "tracking_url": o.tracking_url,
            "estimated_delivery": _iso(o.estimated_delivery),
            "last_tracked_at": _iso(o.last_tracked_at),
            "pickup_location": o.pickup_location,
        },
        "created_at": _iso(o.created_at),
        "updated_at": _iso(o.updated_at),
    }


class OrderService:
    """Checkout and order lifecycle"""

    def __init__(self, db: Session):
        self.db = db

    # ── Checkout ───────────────────────────────────────────

    def create_order(self, payload: OrderCreate) -> Order:
        """
        Place a guest order.

        Checks and decrements stock, snapshots unit prices, and adds the
        local shipping estimate (0 when no rates are configured). COD orders
        are paid on creation; online orders wait for payment verification.
        """
        quantities: Dict[int, int] = {}
        for item in payload.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

        products = {
            p.id: p
            for p in self.db.query(Product).filter(Product.id.in_(list(quantities))).all()
        }

        order = Order(
            customer_name=payload.customer.name,
            customer_email=payload.customer.email,
            customer_phone=payload.customer.phone,
            street=payload.address.street.strip(),
            city=payload.address.city.strip(),
            state=payload.address.state.strip(),
            pincode=payload.address.pincode,
            country=payload.address.country.strip() or "India",
            payment_method=payload.payment_method,
        )

        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if not product or not product.active:
                raise ValidationError(f"Product {product_id} is not available", field="items")
            if product.stock < quantity:
                raise ValidationError(
                    f"Insufficient stock for '{product.title}' ({product.stock} left)", field="items"
                )

        subtotal = 0.0
        total_weight = 0.0
        for product_id, quantity in quantities.items():
            product = products[product_id]
            product.stock -= quantity
            subtotal += product.price * quantity
            total_weight += (product.weight or 0) * quantity
            order.items.append(
                OrderItem(
                    product_id=product.id,
                    title=product.title,
                    unit_price=product.price,
                    quantity=quantity,
                )
            )

        order.subtotal = round_money(subtotal)
        order.shipping_charges = self._shipping_charges(order, total_weight or None)
        order.amount = round_money(order.subtotal + order.shipping_charges)

        if order.payment_method == "cod":
            order.status = "paid"
            order.payment_date = datetime.utcnow()
        else:
            order.status = "pending"

        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)

        clear_for_source("orders")
        clear_for_source("products")
        log.info(
            f"Order {order.id} created: {len(order.items)} item(s), amount {order.amount}, "
            f"{order.payment_method}, status {order.status}"
        )
        return order

    def _shipping_charges(self, order: Order, weight: Optional[float]) -> float:
        try:
            estimate = ShippingService(self.db).estimate(
                order.state, order.subtotal, weight=weight, pincode=order.pincode
            )
        except NoRatesConfigured:
            return 0.0
        return round_money(estimate["cost"])

    # ── Lookup ─────────────────────────────────────────────

    def get_orders_by_contact(self, email: str, phone: str) -> List[Order]:
        """Most recent orders for a customer (public order tracking)."""
        email = (email or "").strip().lower()
        if not email:
            raise ValidationError("Email is required", field="email")
        phone = normalize_phone(phone)
        return (
            self.db.query(Order)
            .filter(Order.customer_email == email, Order.customer_phone == phone)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(CONTACT_LOOKUP_LIMIT)
            .all()
        )

    def list_orders(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        page, limit, offset = paginate(page, limit)
        query = self.db.query(Order)
        if status:
            if status not in ORDER_STATUSES:
                raise ValidationError("Invalid order status", field="status")
            query = query.filter(Order.status == status)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Order.customer_name.ilike(pattern),
                    Order.customer_email.ilike(pattern),
                    Order.customer_phone.ilike(pattern),
                )
            )

        total = query.count()
        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset).limit(limit).all()
        return {
            "data": [order_out(o) for o in orders],
            "pagination": pagination_meta(total, page, limit),
        }

    def get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFound("Order not found")
        return order

    # ── Admin lifecycle ────────────────────────────────────

    def update_order_status(self, order_id: int, update: OrderStatusUpdate) -> Order:
        """
        Apply an admin status change.

        `paid` is only ever set by payment verification or COD checkout,
        and `shipped` needs an AWB on the order or in the request.
        """
        order = self.get_order(order_id)
        target = update.status

        if target == "paid":
            raise ValidationError("Orders are marked paid by payment verification only", field="status")

        if target != order.status and target not in ALLOWED_TRANSITIONS.get(order.status, ()):
            raise ValidationError(
                f"Cannot change order status from '{order.status}' to '{target}'", field="status"
            )

        awb = (update.awb or "").strip() or None
        if awb and awb != order.awb_code:
            holder = self.db.query(Order).filter(Order.awb_code == awb, Order.id != order.id).first()
            if holder:
                raise ConflictError(f"AWB {awb} is already assigned to order {holder.id}", field="awb")

        if target == "shipped" and not (awb or order.awb_code):
            raise ValidationError("An AWB is required before an order can be shipped", field="awb")

        previous = order.status
        order.status = target
        if awb:
            order.awb_code = awb
        if update.courier_name:
            order.courier_name = update.courier_name
        if update.tracking_url:
            order.tracking_url = update.tracking_url
        if update.estimated_delivery:
            order.estimated_delivery = update.estimated_delivery

        self.db.commit()
        self.db.refresh(order)
        clear_for_source("orders")
        log.info(f"Order {order.id} status {previous} -> {order.status}")
        return order

    async def track_order_shipment(self, order_id: int, shipments: "ShipmentService") -> Dict[str, Any]:
        order = self.get_order(order_id)
        if not order.awb_code:
            raise ValidationError("No shipment found for this order", field="awb_code")
        tracking = await shipments.track(order.awb_code)
        return {
            "order_id": order.id,
            "shipment_id": order.shipment_id,
            "awb": order.awb_code,
            "tracking": tracking,
        }

    # ── Analytics ──────────────────────────────────────────

    def get_order_analytics(self) -> Dict[str, Any]:
        cached = get_cached("orders_analytics")
        if cached is not _MISS:
            return cached

        by_status = dict(
            self.db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        )
        orders_by_status = {s: by_status.get(s, 0) for s in ORDER_STATUSES}

        revenue_query = self.db.query(Order).filter(Order.status.in_(REVENUE_STATUSES))
        total_revenue = self.db.query(func.coalesce(func.sum(Order.amount), 0.0)).filter(
            Order.status.in_(REVENUE_STATUSES)
        ).scalar()

        # Monthly trend, grouped in Python so SQLite and Postgres agree
        six_months_ago = datetime.utcnow() - timedelta(days=183)
        monthly: Dict[tuple, Dict[str, Any]] = {}
        for o in revenue_query.filter(Order.created_at >= six_months_ago).all():
            key = (o.created_at.year, o.created_at.month)
            bucket = monthly.setdefault(key, {"year": key[0], "month": key[1], "revenue": 0.0, "orders": 0})
            bucket["revenue"] += o.amount
            bucket["orders"] += 1
        monthly_revenue = [
            {**b, "revenue": round_money(b["revenue"])} for _, b in sorted(monthly.items())
        ]

        recent = (
            self.db.query(Order)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(10)
            .all()
        )
        recent_orders = [
            {
                "id": o.id,
                "customer_name": o.customer_name,
                "customer_email": o.customer_email,
                "amount": o.amount,
                "status": o.status,
                "created_at": _iso(o.created_at),
            }
            for o in recent
        ]

        top = (
            self.db.query(
                Order.customer_email,
                func.max(Order.customer_name),
                func.sum(Order.amount).label("total_spent"),
                func.count(Order.id),
            )
            .filter(Order.status.in_(REVENUE_STATUSES))
            .group_by(Order.customer_email)
            .order_by(func.sum(Order.amount).desc())
            .limit(10)
            .all()
        )
        top_customers = [
            {
                "email": email,
                "name": name,
                "total_spent": round_money(spent),
                "order_count": count,
            }
            for email, name, spent, count in top
        ]

        result = {
            "total_orders": sum(orders_by_status.values()),
            "orders_by_status": orders_by_status,
            "total_revenue": round_money(total_revenue),
            "monthly_revenue": monthly_revenue,
            "recent_orders": recent_orders,
            "top_customers": top_customers,
        }
        set_cached("orders_analytics", result, settings.analytics_cache_seconds)
        return result
