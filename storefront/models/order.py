"""
Order models

Guest checkout orders with line items, Razorpay payment fields and the
embedded carrier shipment record (the shipment_* / awb columns).
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from storefront.models.base import Base

ORDER_STATUSES = ("pending", "paid", "shipped", "delivered", "cancelled")
PAYMENT_METHODS = ("cod", "online")
# Statuses that count as money received
REVENUE_STATUSES = ("paid", "shipped", "delivered")


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # Customer contact
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String, index=True, nullable=False)
    customer_phone = Column(String(10), index=True, nullable=False)  # 10 normalized digits

    # Shipping address
    street = Column(String(200), nullable=False)
    city = Column(String(50), nullable=False)
    state = Column(String(50), index=True, nullable=False)
    pincode = Column(String(6), nullable=False)
    country = Column(String(50), nullable=False, default="India")

    # Amounts
    subtotal = Column(Float, nullable=False, default=0.0)
    shipping_charges = Column(Float, nullable=False, default=0.0)
    amount = Column(Float, nullable=False)

    # Lifecycle
    payment_method = Column(String(10), nullable=False, default="online")
    status = Column(String(20), index=True, nullable=False, default="pending")

    # Razorpay payment fields
    razorpay_order_id = Column(String, index=True, nullable=True)
    razorpay_payment_id = Column(String, index=True, nullable=True)
    razorpay_signature = Column(String, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    # Shipment sub-record (written by the shipment workflow in one commit)
    carrier_order_id = Column(String, nullable=True)
    shipment_id = Column(String, index=True, nullable=True)
    awb_code = Column(String, unique=True, index=True, nullable=True)
    courier_id = Column(String, nullable=True)
    courier_name = Column(String, nullable=True)
    shipment_status = Column(String, nullable=True)
    shipment_cost = Column(Float, nullable=True)
    last_location = Column(String, nullable=True)
    tracking_url = Column(String, nullable=True)
    estimated_delivery = Column(DateTime, nullable=True)
    last_tracked_at = Column(DateTime, nullable=True)
    pickup_location = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    # Shipment columns snapshotted before/after the workflow
    SHIPMENT_FIELDS = (
        "carrier_order_id", "shipment_id", "awb_code", "courier_id",
        "courier_name", "shipment_status", "shipment_cost", "last_location",
        "tracking_url", "estimated_delivery", "last_tracked_at", "pickup_location",
    )

    def shipment_snapshot(self) -> dict:
        return {f: getattr(self, f) for f in self.SHIPMENT_FIELDS}


class OrderItem(Base):
    """Line item with the product's title and price at checkout time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)

    title = Column(String(200), nullable=False)
    unit_price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
