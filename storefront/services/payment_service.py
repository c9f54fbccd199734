"""
Payment service

Razorpay checkout: gateway order creation, signature verification and
payment lookup. Verification is local (HMAC-SHA256 with the key secret).
"""
from typing import Any, Dict, Optional
from datetime import datetime
import hashlib
import hmac
import time

from sqlalchemy.orm import Session

from storefront.connectors.razorpay_connector import RazorpayConnector
from storefront.models.order import Order
from storefront.schemas import PaymentOrderCreate, PaymentVerify
from storefront.config import get_settings
from storefront.exceptions import NotFound, PaymentVerificationFailed, ValidationError
from storefront.utils.cache import clear_for_source
from storefront.utils.logger import log


def compute_signature(razorpay_order_id: str, razorpay_payment_id: str, secret: str) -> str:
    body = f"{razorpay_order_id}|{razorpay_payment_id}"
    return hmac.new(secret.encode(), body.encode(), hashlib.sha256).hexdigest()


def verify_signature(
    razorpay_order_id: str,
    razorpay_payment_id: str,
    signature: str,
    secret: Optional[str] = None,
) -> bool:
    """Constant-time check of the checkout signature returned by Razorpay."""
    secret = secret or get_settings().razorpay_key_secret
    expected = compute_signature(razorpay_order_id, razorpay_payment_id, secret)
    return hmac.compare_digest(expected, (signature or "").strip())


class PaymentService:
    """Razorpay payments for local orders"""

    def __init__(self, db: Session, gateway: Optional[RazorpayConnector] = None):
        self.db = db
        self.gateway = gateway or RazorpayConnector()

    def _get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFound("Order not found")
        return order

    async def create_payment_order(self, request: PaymentOrderCreate) -> Dict[str, Any]:
        """
        Create a Razorpay order. Amount is converted to paise.

        When `order_id` is given the gateway order id is stored on the local order.
        """
        order = None
        if request.order_id is not None:
            order = self._get_order(request.order_id)
            if order.status != "pending":
                raise ValidationError(f"Order {order.id} is already {order.status}", field="order_id")

        receipt = request.receipt or f"receipt_{int(time.time() * 1000)}"
        notes = dict(request.notes or {})
        if order:
            notes.setdefault("order_id", str(order.id))

        gateway_order = await self.gateway.create_order(
            amount_paise=int(round(request.amount * 100)),
            currency=request.currency,
            receipt=receipt,
            notes=notes,
        )

        if order:
            order.razorpay_order_id = gateway_order.get("id")
            self.db.commit()

        log.info(
            f"Razorpay order {gateway_order.get('id')} created for {request.amount} {request.currency}"
            + (f" (order {order.id})" if order else "")
        )
        return gateway_order

    def verify_payment(self, request: PaymentVerify) -> Order:
        """
        Mark an online order paid after checking the Razorpay signature.

        A mismatch raises PaymentVerificationFailed and leaves the order untouched.
        """
        order = self._get_order(request.order_id)

        if order.status == "cancelled":
            raise ValidationError("Cannot take payment for a cancelled order", field="order_id")

        if not verify_signature(
            request.razorpay_order_id, request.razorpay_payment_id, request.razorpay_signature
        ):
            log.warning(f"Invalid Razorpay signature for order {order.id}")
            raise PaymentVerificationFailed()

        if order.razorpay_order_id and order.razorpay_order_id != request.razorpay_order_id:
            log.warning(
                f"Razorpay order mismatch for order {order.id}: "
                f"expected {order.razorpay_order_id}, got {request.razorpay_order_id}"
            )
            raise PaymentVerificationFailed("Payment does not belong to this order")

        if order.status != "pending":
            log.info(f"Order {order.id} already {order.status}, payment verification is a no-op")
            return order

        order.status = "paid"
        order.razorpay_order_id = request.razorpay_order_id
        order.razorpay_payment_id = request.razorpay_payment_id
        order.razorpay_signature = request.razorpay_signature
        order.payment_date = datetime.utcnow()
        self.db.commit()
        self.db.refresh(order)

        clear_for_source("orders")
        log.info(f"Payment {request.razorpay_payment_id} verified, order {order.id} paid")
        return order

    async def get_payment_details(self, payment_id: str) -> Dict[str, Any]:
        if not payment_id:
            raise ValidationError("Payment ID is required", field="payment_id")
        return await self.gateway.fetch_payment(payment_id)
