"""
Razorpay payment endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.connectors.razorpay_connector import RazorpayConnector
from storefront.models.base import get_db
from storefront.schemas import PaymentOrderCreate, PaymentVerify
from storefront.services.order_service import order_out
from storefront.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["payments"])


def get_gateway() -> RazorpayConnector:
    return RazorpayConnector()


@router.post("/create-order")
async def create_payment_order(
    body: PaymentOrderCreate,
    db: Session = Depends(get_db),
    gateway: RazorpayConnector = Depends(get_gateway),
):
    """Create a Razorpay order for checkout"""
    gateway_order = await PaymentService(db, gateway).create_payment_order(body)
    return {
        "success": True,
        "message": "Razorpay order created successfully",
        "data": gateway_order,
        "key_id": gateway.key_id,
    }


@router.post("/verify")
async def verify_payment(
    body: PaymentVerify,
    db: Session = Depends(get_db),
    gateway: RazorpayConnector = Depends(get_gateway),
):
    """Verify the checkout signature and mark the order paid"""
    order = PaymentService(db, gateway).verify_payment(body)
    return {
        "success": True,
        "message": "Payment verified and order updated successfully",
        "data": order_out(order),
    }


@router.get("/{payment_id}", dependencies=[Depends(require_admin)])
async def get_payment_details(
    payment_id: str,
    db: Session = Depends(get_db),
    gateway: RazorpayConnector = Depends(get_gateway),
):
    payment = await PaymentService(db, gateway).get_payment_details(payment_id)
    return {"success": True, "data": payment}
