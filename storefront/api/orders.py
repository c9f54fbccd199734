"""
Order endpoints

Guest checkout and order tracking are public; everything else is admin-only.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import EmailStr
from sqlalchemy.orm import Session

from storefront.api.deps import get_shipment_service, require_admin
from storefront.models.base import get_db
from storefront.schemas import OrderCreate, OrderStatusUpdate
from storefront.services.order_service import OrderService, order_out
from storefront.services.shipment_service import ShipmentService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201)
async def create_order(body: OrderCreate, db: Session = Depends(get_db)):
    """Guest checkout"""
    order = OrderService(db).create_order(body)
    message = (
        "Order placed successfully! Pay on delivery."
        if order.payment_method == "cod"
        else "Order created successfully"
    )
    return {"success": True, "message": message, "data": order_out(order)}


@router.get("/track")
async def track_orders(email: EmailStr, phone: str, db: Session = Depends(get_db)):
    """Recent orders for a customer, matched on email and phone"""
    orders = OrderService(db).get_orders_by_contact(email, phone)
    return {"success": True, "data": [order_out(o) for o in orders], "count": len(orders)}


@router.get("", dependencies=[Depends(require_admin)])
async def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    result = OrderService(db).list_orders(page=page, limit=limit, status=status, search=search)
    return {"success": True, **result}


@router.get("/analytics", dependencies=[Depends(require_admin)])
async def order_analytics(db: Session = Depends(get_db)):
    return {"success": True, "data": OrderService(db).get_order_analytics()}


@router.get("/{order_id}", dependencies=[Depends(require_admin)])
async def get_order(order_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": order_out(OrderService(db).get_order(order_id))}


@router.put("/{order_id}/status", dependencies=[Depends(require_admin)])
async def update_order_status(order_id: int, body: OrderStatusUpdate, db: Session = Depends(get_db)):
    order = OrderService(db).update_order_status(order_id, body)
    return {"success": True, "message": "Order updated successfully", "data": order_out(order)}


@router.get("/{order_id}/tracking", dependencies=[Depends(require_admin)])
async def track_order_shipment(
    order_id: int,
    db: Session = Depends(get_db),
    shipments: ShipmentService = Depends(get_shipment_service),
):
    """Live carrier tracking for the order's AWB"""
    data = await OrderService(db).track_order_shipment(order_id, shipments)
    return {"success": True, "data": data}
