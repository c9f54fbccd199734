"""
Shipping endpoints: local cost estimate, rate/zone management, carrier integration
"""
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_shiprocket, require_admin
from storefront.connectors.shiprocket_connector import ShiprocketConnector
from storefront.models.base import get_db
from storefront.schemas import (
    ShippingEstimateRequest,
    ShippingRateIn,
    ShippingRateUpdate,
    ShippingZoneIn,
    ShippingZoneUpdate,
    ShiprocketCredentials,
)
from storefront.services.shipping_service import ShippingService, rate_out, zone_out

router = APIRouter(prefix="/shipping", tags=["shipping"])


@router.post("/calculate")
async def calculate_shipping(body: ShippingEstimateRequest, db: Session = Depends(get_db)):
    """Estimate shipping cost from the local rate and zone tables"""
    estimate = ShippingService(db).estimate(
        body.state, body.order_amount, weight=body.weight, pincode=body.pincode
    )
    return {"success": True, "data": estimate}


# ── Rates ─────────────────────────────────────────────────

@router.get("/rates", dependencies=[Depends(require_admin)])
async def list_rates(db: Session = Depends(get_db)):
    return {"success": True, "data": [rate_out(r) for r in ShippingService(db).list_rates()]}


@router.post("/rates", status_code=201, dependencies=[Depends(require_admin)])
async def create_rate(body: ShippingRateIn, db: Session = Depends(get_db)):
    rate = ShippingService(db).create_rate(body.model_dump())
    return {"success": True, "message": "Shipping rate created successfully", "data": rate_out(rate)}


@router.put("/rates/{rate_id}", dependencies=[Depends(require_admin)])
async def update_rate(rate_id: int, body: ShippingRateUpdate, db: Session = Depends(get_db)):
    rate = ShippingService(db).update_rate(rate_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "Shipping rate updated successfully", "data": rate_out(rate)}


@router.patch("/rates/{rate_id}/toggle", dependencies=[Depends(require_admin)])
async def toggle_rate(rate_id: int, db: Session = Depends(get_db)):
    rate = ShippingService(db).toggle_rate(rate_id)
    state = "activated" if rate.active else "deactivated"
    return {"success": True, "message": f"Shipping rate {state} successfully", "data": rate_out(rate)}


@router.delete("/rates/{rate_id}", dependencies=[Depends(require_admin)])
async def delete_rate(rate_id: int, db: Session = Depends(get_db)):
    ShippingService(db).delete_rate(rate_id)
    return {"success": True, "message": "Shipping rate deleted successfully"}


# ── Zones ─────────────────────────────────────────────────

@router.get("/zones", dependencies=[Depends(require_admin)])
async def list_zones(db: Session = Depends(get_db)):
    return {"success": True, "data": [zone_out(z) for z in ShippingService(db).list_zones()]}


@router.post("/zones", status_code=201, dependencies=[Depends(require_admin)])
async def create_zone(body: ShippingZoneIn, db: Session = Depends(get_db)):
    zone = ShippingService(db).create_zone(body.model_dump())
    return {"success": True, "message": "Shipping zone created successfully", "data": zone_out(zone)}


@router.put("/zones/{zone_id}", dependencies=[Depends(require_admin)])
async def update_zone(zone_id: int, body: ShippingZoneUpdate, db: Session = Depends(get_db)):
    zone = ShippingService(db).update_zone(zone_id, body.model_dump(exclude_unset=True))
    return {"success": True, "message": "Shipping zone updated successfully", "data": zone_out(zone)}


@router.delete("/zones/{zone_id}", dependencies=[Depends(require_admin)])
async def delete_zone(zone_id: int, db: Session = Depends(get_db)):
    ShippingService(db).delete_zone(zone_id)
    return {"success": True, "message": "Shipping zone deleted successfully"}


# ── Shiprocket integration ────────────────────────────────

@router.post("/shiprocket/integration", dependencies=[Depends(require_admin)])
async def save_shiprocket_integration(
    body: ShiprocketCredentials,
    carrier: ShiprocketConnector = Depends(get_shiprocket),
):
    """Log in to Shiprocket with the account credentials; only the token is kept"""
    await carrier.authenticate(body.email, body.password)
    integration = carrier.get_integration()
    return {
        "success": True,
        "message": "Shiprocket integration authenticated successfully",
        "data": {
            "email": integration.email,
            "is_active": integration.is_active,
            "token_expiry": integration.token_expiry.isoformat(),
        },
    }


@router.get("/shiprocket/integration", dependencies=[Depends(require_admin)])
async def get_shiprocket_integration(carrier: ShiprocketConnector = Depends(get_shiprocket)):
    integration = carrier.get_integration()
    if not integration:
        return {"success": True, "data": None, "message": "No Shiprocket integration configured"}
    return {
        "success": True,
        "data": {
            "email": integration.email,
            "is_active": integration.is_active,
            "token_expiry": integration.token_expiry.isoformat() if integration.token_expiry else None,
            "last_authenticated": (
                integration.last_authenticated.isoformat() if integration.last_authenticated else None
            ),
            "created_at": integration.created_at.isoformat() if integration.created_at else None,
        },
    }


@router.get("/shiprocket/status", dependencies=[Depends(require_admin)])
async def shiprocket_status(carrier: ShiprocketConnector = Depends(get_shiprocket)):
    """Whether a usable carrier token exists, without calling the carrier"""
    integration = carrier.get_integration()
    token_valid = await carrier.validate_connection()
    expires_at = integration.token_expiry if integration else None
    return {
        "success": True,
        "data": {
            "configured": integration is not None,
            "token_valid": token_valid,
            "expires_at": expires_at.isoformat() if expires_at else None,
            "expires_in_hours": (
                round((expires_at - datetime.utcnow()).total_seconds() / 3600, 1)
                if expires_at and token_valid
                else None
            ),
        },
    }
