"""
Local shipping cost estimation and rate/zone management

Estimates are computed from the shipping_rates / shipping_zones tables only;
live carrier quotes live in shipment_service.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from storefront.models.shipping import ShippingRate, ShippingZone
from storefront.exceptions import NoRatesConfigured, NotFound, ValidationError
from storefront.utils.helpers import round_money
from storefront.utils.logger import log

DEFAULT_WEIGHT = 1.0


def rate_out(r: ShippingRate) -> Dict[str, Any]:
    return {
        "id": r.id,
        "name": r.name,
        "description": r.description,
        "base_rate": r.base_rate,
        "per_km_rate": r.per_km_rate,
        "free_shipping_threshold": r.free_shipping_threshold,
        "estimated_days": r.estimated_days,
        "active": r.active,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


def zone_out(z: ShippingZone) -> Dict[str, Any]:
    return {
        "id": z.id,
        "name": z.name,
        "states": z.states or [],
        "rate": z.rate,
        "estimated_days": z.estimated_days,
        "active": z.active,
        "created_at": z.created_at.isoformat() if z.created_at else None,
    }


class ShippingService:
    """Shipping cost rules"""

    def __init__(self, db: Session):
        self.db = db

    # ── Estimation ─────────────────────────────────────────

    def estimate(
        self,
        state: str,
        order_amount: float,
        weight: Optional[float] = None,
        pincode: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Estimate the shipping cost for a destination.

        Rules, first match wins:
          1. any active rate whose free-shipping threshold <= order amount -> free
          2. an active zone listing the state (case-insensitive) -> zone rate
          3. the first active rate -> base_rate + weight * per_km_rate
        Raises NoRatesConfigured when nothing applies.
        """
        rates = (
            self.db.query(ShippingRate)
            .filter(ShippingRate.active == True)  # noqa: E712
            .order_by(ShippingRate.id)
            .all()
        )

        for rate in rates:
            if order_amount >= rate.free_shipping_threshold:
                return {
                    "cost": 0.0,
                    "eta_days": rate.estimated_days,
                    "rule": "free_shipping",
                    "message": "Free shipping eligible!",
                }

        zone = self.find_zone(state)
        if zone:
            return {
                "cost": round_money(zone.rate),
                "eta_days": zone.estimated_days,
                "rule": "zone",
                "zone": zone.name,
            }

        if rates:
            default = rates[0]
            cost = default.base_rate + (weight or DEFAULT_WEIGHT) * default.per_km_rate
            return {
                "cost": round_money(cost),
                "eta_days": default.estimated_days,
                "rule": "default_rate",
                "message": "Default shipping rate applied",
            }

        log.warning(f"No shipping rates configured (state={state}, pincode={pincode})")
        raise NoRatesConfigured()

    def find_zone(self, state: str) -> Optional[ShippingZone]:
        wanted = (state or "").strip().lower()
        if not wanted:
            return None
        zones = (
            self.db.query(ShippingZone)
            .filter(ShippingZone.active == True)  # noqa: E712
            .order_by(ShippingZone.id)
            .all()
        )
        for zone in zones:
            if wanted in [str(s).strip().lower() for s in zone.states or []]:
                return zone
        return None

    # ── Rates ──────────────────────────────────────────────

    def list_rates(self) -> List[ShippingRate]:
        return self.db.query(ShippingRate).order_by(ShippingRate.created_at.desc(), ShippingRate.id.desc()).all()

    def _get_rate(self, rate_id: int) -> ShippingRate:
        rate = self.db.query(ShippingRate).filter(ShippingRate.id == rate_id).first()
        if not rate:
            raise NotFound("Shipping rate not found")
        return rate

    def create_rate(self, data: Dict[str, Any]) -> ShippingRate:
        rate = ShippingRate(**data)
        self.db.add(rate)
        self.db.commit()
        self.db.refresh(rate)
        log.info(f"Created shipping rate {rate.id} '{rate.name}'")
        return rate

    def update_rate(self, rate_id: int, changes: Dict[str, Any]) -> ShippingRate:
        rate = self._get_rate(rate_id)
        for key, value in changes.items():
            if value is not None:
                setattr(rate, key, value)
        self.db.commit()
        self.db.refresh(rate)
        return rate

    def toggle_rate(self, rate_id: int) -> ShippingRate:
        rate = self._get_rate(rate_id)
        rate.active = not rate.active
        self.db.commit()
        self.db.refresh(rate)
        log.info(f"Shipping rate {rate.id} {'activated' if rate.active else 'deactivated'}")
        return rate

    def delete_rate(self, rate_id: int) -> None:
        rate = self._get_rate(rate_id)
        self.db.delete(rate)
        self.db.commit()

    # ── Zones ──────────────────────────────────────────────

    def list_zones(self) -> List[ShippingZone]:
        return self.db.query(ShippingZone).order_by(ShippingZone.created_at.desc(), ShippingZone.id.desc()).all()

    def _get_zone(self, zone_id: int) -> ShippingZone:
        zone = self.db.query(ShippingZone).filter(ShippingZone.id == zone_id).first()
        if not zone:
            raise NotFound("Shipping zone not found")
        return zone

    def _check_zone_name(self, name: str, exclude_id: Optional[int] = None):
        query = self.db.query(ShippingZone).filter(func.lower(ShippingZone.name) == name.strip().lower())
        if exclude_id:
            query = query.filter(ShippingZone.id != exclude_id)
        if query.first():
            raise ValidationError("Zone name already exists", field="name")

    def create_zone(self, data: Dict[str, Any]) -> ShippingZone:
        data = dict(data)
        data["name"] = data["name"].strip()
        data["states"] = [s.strip() for s in data["states"] if s and s.strip()]
        self._check_zone_name(data["name"])

        zone = ShippingZone(**data)
        self.db.add(zone)
        self.db.commit()
        self.db.refresh(zone)
        log.info(f"Created shipping zone {zone.id} '{zone.name}' ({len(zone.states)} states)")
        return zone

    def update_zone(self, zone_id: int, changes: Dict[str, Any]) -> ShippingZone:
        zone = self._get_zone(zone_id)
        changes = {k: v for k, v in changes.items() if v is not None}
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            self._check_zone_name(changes["name"], exclude_id=zone.id)
        if "states" in changes:
            changes["states"] = [s.strip() for s in changes["states"] if s and s.strip()]

        for key, value in changes.items():
            setattr(zone, key, value)
        self.db.commit()
        self.db.refresh(zone)
        return zone

    def delete_zone(self, zone_id: int) -> None:
        zone = self._get_zone(zone_id)
        self.db.delete(zone)
        self.db.commit()
