"""
Shipment orchestration on top of the Shiprocket connector

create_shipment() walks an order through

    NoShipment -> OrderRegistered -> CourierSelected -> AwbAssigned

talking to the carrier at every step but writing nothing locally until the
AWB is assigned. The shipment columns and the `shipped` status are then
stored in a single commit, so a failure at any step leaves the order as it was.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from sqlalchemy.orm import Session

from storefront.connectors.shiprocket_connector import ShiprocketConnector
from storefront.models.order import Order
from storefront.services.order_service import ALLOWED_TRANSITIONS
from storefront.config import get_settings
from storefront.exceptions import NoCourierAvailable, NotFound, ValidationError
from storefront.utils.cache import clear_for_source
from storefront.utils.helpers import normalize_phone, normalize_pincode, round_money
from storefront.utils.logger import log

settings = get_settings()

# Statuses that can never receive a new shipment
_UNSHIPPABLE = ("pending", "cancelled", "delivered")

_REQUIRED_ORDER_FIELDS = (
    ("customer_name", "Customer name"),
    ("customer_email", "Customer email"),
    ("customer_phone", "Customer phone"),
    ("street", "Street address"),
    ("city", "City"),
    ("state", "State"),
    ("pincode", "Pincode"),
)


def quote_rate(quote: Dict[str, Any]) -> Optional[float]:
    """First usable numeric charge on a courier quote, or None."""
    for key in ("rate", "freight_charge", "total_charge"):
        value = quote.get(key)
        if value is None or value == "":
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def select_courier(quotes: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Pick the cheapest courier quote.

    Deterministic: the lowest rate wins and ties go to the quote listed
    first. Quotes without a usable rate or courier id are ignored.
    """
    best = None
    best_rate = None
    for quote in quotes or []:
        if not isinstance(quote, dict) or not quote.get("courier_company_id"):
            continue
        rate = quote_rate(quote)
        if rate is None:
            continue
        if best_rate is None or rate < best_rate:
            best, best_rate = quote, rate
    if best is None:
        raise NoCourierAvailable()
    return best


def compute_package(order: Order) -> Dict[str, float]:
    """Largest declared weight and dimension across the order's products, else the default package."""
    declared: Dict[str, List[float]] = {"weight": [], "length": [], "breadth": [], "height": []}
    for item in order.items:
        product = item.product
        if not product:
            continue
        for dim in declared:
            value = getattr(product, dim)
            if value:
                declared[dim].append(float(value))

    defaults = {
        "weight": settings.default_package_weight,
        "length": settings.default_package_length,
        "breadth": settings.default_package_breadth,
        "height": settings.default_package_height,
    }
    return {dim: max(values) if values else defaults[dim] for dim, values in declared.items()}


def validate_for_shipment(order: Order) -> Dict[str, str]:
    """
    Check the order can be handed to the carrier and return the normalised contact/address.

    Raises ValidationError naming the offending field.
    """
    if order.status in _UNSHIPPABLE:
        raise ValidationError(f"Cannot create a shipment for a {order.status} order", field="status")
    if order.awb_code:
        raise ValidationError(
            f"Order already has shipment AWB {order.awb_code}", field="awb_code"
        )

    for field, label in _REQUIRED_ORDER_FIELDS:
        if not str(getattr(order, field) or "").strip():
            raise ValidationError(f"{label} is required for shipment", field=field)
    if not order.items:
        raise ValidationError("Order has no items", field="items")

    return {
        "name": order.customer_name.strip(),
        "email": order.customer_email.strip(),
        "phone": normalize_phone(order.customer_phone, field="customer_phone"),
        "street": order.street.strip(),
        "city": order.city.strip(),
        "state": order.state.strip(),
        "pincode": normalize_pincode(order.pincode),
        "country": (order.country or "").strip() or "India",
    }


def build_carrier_order(
    order: Order,
    contact: Dict[str, str],
    pickup_location: str,
    package: Dict[str, float],
) -> Dict[str, Any]:
    """Adhoc order payload for /orders/create/adhoc."""
    first_name, _, last_name = contact["name"].partition(" ")
    created = order.created_at or datetime.utcnow()
    return {
        "order_id": str(order.id),
        "order_date": created.strftime("%Y-%m-%d %H:%M"),
        "pickup_location": pickup_location,
        "company_name": settings.shiprocket_company_name,
        "billing_customer_name": first_name,
        "billing_last_name": last_name.strip() or ".",
        "billing_address": contact["street"],
        "billing_city": contact["city"],
        "billing_pincode": contact["pincode"],
        "billing_state": contact["state"],
        "billing_country": contact["country"],
        "billing_email": contact["email"],
        "billing_phone": contact["phone"],
        "shipping_is_billing": True,
        "order_items": [
            {
                "name": item.title,
                "sku": (item.product.sku if item.product and item.product.sku else f"SKU-{item.product_id}"),
                "units": item.quantity,
                "selling_price": item.unit_price,
            }
            for item in order.items
        ],
        "payment_method": "COD" if order.payment_method == "cod" else "Prepaid",
        "shipping_charges": order.shipping_charges or 0,
        "sub_total": order.subtotal,
        "length": package["length"],
        "breadth": package["breadth"],
        "height": package["height"],
        "weight": package["weight"],
    }


def _parse_date(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d", "%d-%m-%Y", "%b %d, %Y"):
        try:
            return datetime.strptime(value.strip(), fmt)
        except ValueError:
            continue
    return None


def extract_tracking(payload: Dict[str, Any], awb: str) -> Dict[str, Any]:
    """Flatten the carrier tracking payload into the fields mirrored on the order."""
    data = payload.get("tracking_data")
    if data is None and isinstance(payload.get(awb), dict):
        data = payload[awb].get("tracking_data")
    data = data or {}

    tracks = data.get("shipment_track") or []
    track = tracks[0] if tracks and isinstance(tracks[0], dict) else {}
    activities = data.get("shipment_track_activities") or []
    activity = activities[0] if activities and isinstance(activities[0], dict) else {}

    return {
        "status": track.get("current_status") or activity.get("activity") or activity.get("sr-status-label"),
        "last_location": activity.get("location") or track.get("destination"),
        "tracking_url": data.get("track_url"),
        "estimated_delivery": _parse_date(data.get("etd") or track.get("edd")),
    }


class ShipmentService:
    """Carrier shipments for local orders"""

    def __init__(self, db: Session, carrier: ShiprocketConnector):
        self.db = db
        self.carrier = carrier

    def _get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFound("Order not found")
        return order

    async def create_shipment(self, order_id: int) -> Dict[str, Any]:
        order = self._get_order(order_id)
        contact = validate_for_shipment(order)

        pickup_location = await self.carrier.resolve_active_pickup_location()
        package = compute_package(order)
        payload = build_carrier_order(order, contact, pickup_location, package)

        # OrderRegistered
        registered = await self.carrier.create_order(payload)
        carrier_order_id = str(registered["order_id"])
        shipment_id = str(registered["shipment_id"])
        log.info(f"Order {order.id} registered with Shiprocket: order {carrier_order_id}, shipment {shipment_id}")

        # CourierSelected
        quotes = await self.carrier.get_courier_options(shipment_id)
        courier = select_courier(quotes)
        courier_id = str(courier["courier_company_id"])
        log.info(
            f"Order {order.id}: selected {courier.get('courier_name')} ({courier_id}) "
            f"at {quote_rate(courier)} from {len(quotes)} quote(s)"
        )

        # AwbAssigned
        assignment = await self.carrier.assign_awb(shipment_id, courier_id)

        order.carrier_order_id = carrier_order_id
        order.shipment_id = shipment_id
        order.awb_code = str(assignment["awb_code"])
        order.courier_id = courier_id
        order.courier_name = assignment.get("courier_name") or courier.get("courier_name")
        order.shipment_cost = round_money(quote_rate(courier))
        order.shipment_status = "AWB_ASSIGNED"
        order.pickup_location = pickup_location
        order.status = "shipped"
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            log.error(f"Failed to store shipment for order {order.id} (AWB {assignment['awb_code']})")
            raise
        self.db.refresh(order)
        clear_for_source("orders")

        log.info(f"Order {order.id} shipped: AWB {order.awb_code} via {order.courier_name}")
        log.debug(f"Shiprocket connector: {self.carrier.get_status()}")
        return {
            "order_id": order.id,
            "carrier_order_id": order.carrier_order_id,
            "shipment_id": order.shipment_id,
            "awb_code": order.awb_code,
            "courier_id": order.courier_id,
            "courier_name": order.courier_name,
            "shipment_cost": order.shipment_cost,
            "pickup_location": order.pickup_location,
            "package": package,
        }

    async def get_live_rates(
        self,
        delivery_postcode: str,
        weight: float,
        pickup_postcode: Optional[str] = None,
        length: Optional[float] = None,
        breadth: Optional[float] = None,
        height: Optional[float] = None,
        cod: bool = False,
    ) -> List[Dict[str, Any]]:
        pickup_postcode = pickup_postcode or settings.shiprocket_pickup_postcode
        if not pickup_postcode:
            raise ValidationError("Pickup postcode is required", field="pickup_postcode")
        if not weight or weight <= 0:
            raise ValidationError("Weight must be greater than 0", field="weight")

        return await self.carrier.get_serviceability(
            pickup_postcode=normalize_pincode(pickup_postcode, field="pickup_postcode"),
            delivery_postcode=normalize_pincode(delivery_postcode, field="delivery_postcode"),
            weight=weight,
            length=length or settings.default_package_length,
            breadth=breadth or settings.default_package_breadth,
            height=height or settings.default_package_height,
            cod=cod,
        )

    async def track(self, awb: str) -> Dict[str, Any]:
        """
        Carrier tracking for an AWB.

        The carrier is authoritative; a local order holding the AWB gets its
        shipment fields refreshed but keeps its own order status.
        """
        awb = (awb or "").strip()
        if not awb:
            raise ValidationError("AWB is required", field="awb")

        payload = await self.carrier.track_awb(awb)

        order = self.db.query(Order).filter(Order.awb_code == awb).first()
        if order:
            tracking = extract_tracking(payload, awb)
            if tracking["status"]:
                order.shipment_status = tracking["status"]
            if tracking["last_location"]:
                order.last_location = tracking["last_location"]
            if tracking["tracking_url"]:
                order.tracking_url = tracking["tracking_url"]
            if tracking["estimated_delivery"]:
                order.estimated_delivery = tracking["estimated_delivery"]
            order.last_tracked_at = datetime.utcnow()
            self.db.commit()
            log.debug(f"Tracking mirrored onto order {order.id}: {tracking['status']}")

        return payload

    async def cancel(self, awb: str) -> Dict[str, Any]:
        """
        Cancel a shipment by AWB.

        Only a carrier-confirmed success code cancels the local order, and
        only while the order status still allows cancellation.
        """
        awb = (awb or "").strip()
        if not awb:
            raise ValidationError("AWB is required", field="awb")

        payload = await self.carrier.cancel_shipment(awb)
        confirmed = str(payload.get("status_code", payload.get("status", ""))) == "200"

        order = self.db.query(Order).filter(Order.awb_code == awb).first()
        if confirmed and order and "cancelled" in ALLOWED_TRANSITIONS.get(order.status, ()):
            order.status = "cancelled"
            order.shipment_status = "CANCELLED"
            self.db.commit()
            clear_for_source("orders")
            log.info(f"Shipment {awb} cancelled, order {order.id} cancelled")
        elif confirmed and order:
            log.warning(
                f"Shiprocket cancelled {awb} but order {order.id} is {order.status}, local status left unchanged"
            )
        elif not confirmed:
            log.warning(f"Shiprocket did not confirm cancellation of {awb}: {payload}")

        return {
            "awb": awb,
            "cancelled": confirmed,
            "order_id": order.id if order else None,
            "carrier_response": payload,
        }

    async def generate_label(self, shipment_ids: List[str]) -> Dict[str, Any]:
        return await self.carrier.generate_label(shipment_ids)

    async def generate_manifest(self, shipment_ids: List[str]) -> Dict[str, Any]:
        return await self.carrier.generate_manifest(shipment_ids)

    async def generate_invoice(self, carrier_order_ids: List[str]) -> Dict[str, Any]:
        return await self.carrier.generate_invoice(carrier_order_ids)
