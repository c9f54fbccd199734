"""
Shiprocket carrier connector.
Wraps the Shiprocket external API v1.

API structure:
  - POST /auth/login — exchange account email/password for a bearer token (~10 days)
  - GET  /settings/company/pickup — configured pickup addresses
  - POST /orders/create/adhoc — register an order, returns order_id + shipment_id
  - GET  /courier/serviceability/ — courier quotes for a shipment or a postcode pair
  - POST /courier/assign/awb — assign a waybill with a chosen courier
  - GET  /courier/track/awb/{awb} — tracking timeline
  - POST /orders/cancel/shipment/awbs — cancel by waybill
  - POST /orders/print/{label,manifest,invoice} — shipping documents

Every call after login goes through request(), which attaches the token
from the injected TokenCache. A 401 invalidates the token (memory and
database) and raises TokenExpired; nothing is retried.
"""
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from storefront.connectors.base_connector import BaseConnector
from storefront.connectors.token_cache import TokenCache
from storefront.config import get_settings
from storefront.exceptions import CarrierApiError, NoPickupLocation, TokenExpired
from storefront.models.shipping import ShiprocketIntegration
from storefront.utils.logger import log

settings = get_settings()

_TRUTHY = (True, 1, "1", "true", "active", "enabled", "yes")


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return value in _TRUTHY


def _location_name(address: Dict[str, Any]) -> Optional[str]:
    for key in ("pickup_location", "name", "nickname", "address_name"):
        value = address.get(key)
        if value and str(value).strip():
            return str(value).strip()
    return None


def pick_pickup_location(addresses: List[Dict[str, Any]]) -> str:
    """
    Choose the pickup location name.

    Preference: first active/enabled address, then the primary address even
    if inactive, then the first address with any usable name.
    """
    named = [a for a in addresses or [] if isinstance(a, dict) and _location_name(a)]

    for address in named:
        if _flag(address.get("status")) or _flag(address.get("is_active")) or _flag(address.get("active")):
            return _location_name(address)

    for address in named:
        if _flag(address.get("is_primary_location")) or _flag(address.get("is_primary")):
            return _location_name(address)

    if named:
        return _location_name(named[0])

    raise NoPickupLocation()


class ShiprocketConnector(BaseConnector):
    """Connector for the Shiprocket shipping platform."""

    error_class = CarrierApiError

    def __init__(self, db: Session, token_cache: TokenCache, base_url: Optional[str] = None):
        super().__init__("Shiprocket")
        self.db = db
        self.token_cache = token_cache
        self.base_url = (base_url or settings.shiprocket_api_base_url).rstrip("/")
        self.REQUEST_TIMEOUT = settings.shiprocket_request_timeout

    # ── Integration record ─────────────────────────────────

    def get_integration(self) -> Optional[ShiprocketIntegration]:
        return (
            self.db.query(ShiprocketIntegration)
            .filter(ShiprocketIntegration.is_active == True)  # noqa: E712
            .order_by(ShiprocketIntegration.id.desc())
            .first()
        )

    def _load_persisted_token(self) -> Optional[Tuple[Optional[str], Optional[datetime]]]:
        integration = self.get_integration()
        if not integration:
            return None
        return integration.token, integration.token_expiry

    async def authenticate(self, email: str, password: str) -> str:
        """
        Log in to Shiprocket and persist the resulting token.

        Upserts the single integration record with email, token and expiry
        (now + token TTL). The password is used for this call only.
        """
        status, payload = await self._send(
            "POST",
            f"{self.base_url}/auth/login",
            headers={"Content-Type": "application/json"},
            json={"email": email, "password": password},
        )
        token = payload.get("token") if status == 200 else None
        if not token:
            self.error_count += 1
            message = self._error_message(payload, "Failed to authenticate with Shiprocket")
            log.error(f"Shiprocket authentication failed ({status}): {message}")
            raise CarrierApiError(message, upstream_status=status)

        now = datetime.utcnow()
        expires_at = now + timedelta(days=settings.shiprocket_token_ttl_days)

        integration = self.db.query(ShiprocketIntegration).order_by(ShiprocketIntegration.id).first()
        if not integration:
            integration = ShiprocketIntegration(email=email)
            self.db.add(integration)
        integration.email = email.strip().lower()
        integration.token = token
        integration.token_expiry = expires_at
        integration.last_authenticated = now
        integration.is_active = True

        # Keep a single active record
        self.db.query(ShiprocketIntegration).filter(
            ShiprocketIntegration.id != integration.id,
            ShiprocketIntegration.is_active == True,  # noqa: E712
        ).update({"is_active": False}, synchronize_session=False)
        self.db.commit()

        self.token_cache.store(token, expires_at)
        log.info(f"Authenticated with Shiprocket as {integration.email}, token valid until {expires_at:%Y-%m-%d}")
        return token

    async def get_valid_token(self) -> str:
        return await self.token_cache.get_token(self._load_persisted_token)

    def invalidate_token(self) -> None:
        """Drop the token everywhere so later calls fail fast until a human re-authenticates."""
        self.token_cache.invalidate()
        integration = self.get_integration()
        if integration and integration.token:
            integration.token = None
            integration.token_expiry = None
            self.db.commit()
        log.warning("Shiprocket token invalidated")

    async def validate_connection(self) -> bool:
        try:
            await self.get_valid_token()
            return True
        except TokenExpired:
            return False

    # ── Request helper ─────────────────────────────────────

    async def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Authenticated call to the carrier. Single attempt."""
        token = await self.get_valid_token()
        status, payload = await self._send(
            method,
            f"{self.base_url}{endpoint}",
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            json=json,
            params=params,
        )

        if status == 401:
            self.error_count += 1
            self.invalidate_token()
            raise TokenExpired()

        if status >= 400:
            self.error_count += 1
            message = self._error_message(payload, f"Shiprocket API error ({status})")
            log.error(f"Shiprocket {method} {endpoint} returned {status}: {message}")
            raise CarrierApiError(message, upstream_status=status)

        return payload

    # ── Endpoints ──────────────────────────────────────────

    async def get_pickup_locations(self) -> List[Dict[str, Any]]:
        payload = await self.request("GET", "/settings/company/pickup")
        data = payload.get("data") or {}
        if isinstance(data, dict):
            return data.get("shipping_address") or []
        return data if isinstance(data, list) else []

    async def resolve_active_pickup_location(self) -> str:
        addresses = await self.get_pickup_locations()
        name = pick_pickup_location(addresses)
        log.debug(f"Resolved Shiprocket pickup location: {name}")
        return name

    async def create_order(self, order_payload: Dict[str, Any]) -> Dict[str, Any]:
        payload = await self.request("POST", "/orders/create/adhoc", json=order_payload)
        if not payload.get("order_id") or not payload.get("shipment_id"):
            raise CarrierApiError(self._error_message(payload, "Shiprocket did not return an order/shipment id"))
        return payload

    async def get_courier_options(self, shipment_id: str) -> List[Dict[str, Any]]:
        payload = await self.request(
            "GET", "/courier/serviceability/", params={"shipment_id": shipment_id}
        )
        return self._couriers_from(payload)

    async def get_serviceability(
        self,
        pickup_postcode: str,
        delivery_postcode: str,
        weight: float,
        length: float = 10,
        breadth: float = 10,
        height: float = 10,
        cod: bool = False,
    ) -> List[Dict[str, Any]]:
        payload = await self.request(
            "GET",
            "/courier/serviceability/",
            params={
                "pickup_postcode": pickup_postcode,
                "delivery_postcode": delivery_postcode,
                "weight": weight,
                "length": length,
                "breadth": breadth,
                "height": height,
                "cod": 1 if cod else 0,
            },
        )
        return self._couriers_from(payload)

    @staticmethod
    def _couriers_from(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        data = payload.get("data") or {}
        if isinstance(data, dict):
            return data.get("available_courier_companies") or []
        return []

    async def assign_awb(self, shipment_id: str, courier_id: str) -> Dict[str, Any]:
        """
        Assign a waybill. Returns the carrier's assignment data.

        A carrier-reported failure raises CarrierApiError with the carrier's reason.
        """
        payload = await self.request(
            "POST",
            "/courier/assign/awb",
            json={"shipment_id": shipment_id, "courier_id": courier_id},
        )
        response = payload.get("response") or {}
        data = response.get("data") if isinstance(response, dict) else None
        data = data or {}

        if _flag(payload.get("awb_assign_status")) and data.get("awb_code"):
            return data

        reason = (
            data.get("awb_assign_error")
            or (response.get("message") if isinstance(response, dict) else None)
            or self._error_message(payload, "AWB assignment failed")
        )
        log.error(f"Shiprocket AWB assignment failed for shipment {shipment_id}: {reason}")
        raise CarrierApiError(str(reason))

    async def track_awb(self, awb: str) -> Dict[str, Any]:
        return await self.request("GET", f"/courier/track/awb/{awb}")

    async def cancel_shipment(self, awb: str) -> Dict[str, Any]:
        return await self.request("POST", "/orders/cancel/shipment/awbs", json={"awbs": [awb]})

    async def get_order_details(self, carrier_order_id: str) -> Dict[str, Any]:
        return await self.request("GET", f"/orders/show/{carrier_order_id}")

    async def generate_label(self, shipment_ids: List[str]) -> Dict[str, Any]:
        return await self.request("POST", "/orders/print/label", json={"shipment_id": shipment_ids})

    async def generate_manifest(self, shipment_ids: List[str]) -> Dict[str, Any]:
        return await self.request("POST", "/orders/print/manifest", json={"shipment_id": shipment_ids})

    async def generate_invoice(self, carrier_order_ids: List[str]) -> Dict[str, Any]:
        return await self.request("POST", "/orders/print/invoice", json={"ids": carrier_order_ids})
