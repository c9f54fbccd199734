"""
Razorpay payment gateway connector
Creates gateway orders and fetches payment details over the REST API (v1).
"""
from typing import Any, Dict, Optional
import aiohttp

from storefront.connectors.base_connector import BaseConnector
from storefront.config import get_settings
from storefront.exceptions import PaymentGatewayError
from storefront.utils.logger import log

settings = get_settings()


class RazorpayConnector(BaseConnector):
    """Connector for the Razorpay payment gateway"""

    error_class = PaymentGatewayError

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None):
        super().__init__("Razorpay")
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.base_url = settings.razorpay_api_base_url.rstrip("/")
        self.auth = aiohttp.BasicAuth(self.key_id, self.key_secret)

    async def validate_connection(self) -> bool:
        """Test credentials by listing a single order"""
        try:
            status, _ = await self._send(
                "GET", f"{self.base_url}/orders", params={"count": 1}, auth=self.auth
            )
        except PaymentGatewayError:
            return False
        if status == 200:
            log.info("Connected to Razorpay API")
            return True
        log.warning(f"Razorpay API returned status {status}")
        return False

    async def _call(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        status, payload = await self._send(method, f"{self.base_url}{endpoint}", auth=self.auth, **kwargs)
        if status >= 400:
            self.error_count += 1
            message = self._error_message(payload, f"Razorpay API error ({status})")
            log.error(f"Razorpay {method} {endpoint} returned {status}: {message}")
            raise PaymentGatewayError(message, upstream_status=status)
        return payload

    async def create_order(
        self,
        amount_paise: int,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create a gateway order. Amount is in the smallest currency unit."""
        return await self._call(
            "POST",
            "/orders",
            json={
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )

    async def fetch_payment(self, payment_id: str) -> Dict[str, Any]:
        return await self._call("GET", f"/payments/{payment_id}")
