"""
Error taxonomy for the Storefront API.

Services raise these; main.py maps them to JSON responses with the
status code carried by each class.
"""
from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for all business-rule and integration errors."""

    status_code = 500
    code = "storefront_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
        }
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(StorefrontError):
    """Malformed or missing input."""

    status_code = 400
    code = "validation_error"


class NotFound(StorefrontError):
    """A referenced entity does not exist."""

    status_code = 404
    code = "not_found"


class PermissionDenied(StorefrontError):
    status_code = 403
    code = "permission_denied"


class ConflictError(StorefrontError):
    status_code = 409
    code = "conflict"


class TokenExpired(StorefrontError):
    """
    Carrier session is missing or invalid.

    Requires a human to re-authenticate the integration; the carrier
    password is never retained so there is nothing to retry with.
    """

    status_code = 401
    code = "carrier_token_expired"

    def __init__(self, message: str = "Shiprocket session expired. Re-authenticate the integration."):
        super().__init__(message)


class NoPickupLocation(StorefrontError):
    status_code = 422
    code = "no_pickup_location"

    def __init__(self, message: str = "No pickup location is configured in the Shiprocket account"):
        super().__init__(message)


class NoCourierAvailable(StorefrontError):
    status_code = 422
    code = "no_courier_available"

    def __init__(self, message: str = "No courier can service this destination"):
        super().__init__(message)


class NoRatesConfigured(StorefrontError):
    status_code = 404
    code = "no_rates_configured"

    def __init__(self, message: str = "No shipping rates configured"):
        super().__init__(message)


class CarrierApiError(StorefrontError):
    """Opaque upstream failure from the carrier API."""

    status_code = 502
    code = "carrier_api_error"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PaymentGatewayError(StorefrontError):
    """Upstream failure from the payment gateway."""

    status_code = 502
    code = "payment_gateway_error"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PaymentVerificationFailed(StorefrontError):
    status_code = 400
    code = "payment_verification_failed"

    def __init__(self, message: str = "Payment verification failed - Invalid signature"):
        super().__init__(message)
