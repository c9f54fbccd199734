"""Outbound API connectors for the Storefront API"""

from storefront.connectors.base_connector import BaseConnector
from storefront.connectors.token_cache import TokenCache
from storefront.connectors.shiprocket_connector import ShiprocketConnector
from storefront.connectors.razorpay_connector import RazorpayConnector

__all__ = [
    "BaseConnector",
    "TokenCache",
    "ShiprocketConnector",
    "RazorpayConnector",
]
