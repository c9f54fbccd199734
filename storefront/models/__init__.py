"""Database models for the Storefront API"""

from storefront.models.user import User, UserSession
from storefront.models.product import Product
from storefront.models.order import Order, OrderItem
from storefront.models.article import Article
from storefront.models.shipping import ShippingRate, ShippingZone, ShiprocketIntegration

__all__ = [
    "User",
    "UserSession",
    "Product",
    "Order",
    "OrderItem",
    "Article",
    "ShippingRate",
    "ShippingZone",
    "ShiprocketIntegration",
]
