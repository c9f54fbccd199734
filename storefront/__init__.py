"""Storefront API: catalog, checkout, payments, shipping and content"""

__version__ = "1.2.0"
