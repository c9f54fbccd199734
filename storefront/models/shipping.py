"""
Shipping models

Local rate/zone tables used to estimate shipping cost without calling the
carrier, plus the single Shiprocket integration record.
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Boolean, Text
from datetime import datetime

from storefront.models.base import Base


class ShippingRate(Base):
    """Base + per-unit-weight pricing rule with a free-shipping threshold."""
    __tablename__ = "shipping_rates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    base_rate = Column(Float, nullable=False)
    per_km_rate = Column(Float, nullable=False)
    free_shipping_threshold = Column(Float, nullable=False)
    estimated_days = Column(String, nullable=False)  # "3-5 days"
    active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ShippingZone(Base):
    """Flat rate for a group of destination states."""
    __tablename__ = "shipping_zones"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    states = Column(JSON, nullable=False)  # ["Maharashtra", "Goa"]
    rate = Column(Float, nullable=False)
    estimated_days = Column(String, nullable=False)
    active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ShiprocketIntegration(Base):
    """
    Carrier account session. At most one row is active.

    Holds only the short-lived bearer token, never the account password.
    """
    __tablename__ = "shiprocket_integrations"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False)
    token = Column(Text, nullable=True)
    token_expiry = Column(DateTime, nullable=True)
    last_authenticated = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
