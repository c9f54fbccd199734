"""
Product catalog model
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, JSON, Boolean, Text
from datetime import datetime

from storefront.models.base import Base


class Product(Base):
    """Catalog product. Physical dimensions feed the shipment package size."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)

    # Basic info
    title = Column(String(200), unique=True, index=True, nullable=False)
    slug = Column(String(220), index=True, nullable=False)
    description = Column(Text, nullable=False)
    image = Column(String, nullable=False)
    categories = Column(JSON, default=list)  # ["controllers", "sensors"]
    size = Column(String, nullable=True)
    color = Column(String, nullable=True)
    sku = Column(String, unique=True, index=True, nullable=True)

    # Pricing / inventory
    price = Column(Float, nullable=False, index=True)
    stock = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True)

    # Shipping dimensions (kg / cm); None means "not declared"
    weight = Column(Float, nullable=True)
    length = Column(Float, nullable=True)
    breadth = Column(Float, nullable=True)
    height = Column(Float, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
