"""
Request bodies for the public and admin API.

Input is validated once here; services receive already-normalised values.
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from storefront import exceptions
from storefront.utils.helpers import normalize_phone, normalize_pincode


def _phone(value: str) -> str:
    try:
        return normalize_phone(value)
    except exceptions.ValidationError as e:
        raise ValueError(e.message)


def _pincode(value: str) -> str:
    try:
        return normalize_pincode(value)
    except exceptions.ValidationError as e:
        raise ValueError(e.message)


# ── Auth ─────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1, description="Username or email")
    password: str


# ── Products ─────────────────────────────────────────────

class ProductCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=10)
    image: str = Field(..., pattern=r"(?i)^(https?://|data:image/)")
    categories: List[str] = []
    size: Optional[str] = None
    color: Optional[str] = None
    sku: Optional[str] = None
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    active: bool = True
    weight: Optional[float] = Field(None, gt=0)
    length: Optional[float] = Field(None, gt=0)
    breadth: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=10)
    image: Optional[str] = Field(None, pattern=r"(?i)^(https?://|data:image/)")
    categories: Optional[List[str]] = None
    size: Optional[str] = None
    color: Optional[str] = None
    sku: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None
    weight: Optional[float] = Field(None, gt=0)
    length: Optional[float] = Field(None, gt=0)
    breadth: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)


# ── Orders ───────────────────────────────────────────────

class CustomerIn(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str) -> str:
        return _phone(v)


class AddressIn(BaseModel):
    street: str = Field(..., min_length=5, max_length=200)
    city: str = Field(..., min_length=2, max_length=50)
    state: str = Field(..., min_length=2, max_length=50)
    pincode: str
    country: str = Field("India", min_length=2, max_length=50)

    @field_validator("pincode")
    @classmethod
    def normalize_pincode(cls, v: str) -> str:
        return _pincode(v)


class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    """Guest checkout. Prices and totals are always computed server-side."""
    customer: CustomerIn
    address: AddressIn
    items: List[OrderItemIn] = Field(..., min_length=1)
    payment_method: Literal["cod", "online"] = "online"


class OrderStatusUpdate(BaseModel):
    status: Literal["pending", "paid", "shipped", "delivered", "cancelled"]
    courier_name: Optional[str] = None
    awb: Optional[str] = None
    tracking_url: Optional[str] = None
    estimated_delivery: Optional[datetime] = None


# ── Payments ─────────────────────────────────────────────

class PaymentOrderCreate(BaseModel):
    amount: float = Field(..., ge=0.01)
    currency: Literal["INR", "USD", "EUR"] = "INR"
    receipt: Optional[str] = None
    notes: Dict[str, Any] = {}
    order_id: Optional[int] = None


class PaymentVerify(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)
    order_id: int


# ── Shipping ─────────────────────────────────────────────

class ShippingEstimateRequest(BaseModel):
    state: str = Field(..., min_length=2)
    pincode: Optional[str] = None
    order_amount: float = Field(..., ge=0)
    weight: Optional[float] = Field(None, gt=0)

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v: Optional[str]) -> Optional[str]:
        return _pincode(v) if v else None


class ShippingRateIn(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    base_rate: float = Field(..., ge=0)
    per_km_rate: float = Field(..., ge=0)
    free_shipping_threshold: float = Field(..., ge=0)
    estimated_days: str = Field(..., min_length=1)
    active: bool = True


class ShippingRateUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    base_rate: Optional[float] = Field(None, ge=0)
    per_km_rate: Optional[float] = Field(None, ge=0)
    free_shipping_threshold: Optional[float] = Field(None, ge=0)
    estimated_days: Optional[str] = None
    active: Optional[bool] = None


class ShippingZoneIn(BaseModel):
    name: str = Field(..., min_length=1)
    states: List[str] = Field(..., min_length=1)
    rate: float = Field(..., ge=0)
    estimated_days: str = Field(..., min_length=1)
    active: bool = True


class ShippingZoneUpdate(BaseModel):
    name: Optional[str] = None
    states: Optional[List[str]] = None
    rate: Optional[float] = Field(None, ge=0)
    estimated_days: Optional[str] = None
    active: Optional[bool] = None


class ShiprocketCredentials(BaseModel):
    """Used for one login call; the password is never persisted."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class ShipmentIds(BaseModel):
    shipment_ids: List[str] = Field(..., min_length=1)


class CarrierOrderIds(BaseModel):
    order_ids: List[str] = Field(..., min_length=1)


# ── Articles ─────────────────────────────────────────────

class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=5, max_length=200)
    content: str = Field(..., min_length=50)
    featured_image: str = Field(..., min_length=1)
    excerpt: Optional[str] = Field(None, max_length=300)
    status: Literal["draft", "published", "archived"] = "draft"
    tags: List[str] = []
    categories: List[str] = []
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=5, max_length=200)
    content: Optional[str] = Field(None, min_length=50)
    featured_image: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=300)
    status: Optional[Literal["draft", "published", "archived"]] = None
    tags: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)
