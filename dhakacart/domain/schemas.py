# dhakacart/domain/schemas.py
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


CANCELLABLE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value)


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


PRODUCT_CATEGORIES = ("laptops", "smartphones", "tablets", "accessories")


# =====================================================
# ORDERS
# =====================================================
class OrderItemIn(BaseModel):
    """Pozycja koszyka."""

    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    """Schema dla tworzenia zamowienia z koszyka."""

    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_address: str
    payment_method: str | None = None

    @field_validator("shipping_address")
    @classmethod
    def address_long_enough(cls, v: str) -> str:
        if len(v.strip()) < 10:
            raise ValueError("Shipping address must be at least 10 characters")
        return v.strip()


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str | None = None
    quantity: int
    price: Decimal
    subtotal: Decimal


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: str
    payment_status: str
    payment_method: str | None = None
    total_amount: Decimal
    shipping_cost: Decimal
    shipping_address: str
    created_at: datetime
    updated_at: datetime | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderCreatedOut(BaseModel):
    message: str
    order: OrderOut


class OrderStatsOut(BaseModel):
    total_orders: int
    pending_orders: int
    processing_orders: int
    shipped_orders: int
    delivered_orders: int
    cancelled_orders: int
    total_spent: Decimal


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


# =====================================================
# PRODUCTS
# =====================================================
class ProductOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    category: str
    image: str | None = None
    price: Decimal
    stock: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class _ProductFields(BaseModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def name_long_enough(cls, v):
        if v is not None and len(v) < 3:
            raise ValueError("Product name must be at least 3 characters")
        return v

    @field_validator("category", check_fields=False)
    @classmethod
    def known_category(cls, v):
        if v is not None and v not in PRODUCT_CATEGORIES:
            raise ValueError("Invalid category")
        return v


class ProductCreate(_ProductFields):
    name: str
    description: str | None = None
    price: Decimal = Field(..., ge=0)
    category: str
    stock: int = Field(0, ge=0)
    image: str | None = None


class ProductUpdate(_ProductFields):
    name: str | None = None
    description: str | None = None
    price: Decimal | None = Field(None, ge=0)
    category: str | None = None
    stock: int | None = Field(None, ge=0)
    image: str | None = None


class ProductQuery(BaseModel):
    category: str | None = None
    search: str | None = None
    sort: str | None = None
    min_price: Decimal | None = Field(None, ge=0)
    max_price: Decimal | None = Field(None, ge=0)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ProductListOut(BaseModel):
    source: str
    products: List[ProductOut]
    pagination: Pagination


class CategoryOut(BaseModel):
    category: str
    count: int


# =====================================================
# PAYMENTS
# =====================================================
class BkashPaymentIn(BaseModel):
    order_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)
    phone: str = Field(..., min_length=1)


class CardPaymentIn(BaseModel):
    order_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., gt=0)
    card_number: str = Field(..., min_length=1)
    card_holder: str = Field(..., min_length=1)
    expiry: str = Field(..., min_length=1)
    cvv: str = Field(..., min_length=1)


class CodPaymentIn(BaseModel):
    order_id: int = Field(..., gt=0)


class RefundIn(BaseModel):
    payment_id: int = Field(..., gt=0)
    reason: str | None = None


class PaymentOut(BaseModel):
    id: int
    order_id: int
    amount: Decimal
    payment_method: str
    transaction_id: str | None = None
    status: str
    card_last4: str | None = None
    refund_reason: str | None = None
    refund_date: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentResultOut(BaseModel):
    success: bool
    message: str
    payment: PaymentOut | None = None
    transaction_id: str | None = None


# =====================================================
# USERS / ADMIN
# =====================================================
class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    created_at: datetime | None = None
    last_login: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class RoleUpdate(BaseModel):
    role: Role


class SalesReportRow(BaseModel):
    date: date
    order_count: int
    total_sales: Decimal
    average_order_value: Decimal
