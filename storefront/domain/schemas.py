# storefront/domain/schemas.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

PaymentMethod = Literal["cod", "card", "upi", "netbanking", "wallet"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
CouponType = Literal["percentage", "fixed"]
Role = Literal["user", "admin", "superadmin"]


class PaginationOut(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


# ---------------------------------------------------------------- cart


class CartItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., ge=1, le=50, description="Ilość produktu (1-50)")


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=50)


class CouponApplyIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)


class CartItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: Decimal
    sale_price: Decimal | None = None
    effective_price: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int
    user_id: int
    items: List[CartItemOut]
    coupon_code: str | None = None
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    updated_at: datetime | None = None


# ---------------------------------------------------------------- orders


class ShippingAddress(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class CheckoutIn(BaseModel):
    """Schema dla checkoutu (koszyk -> zamowienie)."""

    model_config = ConfigDict(str_strip_whitespace=True)

    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    coupon_code: str | None = Field(default=None, max_length=20)
    notes: str | None = Field(default=None, max_length=500)


class CancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=200)


class OrderStatusUpdateIn(BaseModel):
    status: OrderStatus
    note: str | None = Field(default=None, max_length=200)
    tracking_number: str | None = Field(default=None, max_length=100)
    estimated_delivery: datetime | None = None


class OrderItemOut(BaseModel):
    product_id: int
    name: str
    price: Decimal
    sale_price: Decimal | None = None
    quantity: int
    image: str

    model_config = ConfigDict(from_attributes=True)


class StatusHistoryOut(BaseModel):
    status: OrderStatus
    timestamp: datetime
    note: str | None = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    order_number: str
    user_id: int
    items: List[OrderItemOut]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal
    coupon_code: str | None = None
    notes: str | None = None
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    cancel_reason: str | None = None
    status_history: List[StatusHistoryOut]
    created_at: datetime


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    pagination: PaginationOut


class TrackingOut(BaseModel):
    order_number: str
    status: OrderStatus
    tracking_number: str | None = None
    estimated_delivery: datetime | None = None
    status_history: List[StatusHistoryOut]


# ---------------------------------------------------------------- coupons


class CouponCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(..., min_length=3, max_length=20)
    description: str = Field(..., min_length=1, max_length=200)
    type: CouponType
    value: Decimal = Field(..., ge=0)
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int = Field(default=0, ge=0)
    per_user_limit: int = Field(default=1, ge=1)
    is_active: bool = True
    starts_at: datetime | None = None
    expires_at: datetime

    @model_validator(mode="after")
    def check_values(self):
        if self.type == "percentage" and self.value > 100:
            raise ValueError("Rabat procentowy nie moze przekraczac 100%")
        if self.starts_at is not None and self.starts_at > self.expires_at:
            raise ValueError("starts_at musi byc przed expires_at")
        return self


class CouponUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str | None = Field(default=None, min_length=3, max_length=20)
    description: str | None = Field(default=None, min_length=1, max_length=200)
    type: CouponType | None = None
    value: Decimal | None = Field(default=None, ge=0)
    min_order_amount: Decimal | None = Field(default=None, ge=0)
    max_discount: Decimal | None = Field(default=None, ge=0)
    usage_limit: int | None = Field(default=None, ge=0)
    per_user_limit: int | None = Field(default=None, ge=1)
    is_active: bool | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None


class CouponOut(BaseModel):
    id: int
    code: str
    description: str
    type: CouponType
    value: Decimal
    min_order_amount: Decimal
    max_discount: Decimal | None = None
    usage_limit: int
    per_user_limit: int
    used_count: int
    is_active: bool
    starts_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CouponListOut(BaseModel):
    coupons: List[CouponOut]
    pagination: PaginationOut


class CouponValidateIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=20)
    cart_total: Decimal = Field(default=Decimal("0"), ge=0)


class CouponValidateOut(BaseModel):
    code: str
    type: CouponType
    value: Decimal
    discount: Decimal
    min_order_amount: Decimal
    description: str


# ---------------------------------------------------------------- users


class UserUpsert(BaseModel):
    """Profil przekazywany przez serwis tozsamosci."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię użytkownika")
    email: str = Field(..., min_length=3, max_length=200)
    role: Role = "user"


class UserRead(BaseModel):
    """Schema dla użytkownika (response)."""

    id: int
    name: str
    email: str
    role: Role

    model_config = ConfigDict(from_attributes=True)
