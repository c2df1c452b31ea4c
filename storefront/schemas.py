# storefront/schemas.py
"""
Store Schemas

Pydantic models for every entity held by the store, plus the payloads used
to create and update them. Python attributes are snake_case; the JSON file
and the HTTP layer see camelCase (categoryId, createdAt, ...).
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
SettingType = Literal["text", "image", "boolean"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoreModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _decimal_string(v):
    if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
        v = str(v)
    if isinstance(v, str):
        v = v.strip()
        try:
            if Decimal(v) < 0:
                raise ValueError("Amount must not be negative")
        except InvalidOperation:
            raise ValueError(f"Invalid decimal amount: {v!r}")
    return v


# ---------- Categories ----------

class CategoryCreate(StoreModel):
    name: str = Field(..., min_length=1, description="Display name (unique)")
    slug: str = Field(..., min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$", description="URL-safe id (unique)")
    description: Optional[str] = None
    thumbnail: Optional[str] = Field(None, description="Thumbnail URL or path")


class CategoryUpdate(StoreModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    thumbnail: Optional[str] = None


class Category(CategoryCreate):
    id: int


# ---------- Products ----------

class ProductCreate(StoreModel):
    name: str = Field(..., min_length=1)
    description: str
    price: str = Field(..., description="Decimal amount as a string")
    category_id: int
    stock: int = Field(0, ge=0)
    images: List[str] = Field(default_factory=list, description="Image URLs, first is primary")
    sku: str = Field(..., min_length=1, description="Stock keeping unit (unique)")
    featured: bool = False
    features: List[str] = Field(default_factory=list)

    @field_validator("price", mode="before")
    @classmethod
    def check_price(cls, v):
        return _decimal_string(v)


class ProductUpdate(StoreModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[str] = None
    category_id: Optional[int] = None
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    sku: Optional[str] = Field(None, min_length=1)
    featured: Optional[bool] = None
    features: Optional[List[str]] = None

    @field_validator("price", mode="before")
    @classmethod
    def check_price(cls, v):
        return _decimal_string(v)


class Product(ProductCreate):
    id: int
    created_at: datetime = Field(default_factory=utcnow)


class ProductWithCategory(Product):
    category: Category


# ---------- Cart ----------

class CartItemCreate(StoreModel):
    session_id: str = Field(..., min_length=1)
    product_id: int
    quantity: int = Field(1, ge=1)


class CartItem(StoreModel):
    id: int
    session_id: str
    product_id: int
    quantity: int
    created_at: datetime = Field(default_factory=utcnow)


class CartItemWithProduct(CartItem):
    product: Product


# ---------- Orders ----------

class OrderCreate(StoreModel):
    # Left permissive so the store can report each missing field by name.
    user_id: Optional[int] = None
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: Optional[str] = None
    shipping_address: str = ""
    total: str = ""
    status: Optional[str] = None
    items: str = Field("", description="JSON snapshot of the ordered lines")


class Order(StoreModel):
    id: int
    user_id: int
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    shipping_address: str
    total: str
    status: str = "pending"
    tracking_number: str
    items: str
    created_at: datetime = Field(default_factory=utcnow)


# ---------- Users & sessions ----------

class UserCreate(StoreModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password_hash: str


class User(StoreModel):
    id: int
    name: str
    email: str
    password_hash: str
    wishlist: List[int] = Field(default_factory=list, description="Saved product ids")
    created_at: datetime = Field(default_factory=utcnow)


class PublicUser(StoreModel):
    id: int
    name: str
    email: str


class Session(StoreModel):
    session_id: str
    user_id: int
    expires_at: datetime


# ---------- Reviews ----------

class ReviewCreate(StoreModel):
    product_id: int = Field(..., ge=1)
    user_id: int = Field(..., ge=1)
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=100)
    comment: str = Field(..., min_length=1, max_length=1000)


class ReviewUpdate(StoreModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    comment: Optional[str] = Field(None, min_length=1, max_length=1000)


class Review(StoreModel):
    id: int
    product_id: int
    user_id: int
    rating: int
    title: str
    comment: str
    user_name: str = Field(..., description="Author name at the time of writing")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class ReviewStats(StoreModel):
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[int, int]


# ---------- Settings ----------

class SettingCreate(StoreModel):
    key: str = Field(..., min_length=1)
    value: str
    type: SettingType = "text"
    description: Optional[str] = None


class Setting(StoreModel):
    id: int
    key: str
    value: str
    type: str = "text"
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
