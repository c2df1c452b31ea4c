# storefront/storage/base.py
"""
The storage contract used by the HTTP layer.

Every backend (in-memory, JSON file, a future SQL one) implements exactly
these coroutines. Lookups of unknown ids/keys return None (or False for
deletes); business-rule violations raise RejectedError.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..schemas import (
    CartItem,
    CartItemCreate,
    CartItemWithProduct,
    Category,
    CategoryCreate,
    CategoryUpdate,
    Order,
    OrderCreate,
    Product,
    ProductCreate,
    ProductUpdate,
    ProductWithCategory,
    Review,
    ReviewCreate,
    ReviewStats,
    ReviewUpdate,
    Setting,
    SettingCreate,
    User,
    UserCreate,
)


class Storage(ABC):
    # -------------------
    # Categories
    # -------------------
    @abstractmethod
    async def get_categories(self) -> List[Category]: ...

    @abstractmethod
    async def get_category(self, id: int) -> Optional[Category]: ...

    @abstractmethod
    async def get_category_by_slug(self, slug: str) -> Optional[Category]: ...

    @abstractmethod
    async def create_category(self, data: CategoryCreate) -> Category: ...

    @abstractmethod
    async def update_category(self, id: int, changes: CategoryUpdate) -> Optional[Category]: ...

    @abstractmethod
    async def delete_category(self, id: int) -> bool:
        """Refuses (RejectedError) while any product still points at the category."""

    # -------------------
    # Products
    # -------------------
    @abstractmethod
    async def get_products(self, category_id: Optional[int] = None) -> List[Product]: ...

    @abstractmethod
    async def get_featured_products(self) -> List[Product]: ...

    @abstractmethod
    async def get_products_with_category(self) -> List[ProductWithCategory]:
        """Products joined with their category; orphans are left out."""

    @abstractmethod
    async def get_product(self, id: int) -> Optional[Product]: ...

    @abstractmethod
    async def get_product_with_category(self, id: int) -> Optional[ProductWithCategory]: ...

    @abstractmethod
    async def search_products(self, query: str) -> List[Product]: ...

    @abstractmethod
    async def create_product(self, data: ProductCreate) -> Product: ...

    @abstractmethod
    async def update_product(self, id: int, changes: ProductUpdate) -> Optional[Product]: ...

    @abstractmethod
    async def delete_product(self, id: int) -> bool: ...

    @abstractmethod
    async def get_recommendations(self, product_id: int, limit: int = 8) -> Optional[List[Product]]: ...

    # -------------------
    # Cart
    # -------------------
    @abstractmethod
    async def get_cart_items(self, session_id: str) -> List[CartItemWithProduct]: ...

    @abstractmethod
    async def add_to_cart(self, item: CartItemCreate) -> CartItem: ...

    @abstractmethod
    async def update_cart_item(self, session_id: str, product_id: int, quantity: int) -> Optional[CartItem]:
        """Sets an absolute quantity. A quantity of 0 is stored as-is, never auto-removed."""

    @abstractmethod
    async def remove_from_cart(self, session_id: str, product_id: int) -> bool: ...

    @abstractmethod
    async def clear_cart(self, session_id: str) -> bool: ...

    # -------------------
    # Orders
    # -------------------
    @abstractmethod
    async def get_orders(self) -> List[Order]: ...

    @abstractmethod
    async def get_order(self, id: int) -> Optional[Order]: ...

    @abstractmethod
    async def get_user_orders(self, user_id: int) -> List[Order]: ...

    @abstractmethod
    async def get_order_by_tracking_number(self, tracking_number: str) -> Optional[Order]: ...

    @abstractmethod
    async def create_order(self, data: OrderCreate) -> Order: ...

    @abstractmethod
    async def checkout(self, cart_session_id: str, data: OrderCreate) -> Optional[Order]:
        """
        Turn a cart into an order in one step: snapshot the cart lines, set
        `total` and `items` from them, store the order and empty the cart.
        Returns None when the cart is empty.
        """

    @abstractmethod
    async def update_order_status(self, id: int, status: str) -> Optional[Order]: ...

    # -------------------
    # Settings
    # -------------------
    @abstractmethod
    async def get_settings(self) -> List[Setting]: ...

    @abstractmethod
    async def get_setting(self, key: str) -> Optional[Setting]: ...

    @abstractmethod
    async def create_setting(self, data: SettingCreate) -> Setting: ...

    @abstractmethod
    async def update_setting(self, key: str, value: str) -> Optional[Setting]: ...

    @abstractmethod
    async def delete_setting(self, key: str) -> bool: ...

    # -------------------
    # Users & sessions
    # -------------------
    @abstractmethod
    async def create_user(self, data: UserCreate) -> User: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    async def get_user_by_id(self, id: int) -> Optional[User]: ...

    @abstractmethod
    async def verify_password(self, email: str, password: str) -> Optional[User]:
        """None for an unknown email and for a wrong password alike."""

    @abstractmethod
    async def create_session(self, user_id: int) -> str: ...

    @abstractmethod
    async def get_session_user(self, session_id: str) -> Optional[User]: ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> None: ...

    @abstractmethod
    async def purge_expired_sessions(self) -> int: ...

    # -------------------
    # Wishlist
    # -------------------
    @abstractmethod
    async def add_to_wishlist(self, user_id: int, product_id: int) -> Optional[User]: ...

    @abstractmethod
    async def remove_from_wishlist(self, user_id: int, product_id: int) -> Optional[User]: ...

    @abstractmethod
    async def get_wishlist(self, user_id: int) -> List[Product]: ...

    # -------------------
    # Reviews
    # -------------------
    @abstractmethod
    async def create_review(self, data: ReviewCreate) -> Review: ...

    @abstractmethod
    async def get_product_reviews(self, product_id: int) -> List[Review]: ...

    @abstractmethod
    async def get_user_reviews(self, user_id: int) -> List[Review]: ...

    @abstractmethod
    async def update_review(self, id: int, user_id: int, changes: ReviewUpdate) -> Optional[Review]: ...

    @abstractmethod
    async def delete_review(self, id: int, user_id: int) -> bool: ...

    @abstractmethod
    async def get_product_review_stats(self, product_id: int) -> ReviewStats: ...
