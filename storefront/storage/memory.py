# storefront/storage/memory.py
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from ..auth import dummy_verify, new_token, verify_password
from ..ordering.cart import dump_items, snapshot_cart
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
    Session,
    Setting,
    SettingCreate,
    User,
    UserCreate,
    utcnow,
)
from .base import Storage
from .errors import MissingFieldError, RejectedError
from .recommend import MAX_RECOMMENDATIONS, recommend
from .seed import SAMPLE_CATEGORIES, SAMPLE_PRODUCTS

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(days=30)

# (attribute, key in the persisted document, record model)
COLLECTIONS: Tuple[Tuple[str, str, type], ...] = (
    ("categories", "categories", Category),
    ("products", "products", Product),
    ("cart_items", "cartItems", CartItem),
    ("orders", "orders", Order),
    ("settings", "settings", Setting),
    ("users", "users", User),
    ("sessions", "sessions", Session),
    ("reviews", "reviews", Review),
)

# counter name -> collection whose ids it hands out
ID_COUNTERS: Dict[str, str] = {
    "categoryId": "categories",
    "productId": "products",
    "cartItemId": "cart_items",
    "orderId": "orders",
    "userId": "users",
    "reviewId": "reviews",
    "settingId": "settings",
}

_ORDER_REQUIRED: Tuple[Tuple[str, str], ...] = (
    ("user_id", "User ID is required"),
    ("customer_name", "Customer name is required"),
    ("customer_email", "Customer email is required"),
    ("shipping_address", "Shipping address is required"),
    ("total", "Order total is required"),
    ("items", "Order items are required"),
)

_B36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def generate_tracking_number() -> str:
    stamp = base36(int(time.time() * 1000))
    rand = base36(int.from_bytes(secrets.token_bytes(4), "big"))
    return f"TRK{stamp}{rand}"


def _changes(update: BaseModel, nullable: Sequence[str] = ()) -> Dict[str, Any]:
    # Only fields the caller actually sent; None clears a field only where it may be null.
    return {
        k: v
        for k, v in update.model_dump(exclude_unset=True).items()
        if v is not None or k in nullable
    }


def _find(rows: List[Any], id: int) -> Optional[int]:
    for i, row in enumerate(rows):
        if row.id == id:
            return i
    return None


def _copy(row):
    return row.model_copy(deep=True) if row is not None else None


def _copies(rows: Iterable[Any]) -> List[Any]:
    return [row.model_copy(deep=True) for row in rows]


def _check_order(data: OrderCreate) -> None:
    for field, message in _ORDER_REQUIRED:
        if not getattr(data, field):
            raise MissingFieldError(field, message)


class MemoryStorage(Storage):
    """
    Keeps every entity in ordered lists with monotonically increasing id
    counters. Subclasses persist the state by overriding `_save`, which every
    mutating operation awaits last, while still holding the store lock.

    Records handed to callers are copies; the lists are only changed under
    the lock.
    """

    def __init__(self, seed: bool = True, session_ttl: timedelta = SESSION_TTL) -> None:
        self.session_ttl = session_ttl
        self._lock = asyncio.Lock()
        self._reset()
        if seed:
            self._seed()

    def _reset(self) -> None:
        self.categories: List[Category] = []
        self.products: List[Product] = []
        self.cart_items: List[CartItem] = []
        self.orders: List[Order] = []
        self.settings: List[Setting] = []
        self.users: List[User] = []
        self.sessions: List[Session] = []
        self.reviews: List[Review] = []
        self.counters: Dict[str, int] = {name: 1 for name in ID_COUNTERS}

    def _seed(self) -> None:
        for c in SAMPLE_CATEGORIES:
            self.categories.append(Category(id=self._next_id("categoryId"), **c))
        for p in SAMPLE_PRODUCTS:
            self.products.append(Product(id=self._next_id("productId"), **p))

    def _next_id(self, counter: str) -> int:
        value = self.counters[counter]
        self.counters[counter] = value + 1
        return value

    async def _save(self) -> None:
        return None

    # live records, internal use only
    def _product(self, id: int) -> Optional[Product]:
        idx = _find(self.products, id)
        return self.products[idx] if idx is not None else None

    def _user(self, id: int) -> Optional[User]:
        idx = _find(self.users, id)
        return self.users[idx] if idx is not None else None

    def _user_by_email(self, email: str) -> Optional[User]:
        e = (email or "").strip().lower()
        return next((u for u in self.users if u.email.lower() == e), None)

    # -------------------
    # Categories
    # -------------------
    async def get_categories(self) -> List[Category]:
        return _copies(self.categories)

    async def get_category(self, id: int) -> Optional[Category]:
        idx = _find(self.categories, id)
        return _copy(self.categories[idx]) if idx is not None else None

    async def get_category_by_slug(self, slug: str) -> Optional[Category]:
        return _copy(next((c for c in self.categories if c.slug == slug), None))

    def _check_category_unique(self, name: Optional[str], slug: Optional[str], exclude: Optional[int] = None) -> None:
        for c in self.categories:
            if c.id == exclude:
                continue
            if name is not None and c.name.lower() == name.lower():
                raise RejectedError(f"Category with name '{name}' already exists")
            if slug is not None and c.slug == slug:
                raise RejectedError(f"Category with slug '{slug}' already exists")

    async def create_category(self, data: CategoryCreate) -> Category:
        async with self._lock:
            self._check_category_unique(data.name, data.slug)
            category = Category(id=self._next_id("categoryId"), **data.model_dump())
            self.categories.append(category)
            await self._save()
            return _copy(category)

    async def update_category(self, id: int, changes: CategoryUpdate) -> Optional[Category]:
        async with self._lock:
            idx = _find(self.categories, id)
            if idx is None:
                return None
            fields = _changes(changes, nullable=("description", "thumbnail"))
            self._check_category_unique(fields.get("name"), fields.get("slug"), exclude=id)
            updated = self.categories[idx].model_copy(update=fields)
            self.categories[idx] = updated
            await self._save()
            return _copy(updated)

    async def delete_category(self, id: int) -> bool:
        async with self._lock:
            idx = _find(self.categories, id)
            if idx is None:
                return False
            in_use = sum(1 for p in self.products if p.category_id == id)
            if in_use:
                raise RejectedError(
                    f"Cannot delete category. {in_use} product(s) are still using this category."
                )
            del self.categories[idx]
            await self._save()
            return True

    # -------------------
    # Products
    # -------------------
    async def get_products(self, category_id: Optional[int] = None) -> List[Product]:
        if category_id:
            return _copies(p for p in self.products if p.category_id == category_id)
        return _copies(self.products)

    async def get_featured_products(self) -> List[Product]:
        return _copies(p for p in self.products if p.featured)

    def _with_category(self, product: Product) -> Optional[ProductWithCategory]:
        category = next((c for c in self.categories if c.id == product.category_id), None)
        if not category:
            return None
        return ProductWithCategory(**product.model_dump(), category=category.model_dump())

    async def get_products_with_category(self) -> List[ProductWithCategory]:
        out: List[ProductWithCategory] = []
        for p in self.products:
            joined = self._with_category(p)
            if joined:
                out.append(joined)
        return out

    async def get_product(self, id: int) -> Optional[Product]:
        return _copy(self._product(id))

    async def get_product_with_category(self, id: int) -> Optional[ProductWithCategory]:
        product = self._product(id)
        if not product:
            return None
        return self._with_category(product)

    async def search_products(self, query: str) -> List[Product]:
        q = (query or "").lower()
        return _copies(p for p in self.products if q in p.name.lower() or q in p.description.lower())

    def _check_sku_unique(self, sku: Optional[str], exclude: Optional[int] = None) -> None:
        if sku is None:
            return
        if any(p.sku == sku and p.id != exclude for p in self.products):
            raise RejectedError(f"Product with SKU '{sku}' already exists")

    async def create_product(self, data: ProductCreate) -> Product:
        async with self._lock:
            self._check_sku_unique(data.sku)
            product = Product(id=self._next_id("productId"), created_at=utcnow(), **data.model_dump())
            self.products.append(product)
            await self._save()
            return _copy(product)

    async def update_product(self, id: int, changes: ProductUpdate) -> Optional[Product]:
        async with self._lock:
            idx = _find(self.products, id)
            if idx is None:
                return None
            fields = _changes(changes)
            self._check_sku_unique(fields.get("sku"), exclude=id)
            updated = self.products[idx].model_copy(update=fields)
            self.products[idx] = updated
            await self._save()
            return _copy(updated)

    async def delete_product(self, id: int) -> bool:
        async with self._lock:
            idx = _find(self.products, id)
            if idx is None:
                return False
            del self.products[idx]
            await self._save()
            return True

    async def get_recommendations(self, product_id: int, limit: int = MAX_RECOMMENDATIONS) -> Optional[List[Product]]:
        product = self._product(product_id)
        if not product:
            return None
        return _copies(recommend(product, self.products, limit=limit))

    # -------------------
    # Cart
    # -------------------
    def _cart_row(self, session_id: str, product_id: int) -> Optional[int]:
        for i, row in enumerate(self.cart_items):
            if row.session_id == session_id and row.product_id == product_id:
                return i
        return None

    def _cart_view(self, session_id: str) -> List[CartItemWithProduct]:
        out: List[CartItemWithProduct] = []
        for row in self.cart_items:
            if row.session_id != session_id:
                continue
            product = self._product(row.product_id)
            if product:
                out.append(CartItemWithProduct(**row.model_dump(), product=product.model_dump()))
        return out

    async def get_cart_items(self, session_id: str) -> List[CartItemWithProduct]:
        return self._cart_view(session_id)

    async def add_to_cart(self, item: CartItemCreate) -> CartItem:
        # No stock check here; the storefront UI enforces stock.
        async with self._lock:
            idx = self._cart_row(item.session_id, item.product_id)
            if idx is not None:
                row = self.cart_items[idx]
                row = row.model_copy(update={"quantity": row.quantity + (item.quantity or 1)})
                self.cart_items[idx] = row
            else:
                row = CartItem(
                    id=self._next_id("cartItemId"),
                    session_id=item.session_id,
                    product_id=item.product_id,
                    quantity=item.quantity or 1,
                    created_at=utcnow(),
                )
                self.cart_items.append(row)
            await self._save()
            return _copy(row)

    async def update_cart_item(self, session_id: str, product_id: int, quantity: int) -> Optional[CartItem]:
        async with self._lock:
            idx = self._cart_row(session_id, product_id)
            if idx is None:
                return None
            row = self.cart_items[idx].model_copy(update={"quantity": quantity})
            self.cart_items[idx] = row
            await self._save()
            return _copy(row)

    async def remove_from_cart(self, session_id: str, product_id: int) -> bool:
        async with self._lock:
            idx = self._cart_row(session_id, product_id)
            if idx is None:
                return False
            del self.cart_items[idx]
            await self._save()
            return True

    async def clear_cart(self, session_id: str) -> bool:
        async with self._lock:
            kept = [row for row in self.cart_items if row.session_id != session_id]
            if len(kept) == len(self.cart_items):
                return False
            self.cart_items = kept
            await self._save()
            return True

    # -------------------
    # Orders
    # -------------------
    async def get_orders(self) -> List[Order]:
        return _copies(self.orders)

    async def get_order(self, id: int) -> Optional[Order]:
        idx = _find(self.orders, id)
        return _copy(self.orders[idx]) if idx is not None else None

    async def get_user_orders(self, user_id: int) -> List[Order]:
        return _copies(o for o in self.orders if o.user_id == user_id)

    async def get_order_by_tracking_number(self, tracking_number: str) -> Optional[Order]:
        tn = (tracking_number or "").strip().upper()
        return _copy(next((o for o in self.orders if o.tracking_number == tn), None))

    def _insert_order(self, data: OrderCreate) -> Order:
        # caller holds the lock and has run _check_order
        taken = {o.tracking_number for o in self.orders}
        tracking_number = generate_tracking_number()
        while tracking_number in taken:
            tracking_number = generate_tracking_number()

        order = Order(
            id=self._next_id("orderId"),
            user_id=data.user_id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone or None,
            shipping_address=data.shipping_address,
            total=data.total,
            status=data.status or "pending",
            tracking_number=tracking_number,
            items=data.items,
            created_at=utcnow(),
        )
        self.orders.append(order)
        return order

    async def create_order(self, data: OrderCreate) -> Order:
        _check_order(data)
        async with self._lock:
            order = self._insert_order(data)
            await self._save()
            logger.info("Order %s created for user %s (%s)", order.id, order.user_id, order.tracking_number)
            return _copy(order)

    async def checkout(self, cart_session_id: str, data: OrderCreate) -> Optional[Order]:
        async with self._lock:
            cart = self._cart_view(cart_session_id)
            if not cart:
                return None
            lines, total = snapshot_cart(cart)
            data = data.model_copy(update={"total": str(total), "items": dump_items(lines)})
            _check_order(data)

            order = self._insert_order(data)
            self.cart_items = [row for row in self.cart_items if row.session_id != cart_session_id]
            await self._save()
            logger.info(
                "Order %s checked out from cart %s for user %s (%s)",
                order.id, cart_session_id, order.user_id, order.tracking_number,
            )
            return _copy(order)

    async def update_order_status(self, id: int, status: str) -> Optional[Order]:
        # Any status may follow any other.
        async with self._lock:
            idx = _find(self.orders, id)
            if idx is None:
                return None
            updated = self.orders[idx].model_copy(update={"status": status})
            self.orders[idx] = updated
            await self._save()
            return _copy(updated)

    # -------------------
    # Settings
    # -------------------
    async def get_settings(self) -> List[Setting]:
        return _copies(self.settings)

    async def get_setting(self, key: str) -> Optional[Setting]:
        return _copy(next((s for s in self.settings if s.key == key), None))

    async def create_setting(self, data: SettingCreate) -> Setting:
        async with self._lock:
            if any(s.key == data.key for s in self.settings):
                raise RejectedError(f"Setting with key '{data.key}' already exists")
            now = utcnow()
            setting = Setting(
                id=self._next_id("settingId"),
                created_at=now,
                updated_at=now,
                **data.model_dump(),
            )
            self.settings.append(setting)
            await self._save()
            return _copy(setting)

    async def update_setting(self, key: str, value: str) -> Optional[Setting]:
        async with self._lock:
            idx = next((i for i, s in enumerate(self.settings) if s.key == key), None)
            if idx is None:
                return None
            updated = self.settings[idx].model_copy(update={"value": value, "updated_at": utcnow()})
            self.settings[idx] = updated
            await self._save()
            return _copy(updated)

    async def delete_setting(self, key: str) -> bool:
        async with self._lock:
            kept = [s for s in self.settings if s.key != key]
            if len(kept) == len(self.settings):
                return False
            self.settings = kept
            await self._save()
            return True

    # -------------------
    # Users & sessions
    # -------------------
    async def create_user(self, data: UserCreate) -> User:
        async with self._lock:
            if self._user_by_email(data.email):
                raise RejectedError("User with this email already exists")
            user = User(
                id=self._next_id("userId"),
                name=data.name,
                email=data.email,
                password_hash=data.password_hash,
                wishlist=[],
                created_at=utcnow(),
            )
            self.users.append(user)
            await self._save()
            return _copy(user)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return _copy(self._user_by_email(email))

    async def get_user_by_id(self, id: int) -> Optional[User]:
        return _copy(self._user(id))

    async def verify_password(self, email: str, password: str) -> Optional[User]:
        user = await self.get_user_by_email(email)
        if not user:
            # keep the timing of "no such user" close to "wrong password"
            await asyncio.to_thread(dummy_verify)
            return None
        ok = await asyncio.to_thread(verify_password, password, user.password_hash)
        return user if ok else None

    async def create_session(self, user_id: int) -> str:
        async with self._lock:
            token = new_token()
            self.sessions.append(
                Session(session_id=token, user_id=user_id, expires_at=utcnow() + self.session_ttl)
            )
            await self._save()
            return token

    async def get_session_user(self, session_id: str) -> Optional[User]:
        # Expired rows stay in place until logout or purge_expired_sessions().
        session = next((s for s in self.sessions if s.session_id == session_id), None)
        if not session or session.expires_at < utcnow():
            return None
        return await self.get_user_by_id(session.user_id)

    async def delete_session(self, session_id: str) -> None:
        async with self._lock:
            kept = [s for s in self.sessions if s.session_id != session_id]
            if len(kept) != len(self.sessions):
                self.sessions = kept
                await self._save()

    async def purge_expired_sessions(self) -> int:
        async with self._lock:
            now = utcnow()
            kept = [s for s in self.sessions if s.expires_at >= now]
            removed = len(self.sessions) - len(kept)
            if removed:
                self.sessions = kept
                await self._save()
            return removed

    # -------------------
    # Wishlist
    # -------------------
    async def add_to_wishlist(self, user_id: int, product_id: int) -> Optional[User]:
        async with self._lock:
            idx = _find(self.users, user_id)
            if idx is None:
                return None
            user = self.users[idx]
            if product_id not in user.wishlist:
                user = user.model_copy(update={"wishlist": [*user.wishlist, product_id]})
                self.users[idx] = user
                await self._save()
            return _copy(user)

    async def remove_from_wishlist(self, user_id: int, product_id: int) -> Optional[User]:
        async with self._lock:
            idx = _find(self.users, user_id)
            if idx is None:
                return None
            user = self.users[idx]
            if product_id in user.wishlist:
                user = user.model_copy(update={"wishlist": [pid for pid in user.wishlist if pid != product_id]})
                self.users[idx] = user
                await self._save()
            return _copy(user)

    async def get_wishlist(self, user_id: int) -> List[Product]:
        user = self._user(user_id)
        if not user:
            return []
        out: List[Product] = []
        for pid in user.wishlist:
            product = self._product(pid)
            if product:
                out.append(_copy(product))
        return out

    # -------------------
    # Reviews
    # -------------------
    async def create_review(self, data: ReviewCreate) -> Review:
        async with self._lock:
            if any(r.product_id == data.product_id and r.user_id == data.user_id for r in self.reviews):
                raise RejectedError("You have already reviewed this product")
            user = self._user(data.user_id)
            if not user:
                raise RejectedError("User not found")
            if not self._product(data.product_id):
                raise RejectedError("Product not found")

            now = utcnow()
            review = Review(
                id=self._next_id("reviewId"),
                product_id=data.product_id,
                user_id=data.user_id,
                rating=data.rating,
                title=data.title,
                comment=data.comment,
                user_name=user.name,
                created_at=now,
                updated_at=now,
            )
            self.reviews.append(review)
            await self._save()
            return _copy(review)

    async def get_product_reviews(self, product_id: int) -> List[Review]:
        rows = [r for r in self.reviews if r.product_id == product_id]
        return _copies(sorted(rows, key=lambda r: r.created_at, reverse=True))

    async def get_user_reviews(self, user_id: int) -> List[Review]:
        rows = [r for r in self.reviews if r.user_id == user_id]
        return _copies(sorted(rows, key=lambda r: r.created_at, reverse=True))

    def _own_review(self, id: int, user_id: int) -> Optional[int]:
        # Someone else's review looks exactly like a missing one.
        for i, r in enumerate(self.reviews):
            if r.id == id and r.user_id == user_id:
                return i
        return None

    async def update_review(self, id: int, user_id: int, changes: ReviewUpdate) -> Optional[Review]:
        async with self._lock:
            idx = self._own_review(id, user_id)
            if idx is None:
                return None
            fields = _changes(changes)
            fields["updated_at"] = utcnow()
            updated = self.reviews[idx].model_copy(update=fields)
            self.reviews[idx] = updated
            await self._save()
            return _copy(updated)

    async def delete_review(self, id: int, user_id: int) -> bool:
        async with self._lock:
            idx = self._own_review(id, user_id)
            if idx is None:
                return False
            del self.reviews[idx]
            await self._save()
            return True

    async def get_product_review_stats(self, product_id: int) -> ReviewStats:
        ratings = [r.rating for r in self.reviews if r.product_id == product_id]
        distribution = {star: 0 for star in range(1, 6)}
        if not ratings:
            return ReviewStats(average_rating=0, total_reviews=0, rating_distribution=distribution)

        for rating in ratings:
            if rating in distribution:
                distribution[rating] += 1
        average = (Decimal(sum(ratings)) / Decimal(len(ratings))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return ReviewStats(
            average_rating=float(average),
            total_reviews=len(ratings),
            rating_distribution=distribution,
        )
