# storefront/main.py
from __future__ import annotations

import asyncio
import base64
import logging
import os
from datetime import timedelta
from typing import Optional

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import EmailStr, Field, model_validator

from . import schemas
from .auth import AdminAuth, AdminAuthError, AdminLockedOut, AdminNotConfigured, hash_password
from .config import Settings
from .ordering.cart import build_summary, currency_symbol, load_items
from .schemas import StoreModel
from .storage.base import Storage
from .storage.errors import PersistenceError, RejectedError
from .storage.json_storage import JsonStorage

load_dotenv()

logger = logging.getLogger(__name__)

router = APIRouter()


# -------------------
# Schemas
# -------------------
class RegisterIn(StoreModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=6)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class LoginIn(StoreModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class QuantityIn(StoreModel):
    quantity: int = Field(..., ge=0)


class CheckoutIn(StoreModel):
    cart_session_id: str = Field(..., min_length=1)
    customer_name: str = Field(..., min_length=1)
    customer_email: EmailStr
    customer_phone: Optional[str] = None
    shipping_address: str = Field(..., min_length=1)


class StatusIn(StoreModel):
    status: schemas.OrderStatus


class SettingValueIn(StoreModel):
    value: str


class ReviewIn(StoreModel):
    product_id: int = Field(..., ge=1)
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=100)
    comment: str = Field(..., min_length=1, max_length=1000)


# -------------------
# Helpers
# -------------------
def get_store(request: Request) -> Storage:
    return request.app.state.store


def get_admin(request: Request) -> AdminAuth:
    return request.app.state.admin


def _bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def _public(user: schemas.User) -> schemas.PublicUser:
    return schemas.PublicUser(id=user.id, name=user.name, email=user.email)


async def require_user(
    authorization: str | None = Header(default=None),
    store: Storage = Depends(get_store),
) -> schemas.User:
    token = _bearer(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    user = await store.get_session_user(token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid session")
    return user


def require_admin(
    request: Request,
    authorization: str | None = Header(default=None),
    admin: AdminAuth = Depends(get_admin),
) -> str:
    """
    Admin access: an admin session token (Bearer) first, otherwise Basic auth
    against the configured admin account.
    """
    token = _bearer(authorization)
    if token:
        username = admin.session_user(token)
        if username:
            return username

    if not authorization or not authorization.lower().startswith("basic "):
        raise HTTPException(status_code=401, detail="Admin authentication required")

    try:
        decoded = base64.b64decode(authorization.split(" ", 1)[1].strip()).decode("utf-8")
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid admin credentials")
    username, _, password = decoded.partition(":")

    client = request.client.host if request.client else "unknown"
    try:
        return admin.check_credentials(username, password, client)
    except AdminLockedOut as e:
        raise HTTPException(status_code=429, detail={"message": str(e), "retryAfter": e.retry_after})
    except AdminNotConfigured as e:
        raise HTTPException(status_code=500, detail=str(e))
    except AdminAuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


# -------------------
# Auth
# -------------------
@router.post("/api/auth/register", status_code=201)
async def register(payload: RegisterIn, store: Storage = Depends(get_store)):
    password_hash = await asyncio.to_thread(hash_password, payload.password)
    user = await store.create_user(
        schemas.UserCreate(name=payload.name, email=payload.email, password_hash=password_hash)
    )
    session_id = await store.create_session(user.id)
    return {"user": _public(user), "sessionId": session_id}


@router.post("/api/auth/login")
async def login(payload: LoginIn, store: Storage = Depends(get_store)):
    user = await store.verify_password(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    session_id = await store.create_session(user.id)
    return {"user": _public(user), "sessionId": session_id}


@router.post("/api/auth/logout")
async def logout(authorization: str | None = Header(default=None), store: Storage = Depends(get_store)):
    token = _bearer(authorization)
    if token:
        await store.delete_session(token)
    return {"message": "Logged out successfully"}


@router.get("/api/auth/me")
async def me(user: schemas.User = Depends(require_user)):
    return _public(user)


# -------------------
# Admin
# -------------------
@router.post("/api/admin/auth")
def admin_login(username: str = Depends(require_admin), admin: AdminAuth = Depends(get_admin)):
    token, expires_at = admin.open_session(username)
    return {"message": "Admin authenticated successfully", "sessionToken": token, "expiresAt": expires_at}


@router.post("/api/admin/logout")
def admin_logout(authorization: str | None = Header(default=None), admin: AdminAuth = Depends(get_admin)):
    token = _bearer(authorization)
    if token:
        admin.close_session(token)
    return {"message": "Admin logged out successfully"}


@router.get("/api/admin/me")
def admin_me(username: str = Depends(require_admin)):
    return {"username": username, "authenticated": True}


# -------------------
# Wishlist
# -------------------
@router.get("/api/wishlist")
async def wishlist(user: schemas.User = Depends(require_user), store: Storage = Depends(get_store)):
    return await store.get_wishlist(user.id)


@router.post("/api/wishlist/{product_id}")
async def wishlist_add(
    product_id: int,
    user: schemas.User = Depends(require_user),
    store: Storage = Depends(get_store),
):
    if not await store.get_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    updated = await store.add_to_wishlist(user.id, product_id)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "Added to wishlist", "wishlist": updated.wishlist}


@router.delete("/api/wishlist/{product_id}")
async def wishlist_remove(
    product_id: int,
    user: schemas.User = Depends(require_user),
    store: Storage = Depends(get_store),
):
    updated = await store.remove_from_wishlist(user.id, product_id)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return {"message": "Removed from wishlist", "wishlist": updated.wishlist}


# -------------------
# Categories
# -------------------
@router.get("/api/categories")
async def list_categories(store: Storage = Depends(get_store)):
    return await store.get_categories()


@router.get("/api/categories/{slug}")
async def get_category(slug: str, store: Storage = Depends(get_store)):
    category = await store.get_category_by_slug(slug)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("/api/categories", status_code=201, dependencies=[Depends(require_admin)])
async def create_category(payload: schemas.CategoryCreate, store: Storage = Depends(get_store)):
    return await store.create_category(payload)


@router.put("/api/categories/{id}", dependencies=[Depends(require_admin)])
async def update_category(id: int, payload: schemas.CategoryUpdate, store: Storage = Depends(get_store)):
    category = await store.update_category(id, payload)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.delete("/api/categories/{id}", dependencies=[Depends(require_admin)])
async def delete_category(id: int, store: Storage = Depends(get_store)):
    if not await store.delete_category(id):
        raise HTTPException(status_code=404, detail="Category not found")
    return {"message": "Category deleted successfully"}


# -------------------
# Products
# -------------------
@router.get("/api/products")
async def list_products(
    search: Optional[str] = None,
    featured: bool = False,
    category: Optional[str] = None,
    store: Storage = Depends(get_store),
):
    if search:
        return await store.search_products(search)
    if featured:
        return await store.get_featured_products()
    if category:
        record = await store.get_category_by_slug(category)
        if record:
            return await store.get_products(record.id)
    return await store.get_products()


@router.get("/api/products-with-category")
async def list_products_with_category(store: Storage = Depends(get_store)):
    return await store.get_products_with_category()


@router.get("/api/products/{id}")
async def get_product(id: int, store: Storage = Depends(get_store)):
    product = await store.get_product_with_category(id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/api/products/{id}/recommendations")
async def product_recommendations(id: int, store: Storage = Depends(get_store)):
    recs = await store.get_recommendations(id)
    if recs is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return recs


@router.post("/api/products", status_code=201, dependencies=[Depends(require_admin)])
async def create_product(payload: schemas.ProductCreate, store: Storage = Depends(get_store)):
    return await store.create_product(payload)


@router.put("/api/products/{id}", dependencies=[Depends(require_admin)])
async def update_product(id: int, payload: schemas.ProductUpdate, store: Storage = Depends(get_store)):
    product = await store.update_product(id, payload)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.delete("/api/products/{id}", dependencies=[Depends(require_admin)])
async def delete_product(id: int, store: Storage = Depends(get_store)):
    if not await store.delete_product(id):
        raise HTTPException(status_code=404, detail="Product not found")
    return {"message": "Product deleted successfully"}


# -------------------
# Cart
# -------------------
@router.get("/api/cart/{session_id}")
async def get_cart(session_id: str, store: Storage = Depends(get_store)):
    return await store.get_cart_items(session_id)


@router.post("/api/cart", status_code=201)
async def add_to_cart(payload: schemas.CartItemCreate, store: Storage = Depends(get_store)):
    return await store.add_to_cart(payload)


@router.put("/api/cart/{session_id}/{product_id}")
async def update_cart_item(
    session_id: str,
    product_id: int,
    payload: QuantityIn,
    store: Storage = Depends(get_store),
):
    # The store keeps a 0 quantity as-is; below 1 the line is dropped here.
    if payload.quantity < 1:
        if not await store.remove_from_cart(session_id, product_id):
            raise HTTPException(status_code=404, detail="Cart item not found")
        return {"message": "Item removed from cart"}

    row = await store.update_cart_item(session_id, product_id, payload.quantity)
    if not row:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return row


@router.delete("/api/cart/{session_id}/{product_id}")
async def remove_from_cart(session_id: str, product_id: int, store: Storage = Depends(get_store)):
    if not await store.remove_from_cart(session_id, product_id):
        raise HTTPException(status_code=404, detail="Cart item not found")
    return {"message": "Item removed from cart"}


@router.delete("/api/cart/{session_id}")
async def clear_cart(session_id: str, store: Storage = Depends(get_store)):
    await store.clear_cart(session_id)
    return {"message": "Cart cleared"}


# -------------------
# Orders
# -------------------
@router.get("/api/orders", dependencies=[Depends(require_admin)])
async def list_orders(store: Storage = Depends(get_store)):
    return await store.get_orders()


@router.get("/api/orders/{id}", dependencies=[Depends(require_admin)])
async def get_order(id: int, store: Storage = Depends(get_store)):
    order = await store.get_order(id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/api/users/orders")
async def my_orders(user: schemas.User = Depends(require_user), store: Storage = Depends(get_store)):
    return await store.get_user_orders(user.id)


@router.post("/api/orders", status_code=201)
async def checkout(
    request: Request,
    payload: CheckoutIn,
    user: schemas.User = Depends(require_user),
    store: Storage = Depends(get_store),
):
    # total and items are filled in from the cart by the store
    order = await store.checkout(
        payload.cart_session_id,
        schemas.OrderCreate(
            user_id=user.id,
            customer_name=payload.customer_name,
            customer_email=payload.customer_email,
            customer_phone=payload.customer_phone,
            shipping_address=payload.shipping_address,
        ),
    )
    if not order:
        raise HTTPException(status_code=400, detail="Cart is empty")

    symbol = currency_symbol(request.app.state.settings.currency_default)
    summary, _total = build_summary(load_items(order.items), currency_symbol=symbol)
    logger.info("New order #%s (%s)\n%s", order.id, order.tracking_number, summary)
    return order


@router.put("/api/orders/{id}/status", dependencies=[Depends(require_admin)])
async def update_order_status(id: int, payload: StatusIn, store: Storage = Depends(get_store)):
    order = await store.update_order_status(id, payload.status)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/api/track/{tracking_number}")
async def track_order(tracking_number: str, store: Storage = Depends(get_store)):
    order = await store.get_order_by_tracking_number(tracking_number)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found with this tracking number")

    # public lookup: no address, email or line items
    return {
        "id": order.id,
        "trackingNumber": order.tracking_number,
        "status": order.status,
        "createdAt": order.created_at,
        "customerName": order.customer_name.split(" ")[0],
        "total": order.total,
    }


# -------------------
# Site settings
# -------------------
@router.get("/api/settings")
async def list_settings(store: Storage = Depends(get_store)):
    return await store.get_settings()


@router.get("/api/settings/{key}")
async def get_setting(key: str, store: Storage = Depends(get_store)):
    setting = await store.get_setting(key)
    if not setting:
        raise HTTPException(status_code=404, detail="Setting not found")
    return setting


@router.post("/api/settings", status_code=201, dependencies=[Depends(require_admin)])
async def create_setting(payload: schemas.SettingCreate, store: Storage = Depends(get_store)):
    return await store.create_setting(payload)


@router.put("/api/settings/{key}", dependencies=[Depends(require_admin)])
async def update_setting(key: str, payload: SettingValueIn, store: Storage = Depends(get_store)):
    setting = await store.update_setting(key, payload.value)
    if not setting:
        raise HTTPException(status_code=404, detail="Setting not found")
    return setting


@router.delete("/api/settings/{key}", dependencies=[Depends(require_admin)])
async def delete_setting(key: str, store: Storage = Depends(get_store)):
    if not await store.delete_setting(key):
        raise HTTPException(status_code=404, detail="Setting not found")
    return {"message": "Setting deleted successfully"}


# -------------------
# Reviews
# -------------------
@router.get("/api/products/{product_id}/reviews")
async def product_reviews(product_id: int, store: Storage = Depends(get_store)):
    return await store.get_product_reviews(product_id)


@router.get("/api/products/{product_id}/review-stats")
async def product_review_stats(product_id: int, store: Storage = Depends(get_store)):
    return await store.get_product_review_stats(product_id)


@router.post("/api/reviews", status_code=201)
async def create_review(
    payload: ReviewIn,
    user: schemas.User = Depends(require_user),
    store: Storage = Depends(get_store),
):
    return await store.create_review(schemas.ReviewCreate(user_id=user.id, **payload.model_dump()))


@router.get("/api/users/reviews")
async def my_reviews(user: schemas.User = Depends(require_user), store: Storage = Depends(get_store)):
    return await store.get_user_reviews(user.id)


@router.put("/api/reviews/{id}")
async def update_review(
    id: int,
    payload: schemas.ReviewUpdate,
    user: schemas.User = Depends(require_user),
    store: Storage = Depends(get_store),
):
    review = await store.update_review(id, user.id, payload)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found or not authorized")
    return review


@router.delete("/api/reviews/{id}")
async def delete_review(id: int, user: schemas.User = Depends(require_user), store: Storage = Depends(get_store)):
    if not await store.delete_review(id, user.id):
        raise HTTPException(status_code=404, detail="Review not found or not authorized")
    return {"message": "Review deleted successfully"}


# -------------------
# App
# -------------------
async def _rejected(request: Request, exc: RejectedError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _persistence_failed(request: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": "Failed to save data"})


def create_app(
    settings: Settings | None = None,
    store: Storage | None = None,
    admin: AdminAuth | None = None,
) -> FastAPI:
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if store is None:
        store = JsonStorage(
            settings.data_dir,
            session_ttl=timedelta(days=settings.session_ttl_days),
            strict_persistence=settings.strict_persistence,
        )
    if admin is None:
        admin = AdminAuth(
            settings.admin_username,
            settings.admin_password_hash,
            session_hours=settings.admin_session_timeout_hours,
        )

    app = FastAPI(title="Storefront API")
    app.state.settings = settings
    app.state.store = store
    app.state.admin = admin
    app.include_router(router)
    app.add_exception_handler(RejectedError, _rejected)
    app.add_exception_handler(PersistenceError, _persistence_failed)

    @app.get("/")
    def root():
        return {"ok": True, "service": "storefront-api"}

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run("storefront.main:create_app", factory=True, host="0.0.0.0", port=port)
