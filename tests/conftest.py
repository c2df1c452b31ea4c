from __future__ import annotations

import itertools

import pytest

from storefront.auth import hash_password
from storefront.schemas import (
    CategoryCreate,
    OrderCreate,
    ProductCreate,
    UserCreate,
)
from storefront.storage.json_storage import JsonStorage
from storefront.storage.memory import MemoryStorage

_sku = itertools.count(1)


@pytest.fixture
def store():
    return MemoryStorage(seed=False)


@pytest.fixture
def json_store(tmp_path):
    return JsonStorage(tmp_path)


@pytest.fixture
def make_category():
    async def _make(store, name="Snacks", slug=None, **kw):
        slug = slug or name.lower().replace(" ", "-")
        return await store.create_category(CategoryCreate(name=name, slug=slug, **kw))

    return _make


@pytest.fixture
def make_product():
    async def _make(store, **kw):
        data = {
            "name": "Roasted Makhana",
            "description": "Crunchy lotus seeds",
            "price": "100",
            "category_id": 1,
            "sku": f"SKU{next(_sku):04d}",
        }
        data.update(kw)
        return await store.create_product(ProductCreate(**data))

    return _make


@pytest.fixture
def make_user():
    async def _make(store, name="Alice", email="alice@example.com", password="wonderland"):
        return await store.create_user(
            UserCreate(name=name, email=email, password_hash=hash_password(password))
        )

    return _make


@pytest.fixture
def order_data():
    def _data(**kw):
        data = {
            "user_id": 1,
            "customer_name": "Alice Liddell",
            "customer_email": "alice@example.com",
            "shipping_address": "221B Baker St",
            "total": "200.00",
            "items": '[{"productId": 1, "quantity": 2}]',
        }
        data.update(kw)
        return OrderCreate(**data)

    return _data
