from __future__ import annotations

import json
import logging

import pytest

from storefront.schemas import CartItemCreate, CategoryCreate
from storefront.storage.errors import PersistenceError
from storefront.storage.json_storage import DB_FILENAME, JsonStorage


def _read(tmp_path):
    return json.loads((tmp_path / DB_FILENAME).read_text(encoding="utf-8"))


async def test_fresh_directory_is_seeded_and_written(tmp_path):
    store = JsonStorage(tmp_path / "nested")
    assert len(await store.get_categories()) == 5
    assert len(await store.get_products()) == 6

    doc = _read(tmp_path / "nested")
    assert set(doc) >= {"categories", "products", "cartItems", "orders", "settings", "users", "sessions", "reviews", "counters"}
    assert doc["counters"]["categoryId"] == 6
    assert doc["counters"]["productId"] == 7
    assert doc["counters"]["orderId"] == 1


async def test_file_uses_camel_case_keys(json_store, tmp_path):
    await json_store.add_to_cart(CartItemCreate(session_id="s1", product_id=1))
    doc = _read(tmp_path)
    assert "categoryId" in doc["products"][0]
    assert doc["cartItems"][0]["sessionId"] == "s1"
    assert doc["cartItems"][0]["productId"] == 1


async def test_state_survives_reload(json_store, tmp_path, make_user, order_data):
    user = await make_user(json_store)
    await json_store.create_session(user.id)
    order = await json_store.create_order(order_data(user_id=user.id))

    reloaded = JsonStorage(tmp_path)
    assert (await reloaded.get_user_by_email("alice@example.com")).id == user.id
    found = await reloaded.get_order_by_tracking_number(order.tracking_number)
    assert found == order
    assert reloaded.counters["orderId"] == 2
    assert reloaded.counters["userId"] == 2


async def test_ids_keep_increasing_after_delete_and_reload(json_store, tmp_path):
    c = await json_store.create_category(CategoryCreate(name="Gift Packs", slug="gift-packs"))
    await json_store.delete_category(c.id)

    reloaded = JsonStorage(tmp_path)
    again = await reloaded.create_category(CategoryCreate(name="Gift Boxes", slug="gift-boxes"))
    assert again.id == c.id + 1


async def test_missing_keys_fall_back_to_defaults(tmp_path):
    (tmp_path / DB_FILENAME).write_text(
        json.dumps({"categories": [{"id": 4, "name": "Plain", "slug": "plain"}]}),
        encoding="utf-8",
    )
    store = JsonStorage(tmp_path)

    assert [c.id for c in await store.get_categories()] == [4]
    assert await store.get_products() == []
    assert store.reviews == []
    assert store.counters["categoryId"] == 5
    assert store.counters["reviewId"] == 1


async def test_invalid_records_are_skipped(tmp_path, caplog):
    (tmp_path / DB_FILENAME).write_text(
        json.dumps(
            {
                "categories": [
                    {"id": 1, "name": "Plain", "slug": "plain"},
                    {"name": "no id"},
                ]
            }
        ),
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING):
        store = JsonStorage(tmp_path)
    assert [c.name for c in await store.get_categories()] == ["Plain"]
    assert "Skipping invalid categories record" in caplog.text


async def test_corrupt_file_falls_back_to_sample_data(tmp_path, caplog):
    db = tmp_path / DB_FILENAME
    db.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.ERROR):
        store = JsonStorage(tmp_path)

    assert len(await store.get_products()) == 6
    assert db.read_text(encoding="utf-8") == "{not json"
    assert "Error loading" in caplog.text


async def test_non_object_document_falls_back_to_sample_data(tmp_path):
    (tmp_path / DB_FILENAME).write_text("[]", encoding="utf-8")
    store = JsonStorage(tmp_path)
    assert len(await store.get_categories()) == 5


def _failing_write(payload):
    raise OSError("disk full")


async def test_strict_save_failure_raises_and_rolls_back(json_store, monkeypatch):
    await json_store.add_to_cart(CartItemCreate(session_id="s1", product_id=1))
    counters = dict(json_store.counters)
    monkeypatch.setattr(json_store, "_write", _failing_write)

    with pytest.raises(PersistenceError):
        await json_store.add_to_cart(CartItemCreate(session_id="s1", product_id=1))
    with pytest.raises(PersistenceError):
        await json_store.add_to_cart(CartItemCreate(session_id="s1", product_id=2))

    items = await json_store.get_cart_items("s1")
    assert [(i.product_id, i.quantity) for i in items] == [(1, 1)]
    assert json_store.counters == counters


async def test_failed_checkout_leaves_cart_and_orders_untouched(json_store, order_data, monkeypatch):
    await json_store.add_to_cart(CartItemCreate(session_id="c1", product_id=1, quantity=2))
    monkeypatch.setattr(json_store, "_write", _failing_write)

    with pytest.raises(PersistenceError):
        await json_store.checkout("c1", order_data(total="", items=""))

    assert await json_store.get_orders() == []
    assert len(await json_store.get_cart_items("c1")) == 1

    monkeypatch.undo()
    order = await json_store.checkout("c1", order_data(total="", items=""))
    assert order.id == 1
    assert await json_store.get_cart_items("c1") == []


async def test_lenient_save_failure_only_logs(tmp_path, monkeypatch, caplog):
    store = JsonStorage(tmp_path, strict_persistence=False)
    monkeypatch.setattr(store, "_write", _failing_write)

    with caplog.at_level(logging.ERROR):
        row = await store.add_to_cart(CartItemCreate(session_id="s1", product_id=1))

    assert row.quantity == 1
    assert "Error saving data" in caplog.text


async def test_reads_do_not_touch_disk(json_store, monkeypatch):
    monkeypatch.setattr(json_store, "_write", _failing_write)
    assert len(await json_store.get_products_with_category()) == 6
    assert await json_store.search_products("makhana")
    assert await json_store.get_recommendations(1)
    assert await json_store.get_product_review_stats(1)
