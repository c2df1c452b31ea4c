from __future__ import annotations

from decimal import Decimal

from storefront.ordering.cart import build_summary, currency_symbol, dump_items, line_total, load_items, snapshot_cart
from storefront.schemas import CartItemWithProduct, Product


def _row(product_id, price, quantity, images=()):
    product = Product(
        id=product_id,
        name=f"Makhana {product_id}",
        description="",
        price=price,
        category_id=1,
        sku=f"M{product_id}",
        images=list(images),
    )
    return CartItemWithProduct(id=product_id, session_id="s", product_id=product_id, quantity=quantity, product=product)


def test_line_total_rounds_to_cents():
    assert line_total("19.995", 1) == Decimal("20.00")
    assert line_total("2999", 2) == Decimal("5998.00")


def test_snapshot_copies_prices_and_sums():
    lines, total = snapshot_cart([_row(1, "2999", 2, ["/a.jpg"]), _row(2, "899.50", 1)])
    assert total == Decimal("6897.50")
    assert lines[0] == {
        "productId": 1,
        "name": "Makhana 1",
        "sku": "M1",
        "price": "2999",
        "quantity": 2,
        "image": "/a.jpg",
        "lineTotal": "5998.00",
    }
    assert lines[1]["image"] is None


def test_items_json_roundtrip_tolerates_garbage():
    lines, _ = snapshot_cart([_row(1, "10", 1)])
    assert load_items(dump_items(lines)) == lines
    assert load_items("not json") == []
    assert load_items('{"a": 1}') == []
    assert load_items(None) == []


def test_build_summary():
    lines, total = snapshot_cart([_row(1, "100", 2), _row(2, "50", 1)])
    text, summed = build_summary(lines, currency_symbol="₹")
    assert summed == total == Decimal("250.00")
    assert "1. x2 Makhana 1 = ₹200.00" in text
    assert text.endswith("Total: ₹250.00")


def test_build_summary_empty():
    assert build_summary([]) == ("Your cart is empty.", Decimal("0.00"))


def test_currency_symbol():
    assert currency_symbol("inr") == "₹"
    assert currency_symbol("GBP") == "£"
    assert currency_symbol("XYZ") == ""
    assert currency_symbol(None) == ""


def test_build_summary_uses_given_symbol():
    lines, _ = snapshot_cart([_row(1, "5", 1)])
    text, _ = build_summary(lines, currency_symbol="£")
    assert text.endswith("Total: £5.00")
    assert "₹" not in build_summary(lines)[0]
