# storefront/ordering/cart.py
from __future__ import annotations

import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Tuple

from ..schemas import CartItemWithProduct

_CENTS = Decimal("0.01")

_SYMBOLS = {"INR": "₹", "GBP": "£", "USD": "$", "EUR": "€"}


def currency_symbol(code: str | None) -> str:
    return _SYMBOLS.get((code or "").upper(), "")


def load_items(items_json: str | None) -> List[Dict[str, Any]]:
    try:
        v = json.loads(items_json or "[]")
        return v if isinstance(v, list) else []
    except ValueError:
        return []


def dump_items(items: List[Dict[str, Any]]) -> str:
    return json.dumps(items, ensure_ascii=False)


def line_total(price: str, qty: int) -> Decimal:
    return (Decimal(price) * qty).quantize(_CENTS, rounding=ROUND_HALF_UP)


def snapshot_cart(cart: List[CartItemWithProduct]) -> Tuple[List[Dict[str, Any]], Decimal]:
    """
    Freeze the cart into order lines. Prices are copied, not referenced, so a
    later price change does not touch past orders.
    """
    lines: List[Dict[str, Any]] = []
    total = Decimal("0.00")
    for row in cart:
        p = row.product
        lt = line_total(p.price, row.quantity)
        lines.append(
            {
                "productId": p.id,
                "name": p.name,
                "sku": p.sku,
                "price": p.price,
                "quantity": row.quantity,
                "image": p.images[0] if p.images else None,
                "lineTotal": str(lt),
            }
        )
        total += lt
    return lines, total.quantize(_CENTS)


def build_summary(items: List[Dict[str, Any]], currency_symbol: str = "") -> Tuple[str, Decimal]:
    if not items:
        return ("Your cart is empty.", Decimal("0.00"))

    lines: List[str] = []
    total = Decimal("0.00")
    for i, line in enumerate(items, start=1):
        qty = int(line.get("quantity", 1) or 1)
        name = str(line.get("name", "Item"))
        lt = Decimal(str(line.get("lineTotal", "0") or "0"))
        total += lt
        lines.append(f"{i}. x{qty} {name} = {currency_symbol}{lt:.2f}")

    return ("Order summary:\n" + "\n".join(lines) + f"\n\nTotal: {currency_symbol}{total:.2f}", total)
