# storefront/storage/recommend.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from ..schemas import Product

MAX_RECOMMENDATIONS = 8


def _price(p: Product) -> Optional[Decimal]:
    try:
        return Decimal(p.price)
    except (InvalidOperation, TypeError):
        return None


def feature_overlap(a: List[str], b: List[str]) -> float:
    """
    Share of `a`'s features that match something in `b`, where a match is a
    case-insensitive substring in either direction. Normalized by the longer
    list so a product with many features does not dominate.
    """
    if not a or not b:
        return 0.0
    lb = [x.lower() for x in b]
    common = 0
    for feat in a:
        f = feat.lower()
        if any(f in o or o in f for o in lb):
            common += 1
    return common / max(len(a), len(b))


def similarity_score(ref: Product, other: Product) -> float:
    score = 0.0

    if other.category_id == ref.category_id:
        score += 50

    score += feature_overlap(ref.features or [], other.features or []) * 30

    ref_price = _price(ref)
    other_price = _price(other)
    if ref_price is not None and other_price is not None and ref_price > 0:
        diff = abs(ref_price - other_price) / ref_price
        if diff <= Decimal("0.2"):
            score += 10
        elif diff <= Decimal("0.5"):
            score += 5

    if other.featured:
        score += 5
    if other.stock > 0:
        score += 3

    return score


def recommend(ref: Product, candidates: Iterable[Product], limit: int = MAX_RECOMMENDATIONS) -> List[Product]:
    scored = [(similarity_score(ref, p), p) for p in candidates if p.id != ref.id]
    # sorted() is stable, so equal scores keep catalog order
    scored.sort(key=lambda t: t[0], reverse=True)
    return [p for _score, p in scored[:limit]]
