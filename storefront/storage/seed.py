# storefront/storage/seed.py
from __future__ import annotations

from typing import Any, Dict, List

# Loaded into a fresh store when no database file exists yet.
# Product categoryId values refer to the 1-based position in SAMPLE_CATEGORIES.

SAMPLE_CATEGORIES: List[Dict[str, Any]] = [
    {
        "name": "Premium Makhana",
        "slug": "premium-makhana",
        "description": "Premium quality makhana varieties with superior taste and texture",
    },
    {
        "name": "Organic Makhana",
        "slug": "organic-makhana",
        "description": "Organically grown makhana free from chemicals and pesticides",
    },
    {
        "name": "Flavored Makhana",
        "slug": "flavored-makhana",
        "description": "Makhana with traditional Indian spices and seasonings",
    },
    {
        "name": "Roasted Makhana",
        "slug": "roasted-makhana",
        "description": "Perfectly roasted makhana with crispy texture and rich flavor",
    },
    {
        "name": "Seasoned Makhana",
        "slug": "seasoned-makhana",
        "description": "Expertly seasoned makhana with traditional spices and herbs",
    },
]

SAMPLE_PRODUCTS: List[Dict[str, Any]] = [
    {
        "name": "Premium Roasted Makhana",
        "description": "Premium quality roasted makhana with authentic Indian processing. Perfect for healthy snacking.",
        "price": "2999",
        "category_id": 1,
        "sku": "POT001",
        "featured": True,
        "stock": 15,
        "images": ["/images/roasted-makhana-1.svg"],
        "features": ["Premium Quality", "Traditional Processing", "Healthy Snacking"],
    },
    {
        "name": "Organic Makhana Pack",
        "description": "Organic makhana with natural processing methods. Grown by skilled farmers.",
        "price": "1899",
        "category_id": 2,
        "sku": "TEX001",
        "featured": True,
        "stock": 25,
        "images": ["/images/organic-pack-1.svg"],
        "features": ["Organic", "Natural processing", "Premium texture"],
    },
    {
        "name": "Flavored Makhana Mix",
        "description": "Flavored makhana mix showcasing traditional seasoning.",
        "price": "3499",
        "category_id": 3,
        "sku": "JEW001",
        "featured": False,
        "stock": 12,
        "images": ["/images/flavored-mix-1.svg"],
        "features": ["Multiple flavors", "Traditional seasoning", "Nutritious"],
    },
    {
        "name": "Seasoned Makhana Variety",
        "description": "Seasoned makhana variety with traditional spice blends.",
        "price": "1599",
        "category_id": 4,
        "sku": "WOD001",
        "featured": False,
        "stock": 8,
        "images": ["/images/seasoned-variety-1.jpg", "/images/seasoned-variety-2.jpg"],
        "features": ["Hand-seasoned", "Traditional spices", "Healthy snacking"],
    },
    {
        "name": "Spiced Makhana Selection",
        "description": "Hand-seasoned makhana selection with vibrant flavors and traditional spices.",
        "price": "899",
        "category_id": 2,
        "sku": "TEX002",
        "featured": True,
        "stock": 30,
        "images": ["/images/spiced-selection-1.jpg"],
        "features": ["Hand-seasoned", "Vibrant flavors", "Traditional spices"],
    },
    {
        "name": "Premium Makhana Assortment",
        "description": "Makhana assortment with premium varieties, perfect for healthy indulgence.",
        "price": "2199",
        "category_id": 5,
        "sku": "MET001",
        "featured": False,
        "stock": 10,
        "images": ["/images/assortment-1.jpg", "/images/assortment-2.jpg"],
        "features": ["Premium varieties", "Multiple textures", "Healthy indulgence"],
    },
]
