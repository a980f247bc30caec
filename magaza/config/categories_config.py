"""
Storefront category configuration.
Used by the seed script to populate the categories table and by the
category service to keep a stable display order.
"""

CATEGORIES = {
    "e-ticaret": {
        "name": "E-Ticaret",
        "description": "Sipariş, stok ve kargo süreçlerini otomatikleştiren çözümler",
        "gradient": "from-purple-500 to-pink-500",
        "icon": "shopping-cart",
        "color": "#8b5cf6",
        "baseline_count": 150,
    },
    "sosyal-medya": {
        "name": "Sosyal Medya",
        "description": "Paylaşım planlama, etkileşim takibi ve içerik otomasyonları",
        "gradient": "from-blue-500 to-cyan-500",
        "icon": "share",
        "color": "#3b82f6",
        "baseline_count": 200,
    },
    "veri-raporlama": {
        "name": "Veri & Raporlama",
        "description": "Veri toplama, dönüştürme ve otomatik raporlama araçları",
        "gradient": "from-emerald-500 to-teal-500",
        "icon": "bar-chart",
        "color": "#10b981",
        "baseline_count": 180,
    },
}

# Used when a developer types a category slug that does not exist yet
DEFAULT_CATEGORY_COLOR = "#8b5cf6"


def get_category_seed_rows():
    """Rows for the categories table, keyed by slug."""
    rows = []
    for slug, config in CATEGORIES.items():
        rows.append({
            "slug": slug,
            "name": config["name"],
            "description": config["description"],
            "color": config["color"],
            "icon": config["icon"],
        })
    return rows
