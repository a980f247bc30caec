from supabase import Client
from magaza.config.categories_config import CATEGORIES, DEFAULT_CATEGORY_COLOR
from magaza.core.validators import is_uuid, slugify_title
from magaza.modules.categories.schemas import CategoryResponse, CategoryStatsResponse
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
import time
import logging

logger = logging.getLogger(__name__)

# Process-wide cache for the storefront category cards
_STATS_CACHE: Dict[str, tuple] = {}
_STATS_CACHE_TTL_SEC = 300


def invalidate_category_stats_cache():
    _STATS_CACHE.clear()


class CategoryService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_categories(self) -> List[CategoryResponse]:
        try:
            result = self.supabase.table("categories")\
                .select("*")\
                .order("name")\
                .execute()
            return [CategoryResponse(**c) for c in result.data or []]
        except Exception as e:
            logger.error(f"Category list failed: {e}")
            raise HTTPException(status_code=500, detail="Kategoriler alınamadı.")

    def get_stats(self) -> List[CategoryStatsResponse]:
        """Per-category counts over published, approved automations. Cached for five minutes."""
        now = time.monotonic()
        cached = _STATS_CACHE.get("stats")
        if cached and now < cached[1]:
            return cached[0]

        categories = self.supabase.table("categories")\
            .select("*")\
            .order("name")\
            .execute()
        try:
            automations = self.supabase.table("automations")\
                .select("id, category_id, total_sales, rating_avg")\
                .eq("is_published", True)\
                .eq("admin_approved", True)\
                .execute().data or []
        except Exception as e:
            logger.warning(f"Automation stats query failed, using empty list: {e}")
            automations = []

        by_category: Dict[str, List[Dict[str, Any]]] = {}
        for automation in automations:
            if automation.get("category_id"):
                by_category.setdefault(automation["category_id"], []).append(automation)

        stats = []
        for category in categories.data or []:
            items = by_category.get(category["id"], [])
            count = len(items)
            total_sales = sum(a.get("total_sales") or 0 for a in items)
            if count:
                avg_rating = "%.1f" % (sum(float(a.get("rating_avg") or 0) for a in items) / count)
            else:
                avg_rating = "0.0"
            style = CATEGORIES.get(category.get("slug"), {})
            row = {
                **category,
                "icon": category.get("icon") or style.get("icon"),
                "gradient": category.get("gradient") or style.get("gradient"),
            }
            stats.append(CategoryStatsResponse(
                **row,
                automation_count=count,
                total_sales=total_sales,
                avg_rating=avg_rating,
                weekly_sales_count=0,
            ))

        _STATS_CACHE["stats"] = (stats, now + _STATS_CACHE_TTL_SEC)
        return stats

    def resolve_category_id(self, value: Optional[str]) -> Optional[str]:
        """Accept a category id or slug. Unknown slugs create the category, unknown ids are rejected."""
        if not value:
            return None
        value = value.strip()
        if is_uuid(value):
            by_id = self.supabase.table("categories")\
                .select("id")\
                .eq("id", value)\
                .limit(1)\
                .execute()
            if by_id.data:
                return by_id.data[0]["id"]
            raise HTTPException(status_code=400, detail="Kategori bulunamadı.")

        slug = slugify_title(value)
        by_slug = self.supabase.table("categories")\
            .select("id")\
            .eq("slug", slug)\
            .limit(1)\
            .execute()
        if by_slug.data:
            return by_slug.data[0]["id"]

        config = CATEGORIES.get(slug, {})
        created = self.supabase.table("categories").insert({
            "name": config.get("name") or value.replace("-", " ").title(),
            "slug": slug,
            "description": config.get("description"),
            "color": config.get("color", DEFAULT_CATEGORY_COLOR),
        }).execute()
        if not created.data:
            raise HTTPException(status_code=500, detail="Kategori oluşturulamadı.")
        logger.info(f"Created category {slug}")
        invalidate_category_stats_cache()
        return created.data[0]["id"]