"""
Seed Categories Script
Upserts the storefront categories from config by slug.
Run with: python -m magaza.scripts.seed_categories
"""

import sys
import logging
from typing import Tuple

from supabase import Client

from magaza.config.categories_config import get_category_seed_rows
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.categories.service import invalidate_category_stats_cache

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_categories(supabase: Client) -> Tuple[int, int]:
    """Create missing categories and refresh existing ones. Returns (created, updated)."""
    created_count = 0
    updated_count = 0

    for row in get_category_seed_rows():
        try:
            existing = supabase.table("categories")\
                .select("id")\
                .eq("slug", row["slug"])\
                .execute()

            if existing.data:
                supabase.table("categories")\
                    .update({k: v for k, v in row.items() if k != "slug"})\
                    .eq("slug", row["slug"])\
                    .execute()
                updated_count += 1
                logger.debug(f"Updated category: {row['slug']}")
            else:
                supabase.table("categories").insert(row).execute()
                created_count += 1
                logger.debug(f"Created category: {row['slug']}")
        except Exception as e:
            logger.error(f"Error processing category {row['slug']}: {e}")

    invalidate_category_stats_cache()
    logger.info(f"Categories seeded: {created_count} created, {updated_count} updated")
    return created_count, updated_count


def main():
    try:
        seed_categories(get_service_supabase())
    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
