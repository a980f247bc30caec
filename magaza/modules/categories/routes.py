from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.categories.schemas import CategoryResponse, CategoryStatsResponse
from magaza.modules.categories.service import CategoryService
from supabase import Client
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])


def get_category_service(supabase: Client = Depends(get_service_supabase)) -> CategoryService:
    return CategoryService(supabase)


@router.get("", response_model=List[CategoryResponse])
async def list_categories(service: CategoryService = Depends(get_category_service)):
    return service.list_categories()


@router.get("/stats", response_model=List[CategoryStatsResponse])
async def category_stats(service: CategoryService = Depends(get_category_service)):
    """Category cards for the storefront; an empty list with 500 when the database is unreachable."""
    try:
        return service.get_stats()
    except Exception as e:
        logger.error(f"Category stats failed: {e}")
        return JSONResponse(status_code=500, content=[])
