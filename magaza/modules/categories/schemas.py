from pydantic import BaseModel, ConfigDict
from typing import Optional


class CategoryResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class CategoryStatsResponse(CategoryResponse):
    gradient: Optional[str] = None
    automation_count: int = 0
    total_sales: int = 0
    avg_rating: str = "0.0"
    weekly_sales_count: int = 0
