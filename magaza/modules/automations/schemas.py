from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any, Union
from datetime import datetime


class AutomationBase(BaseModel):
    title: str
    description: Optional[str] = None
    long_description: Optional[str] = None
    price: Union[float, str]
    category_id: Optional[str] = None
    image_path: Optional[str] = None
    image_url: Optional[str] = None
    file_path: Optional[str] = None
    demo_url: Optional[str] = None
    documentation: Optional[str] = None
    tags: Optional[Union[List[str], str]] = None
    is_published: bool = False

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Başlık gereklidir")
        return v.strip()


class AutomationCreate(AutomationBase):
    pass


class AutomationUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    long_description: Optional[str] = None
    price: Optional[Union[float, str]] = None
    category_id: Optional[str] = None
    image_path: Optional[str] = None
    image_url: Optional[str] = None
    file_path: Optional[str] = None
    demo_url: Optional[str] = None
    documentation: Optional[str] = None
    tags: Optional[Union[List[str], str]] = None
    is_published: Optional[bool] = None


class AutomationResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    developer_id: Optional[str] = None
    title: str
    slug: str
    description: Optional[str] = None
    long_description: Optional[str] = None
    price: float = 0
    image_url: Optional[str] = None
    image_path: Optional[str] = None
    tags: Optional[List[str]] = None
    total_sales: int = 0
    rating_avg: Optional[float] = None
    rating_count: Optional[int] = None
    is_published: bool = False
    admin_approved: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[Dict[str, Any]] = None
    developer: Optional[Dict[str, Any]] = None


class InitialDataResponse(BaseModel):
    automations: List[Dict[str, Any]]
    categories: List[Dict[str, Any]]
    debug: Dict[str, Any]


class FileUploadResponse(BaseModel):
    automation_id: str
    file_path: str
    message: str


class DownloadResponse(BaseModel):
    automation_id: str
    url: str
    file_name: str
    expires_in: int


class PurchasedResponse(BaseModel):
    automation_id: str
    purchased: bool


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    automation_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user: Optional[Dict[str, Any]] = None
