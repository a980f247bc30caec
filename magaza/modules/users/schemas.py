from pydantic import BaseModel
from typing import Optional, Dict, Any
from datetime import datetime


class UserUpdate(BaseModel):
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    username: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    is_developer: bool = False
    developer_approved: bool = False
    role: Optional[str] = None
    is_admin: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicUserResponse(BaseModel):
    id: str
    username: str
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    is_developer: bool = False


class AccountDeleteResponse(BaseModel):
    message: str
    success: bool = False
    requires_sign_out: bool = False


class PurchaseResponse(BaseModel):
    id: str
    automation_id: str
    price: Optional[float] = None
    status: str
    purchased_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    automation: Optional[Dict[str, Any]] = None


class FavoriteResponse(BaseModel):
    id: str
    automation_id: str
    created_at: Optional[datetime] = None
    automation: Optional[Dict[str, Any]] = None


class FavoriteStatusResponse(BaseModel):
    automation_id: str
    favorited: bool
