from fastapi import APIRouter, Depends
from magaza.database.supabase_client import get_service_supabase, SupabaseClient
from magaza.modules.users.schemas import (
    UserUpdate, UserResponse, PublicUserResponse, AccountDeleteResponse,
    PurchaseResponse, FavoriteResponse, FavoriteStatusResponse,
)
from magaza.modules.users.service import UserService
from magaza.core.dependencies import get_current_user
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(supabase: Client = Depends(get_service_supabase)) -> UserService:
    return UserService(supabase, has_service_role=SupabaseClient.has_service_role())


@router.get("/me/profile", response_model=UserResponse)
async def get_my_profile(
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.get_user_by_id(user_data["id"])


@router.put("/me/profile", response_model=UserResponse)
async def update_my_profile(
    body: UserUpdate,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.update_user(user_data["id"], body)


@router.delete("/me", response_model=AccountDeleteResponse)
async def delete_my_account(
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    """Delete profile and auth user. Clients sign out when requires_sign_out is set."""
    return service.delete_account(user_data["id"])


@router.get("/me/purchases", response_model=List[PurchaseResponse])
async def list_my_purchases(
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.list_purchases(user_data["id"])


@router.get("/me/favorites", response_model=List[FavoriteResponse])
async def list_my_favorites(
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.list_favorites(user_data["id"])


@router.get("/me/favorites/{automation_id}", response_model=FavoriteStatusResponse)
async def favorite_status(
    automation_id: str,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.is_favorited(user_data["id"], automation_id)


@router.post("/me/favorites/{automation_id}", response_model=FavoriteStatusResponse, status_code=201)
async def add_favorite(
    automation_id: str,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    return service.add_favorite(user_data["id"], automation_id)


@router.delete("/me/favorites/{automation_id}", status_code=204)
async def remove_favorite(
    automation_id: str,
    user_data: Dict = Depends(get_current_user),
    service: UserService = Depends(get_user_service)
):
    service.remove_favorite(user_data["id"], automation_id)
    return None


@router.get("/{user_id}/public", response_model=PublicUserResponse)
async def get_public_profile(
    user_id: str,
    masked: bool = False,
    service: UserService = Depends(get_user_service)
):
    """Public developer/buyer card; masked=true hides most of the username"""
    return service.get_public_profile(user_id, masked=masked)
