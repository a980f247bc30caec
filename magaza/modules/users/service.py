from supabase import Client
from magaza.core.validators import escape_like, normalize_phone, validate_username, mask_username
from magaza.modules.users.schemas import (
    UserUpdate, UserResponse, PublicUserResponse, AccountDeleteResponse,
    PurchaseResponse, FavoriteResponse, FavoriteStatusResponse,
)
from typing import List
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PURCHASE_AUTOMATION_COLUMNS = "id, title, slug, image_url, file_path, is_published, admin_approved"


class UserService:
    def __init__(self, supabase: Client, has_service_role: bool = True):
        self.supabase = supabase
        self.has_service_role = has_service_role

    def get_user_by_id(self, user_id: str) -> UserResponse:
        """Get user profile by ID"""
        try:
            result = self.supabase.table("user_profiles")\
                .select("*")\
                .eq("id", user_id)\
                .maybe_single()\
                .execute()
            if not result or not result.data:
                raise HTTPException(status_code=404, detail="Profil bulunamadı.")
            return UserResponse(**result.data)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Profile fetch failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Profil bilgisi alınamadı.")

    def get_public_profile(self, user_id: str, masked: bool = False) -> PublicUserResponse:
        profile = self.get_user_by_id(user_id)
        username = mask_username(profile.username) if masked else (profile.username or mask_username(None))
        return PublicUserResponse(
            id=profile.id,
            username=username,
            avatar_url=profile.avatar_url,
            bio=profile.bio,
            is_developer=profile.is_developer,
        )

    def update_user(self, user_id: str, user_data: UserUpdate) -> UserResponse:
        """Update own profile; phone is normalized and a new username must be unique"""
        update_data = {"updated_at": datetime.now(timezone.utc).isoformat()}
        if user_data.full_name is not None:
            update_data["full_name"] = user_data.full_name
        if user_data.avatar_url is not None:
            update_data["avatar_url"] = user_data.avatar_url
        if user_data.bio is not None:
            update_data["bio"] = user_data.bio
        if user_data.phone is not None:
            try:
                update_data["phone"] = normalize_phone(user_data.phone)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
        if user_data.username is not None:
            username_error = validate_username(user_data.username)
            if username_error:
                raise HTTPException(status_code=400, detail=username_error)
            username = user_data.username.strip()
            taken = self.supabase.table("user_profiles")\
                .select("id")\
                .ilike("username", escape_like(username))\
                .neq("id", user_id)\
                .limit(1)\
                .execute()
            if taken.data:
                raise HTTPException(status_code=400, detail="Bu kullanıcı adı zaten kullanılıyor.")
            update_data["username"] = username

        try:
            result = self.supabase.table("user_profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            if str(getattr(e, "code", "")) == "23505":
                raise HTTPException(status_code=400, detail="Bu kullanıcı adı zaten kullanılıyor.")
            logger.error(f"Profile update failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Profil güncellenemedi.")
        if not result.data:
            raise HTTPException(status_code=404, detail="Profil bulunamadı.")
        return UserResponse(**result.data[0])

    def delete_account(self, user_id: str) -> AccountDeleteResponse:
        """Delete the profile row, then the auth user when the admin API is available."""
        try:
            self.supabase.table("user_profiles")\
                .delete()\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Profile delete failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Profil silinirken bir hata oluştu.")

        if not self.has_service_role:
            return AccountDeleteResponse(
                message="Hesap silme işlemi başlatıldı. Lütfen çıkış yapın.",
                requires_sign_out=True,
            )
        try:
            self.supabase.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Auth user delete failed for {user_id}: {e}")
            return AccountDeleteResponse(
                message="Hesap silme işlemi tamamlandı. Lütfen çıkış yapın.",
                requires_sign_out=True,
            )
        return AccountDeleteResponse(message="Hesabınız başarıyla silindi.", success=True)

    def list_purchases(self, user_id: str) -> List[PurchaseResponse]:
        try:
            result = self.supabase.table("purchases")\
                .select(f"id, automation_id, price, status, purchased_at, completed_at, "
                        f"automation:automations({PURCHASE_AUTOMATION_COLUMNS})")\
                .eq("user_id", user_id)\
                .eq("status", "completed")\
                .order("purchased_at", desc=True)\
                .execute()
            return [PurchaseResponse(**p) for p in result.data or []]
        except Exception as e:
            logger.error(f"Purchase list failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Satın alımlar alınamadı.")

    def list_favorites(self, user_id: str) -> List[FavoriteResponse]:
        try:
            result = self.supabase.table("favorites")\
                .select("id, automation_id, created_at, automation:automations(*, category:categories(*))")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return [FavoriteResponse(**f) for f in result.data or []]
        except Exception as e:
            logger.error(f"Favorite list failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Favoriler alınamadı.")

    def is_favorited(self, user_id: str, automation_id: str) -> FavoriteStatusResponse:
        result = self.supabase.table("favorites")\
            .select("id")\
            .eq("user_id", user_id)\
            .eq("automation_id", automation_id)\
            .limit(1)\
            .execute()
        return FavoriteStatusResponse(automation_id=automation_id, favorited=bool(result.data))

    def add_favorite(self, user_id: str, automation_id: str) -> FavoriteStatusResponse:
        automation = self.supabase.table("automations")\
            .select("id")\
            .eq("id", automation_id)\
            .limit(1)\
            .execute()
        if not automation.data:
            raise HTTPException(status_code=404, detail="Otomasyon bulunamadı")
        if self.is_favorited(user_id, automation_id).favorited:
            return FavoriteStatusResponse(automation_id=automation_id, favorited=True)
        try:
            self.supabase.table("favorites").insert({
                "user_id": user_id,
                "automation_id": automation_id,
            }).execute()
        except Exception as e:
            # concurrent add hit the unique constraint
            if str(getattr(e, "code", "")) != "23505":
                logger.error(f"Favorite insert failed: {e}")
                raise HTTPException(status_code=500, detail="Favorilere eklenemedi.")
        return FavoriteStatusResponse(automation_id=automation_id, favorited=True)

    def remove_favorite(self, user_id: str, automation_id: str) -> None:
        try:
            self.supabase.table("favorites")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("automation_id", automation_id)\
                .execute()
        except Exception as e:
            logger.error(f"Favorite delete failed: {e}")
            raise HTTPException(status_code=500, detail="Favorilerden çıkarılamadı.")
