from supabase import Client
from magaza.core.dependencies import is_admin_email, is_admin_user
from magaza.core.errors import get_error_category, get_error_message
from magaza.core.validators import is_uuid, normalize_email, validate_email
from magaza.modules.admin.schemas import (
    SuccessResponse, AdminCheck, CheckStatusResponse, RestoreUserResponse, DashboardResponse,
)
from magaza.modules.categories.service import invalidate_category_stats_cache
from magaza.modules.payments.fees import money, to_decimal
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

# PostgREST default max-rows
PAGE_SIZE = 1000


def _validation_error(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=get_error_message(ValueError(message), "validation"))


def _check_automation_id(automation_id: str):
    if not automation_id or automation_id in ("undefined", "null"):
        raise _validation_error("Invalid automation ID")
    if not is_uuid(automation_id):
        raise _validation_error("Invalid UUID format")


class AdminService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    # Moderation

    def set_automation_approval(self, automation_id: str, approved: bool, admin_id: str) -> SuccessResponse:
        _check_automation_id(automation_id)

        rpc_name = "approve_automation" if approved else "reject_automation"
        try:
            self.supabase.rpc(rpc_name, {"automation_id": automation_id, "admin_id": admin_id}).execute()
        except Exception as e:
            logger.error(f"RPC {rpc_name} failed for {automation_id}: {e}")
            raise HTTPException(
                status_code=400,
                detail=get_error_message(e, get_error_category(e), "Automation update")
            )
        invalidate_category_stats_cache()
        logger.info(f"{rpc_name} {automation_id} by admin {admin_id}")
        return SuccessResponse()

    def delete_automation(self, automation_id: str, admin_id: str) -> SuccessResponse:
        _check_automation_id(automation_id)
        try:
            self.supabase.table("automations").delete().eq("id", automation_id).execute()
        except Exception as e:
            logger.error(f"Automation delete failed for {automation_id}: {e}")
            raise HTTPException(
                status_code=400,
                detail=get_error_message(e, get_error_category(e), "Automation deletion")
            )
        invalidate_category_stats_cache()
        logger.info(f"Automation {automation_id} deleted by admin {admin_id}")
        return SuccessResponse()

    def list_pending(self):
        result = self.supabase.table("automations")\
            .select("*, category:categories(id,name,slug), developer:user_profiles(id,username,email)")\
            .eq("admin_approved", False)\
            .order("created_at", desc=True)\
            .execute()
        return result.data or []

    def set_developer_approval(self, user_id: str, approved: bool) -> Dict[str, Any]:
        result = self.supabase.table("user_profiles")\
            .update({"developer_approved": approved, "updated_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Profil bulunamadı.")
        logger.info(f"Developer {user_id} approval set to {approved}")
        return {"success": True, "developer_approved": approved}

    # Diagnostics

    def check_status(self, user_data: Dict[str, Any]) -> CheckStatusResponse:
        profile: Optional[Dict[str, Any]] = None
        profile_error = None
        try:
            result = self.supabase.table("user_profiles")\
                .select("id, username, role, is_admin, email")\
                .eq("id", user_data["id"])\
                .maybe_single()\
                .execute()
            profile = result.data if result else None
        except Exception as e:
            profile_error = {"message": str(e), "code": getattr(e, "code", None)}

        return CheckStatusResponse(
            authenticated=True,
            user={
                "id": user_data["id"],
                "email": user_data.get("email"),
                "email_confirmed": bool(user_data.get("email_confirmed_at")),
            },
            profile=profile,
            admin_check=AdminCheck(
                is_admin_email=is_admin_email(user_data.get("email")),
                profile_role=(profile or {}).get("role"),
                profile_is_admin=(profile or {}).get("is_admin"),
                final_is_admin=is_admin_user(user_data, profile),
            ),
            profile_error=profile_error,
        )

    def restore_user(self, email: Optional[str]) -> RestoreUserResponse:
        """Recreate or repair the profile of an existing auth user as an admin developer"""
        email_error = validate_email(email)
        if email_error:
            raise HTTPException(status_code=400, detail=email_error)
        email = normalize_email(email)

        try:
            users = self.supabase.auth.admin.list_users()
        except Exception as e:
            logger.error(f"Failed to list users: {e}")
            raise HTTPException(
                status_code=500,
                detail=get_error_message(e, get_error_category(e), "Kullanıcı geri getirme işlemi başarısız oldu")
            )
        target = next((u for u in users if (u.email or "").lower() == email), None)
        if not target:
            raise HTTPException(
                status_code=404,
                detail="Kullanıcı auth.users tablosunda bulunamadı. Önce Supabase Dashboard'dan kullanıcıyı oluşturun."
            )

        admin_flags = {
            "is_developer": True,
            "developer_approved": True,
            "role": "admin",
            "is_admin": True,
            "email": email,
        }
        existing = self.supabase.table("user_profiles")\
            .select("id")\
            .eq("id", target.id)\
            .maybe_single()\
            .execute()
        try:
            if existing and existing.data:
                result = self.supabase.table("user_profiles")\
                    .update({**admin_flags, "updated_at": datetime.now(timezone.utc).isoformat()})\
                    .eq("id", target.id)\
                    .execute()
                logger.info(f"Profile restored (updated) for {target.id}")
            else:
                result = self.supabase.table("user_profiles").insert({
                    "id": target.id,
                    "username": email.split("@")[0],
                    "full_name": "Kullanıcı",
                    **admin_flags,
                }).execute()
                logger.info(f"Profile restored (created) for {target.id}")
        except Exception as e:
            logger.error(f"Profile restore failed for {target.id}: {e}")
            raise HTTPException(
                status_code=500,
                detail=get_error_message(e, get_error_category(e), "Kullanıcı geri getirme işlemi başarısız oldu")
            )
        profile = result.data[0] if result.data else {"id": target.id, **admin_flags}

        try:
            automations = self.supabase.table("automations")\
                .select("id, title, slug, is_published, admin_approved, created_at")\
                .eq("developer_id", target.id)\
                .order("created_at", desc=True)\
                .execute().data or []
        except Exception as e:
            logger.warning(f"Automation fetch failed for {target.id}: {e}")
            automations = []

        return RestoreUserResponse(
            success=True,
            user={
                "id": target.id,
                "email": email,
                "email_confirmed": bool(getattr(target, "email_confirmed_at", None)),
            },
            profile=profile,
            automations={"total": len(automations), "list": automations},
        )

    # Overview

    def _count(self, table: str, **filters) -> int:
        query = self.supabase.table(table).select("id", count="exact")
        for column, value in filters.items():
            query = query.eq(column, value)
        result = query.execute()
        return result.count if result.count is not None else len(result.data or [])

    @staticmethod
    def _select_all(build_query: Callable) -> List[Dict[str, Any]]:
        """Read every row of a select page by page; each response is capped at the server's max-rows."""
        rows: List[Dict[str, Any]] = []
        while True:
            page = build_query().range(len(rows), len(rows) + PAGE_SIZE - 1).execute().data or []
            if not page:
                return rows
            rows.extend(page)

    def dashboard(self) -> DashboardResponse:
        completed = self._select_all(
            lambda: self.supabase.table("purchases")
            .select("id, automation_id, user_id, price, platform_commission, completed_at")
            .eq("status", "completed")
            .order("completed_at", desc=True)
        )
        earnings = self._select_all(lambda: self.supabase.table("platform_earnings").select("amount").order("id"))

        revenue = sum((to_decimal(p.get("price") or 0) for p in completed), to_decimal(0))
        platform_total = sum((to_decimal(e.get("amount") or 0) for e in earnings), to_decimal(0))

        return DashboardResponse(
            users=self._count("user_profiles"),
            developers=self._count("user_profiles", is_developer=True),
            pending_developers=self._count("user_profiles", is_developer=True, developer_approved=False),
            automations=self._count("automations"),
            pending_automations=self._count("automations", admin_approved=False),
            completed_purchases=len(completed),
            revenue=money(revenue),
            platform_earnings=money(platform_total),
            recent_purchases=completed[:10],
        )
