from fastapi import APIRouter, Depends, HTTPException, Request
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.notifications.schemas import NotificationPrefsResponse
from magaza.modules.notifications.service import NotificationService
from magaza.core.dependencies import get_optional_user
from supabase import Client
from typing import Optional, Dict
import json

router = APIRouter(prefix="/notification-preferences", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_service_supabase)) -> NotificationService:
    return NotificationService(supabase)


def require_user(user_data: Optional[Dict] = Depends(get_optional_user)) -> Dict:
    if not user_data:
        raise HTTPException(status_code=401, detail="Yetkisiz erişim")
    return user_data


@router.get("", response_model=NotificationPrefsResponse, response_model_exclude_none=True)
async def get_preferences(
    user_data: Dict = Depends(require_user),
    service: NotificationService = Depends(get_notification_service)
):
    """Stored preferences, or the defaults when the user never saved any"""
    return service.get_prefs(user_data["id"])


@router.put("", response_model=NotificationPrefsResponse, response_model_exclude_none=True)
async def save_preferences(
    request: Request,
    user_data: Dict = Depends(require_user),
    service: NotificationService = Depends(get_notification_service)
):
    try:
        body = json.loads(await request.body())
    except ValueError:
        raise HTTPException(status_code=400, detail="Geçersiz istek gövdesi")
    return service.save_prefs(user_data["id"], body)
