from supabase import Client
from magaza.modules.notifications.schemas import NotificationPrefs, NotificationPrefsResponse
from typing import Any, Dict
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_PREFS: Dict[str, bool] = {
    "email": True,
    "purchases": True,
    "updates": True,
    "sms": False,
}

# PostgREST "no rows" for a single-row read
NO_ROWS_CODES = ("PGRST116", "204")


def sanitize_prefs(prefs: Any = None) -> NotificationPrefs:
    """Known keys with boolean values are kept; everything else falls back to the default"""
    if not isinstance(prefs, dict):
        prefs = {}
    return NotificationPrefs(**{
        key: prefs[key] if isinstance(prefs.get(key), bool) else default
        for key, default in DEFAULT_NOTIFICATION_PREFS.items()
    })


class NotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_prefs(self, user_id: str) -> NotificationPrefsResponse:
        try:
            result = self.supabase.table("notification_prefs")\
                .select("email, purchases, updates, sms")\
                .eq("user_id", user_id)\
                .maybe_single()\
                .execute()
            row = result.data if result else None
        except Exception as e:
            if str(getattr(e, "code", "")) not in NO_ROWS_CODES:
                logger.error(f"Notification prefs read failed for {user_id}: {e}")
                raise HTTPException(status_code=500, detail="Tercihler alınamadı")
            row = None
        return NotificationPrefsResponse(data=sanitize_prefs(row))

    def save_prefs(self, user_id: str, body: Any) -> NotificationPrefsResponse:
        prefs = sanitize_prefs(body)
        try:
            self.supabase.table("notification_prefs")\
                .upsert({"user_id": user_id, **prefs.model_dump()}, on_conflict="user_id")\
                .execute()
        except Exception as e:
            logger.error(f"Notification prefs save failed for {user_id}: {e}")
            raise HTTPException(status_code=500, detail="Tercihler kaydedilemedi")
        return NotificationPrefsResponse(success=True, data=prefs)
