from pydantic import BaseModel
from typing import Optional


class NotificationPrefs(BaseModel):
    email: bool = True
    purchases: bool = True
    updates: bool = True
    sms: bool = False


class NotificationPrefsResponse(BaseModel):
    success: Optional[bool] = None
    data: NotificationPrefs
