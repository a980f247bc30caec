from pydantic import BaseModel, StrictBool
from typing import Optional, List, Dict, Any


class ApprovalRequest(BaseModel):
    approved: StrictBool


class SuccessResponse(BaseModel):
    success: bool = True


class AdminCheck(BaseModel):
    is_admin_email: bool
    profile_role: Optional[str] = None
    profile_is_admin: Optional[bool] = None
    final_is_admin: bool


class CheckStatusResponse(BaseModel):
    authenticated: bool
    user: Dict[str, Any]
    profile: Optional[Dict[str, Any]] = None
    admin_check: AdminCheck
    profile_error: Optional[Dict[str, Any]] = None


class RestoreUserRequest(BaseModel):
    email: Optional[str] = None


class RestoreUserResponse(BaseModel):
    success: bool
    user: Dict[str, Any]
    profile: Dict[str, Any]
    automations: Dict[str, Any]


class DashboardResponse(BaseModel):
    users: int
    developers: int
    pending_developers: int
    automations: int
    pending_automations: int
    completed_purchases: int
    revenue: float
    platform_earnings: float
    recent_purchases: List[Dict[str, Any]]
