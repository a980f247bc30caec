from fastapi import APIRouter, Depends
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.admin.schemas import (
    ApprovalRequest, SuccessResponse, CheckStatusResponse, RestoreUserRequest,
    RestoreUserResponse, DashboardResponse,
)
from magaza.modules.admin.service import AdminService
from magaza.core.dependencies import get_current_user, require_admin
from supabase import Client
from typing import List, Dict, Any

router = APIRouter(prefix="/admin", tags=["admin"])


def get_admin_service(supabase: Client = Depends(get_service_supabase)) -> AdminService:
    return AdminService(supabase)


@router.get("/automations/pending", response_model=List[Dict[str, Any]])
async def pending_automations(
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.list_pending()


@router.post("/automations/{automation_id}", response_model=SuccessResponse)
async def approve_automation(
    automation_id: str,
    body: ApprovalRequest,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    """Approve (`approved: true`) or reject an automation through the moderation RPCs"""
    return service.set_automation_approval(automation_id, body.approved, user_data["id"])


@router.delete("/automations/{automation_id}", response_model=SuccessResponse)
async def delete_automation(
    automation_id: str,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.delete_automation(automation_id, user_data["id"])


@router.post("/developers/{user_id}/approve")
async def approve_developer(
    user_id: str,
    body: ApprovalRequest,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.set_developer_approval(user_id, body.approved)


@router.get("/check-status", response_model=CheckStatusResponse)
async def check_status(
    user_data: Dict = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service)
):
    """Explains why the caller is or is not treated as an admin"""
    return service.check_status(user_data)


@router.post("/restore-user", response_model=RestoreUserResponse)
async def restore_user(
    body: RestoreUserRequest,
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.restore_user(body.email)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    user_data: Dict = Depends(require_admin),
    service: AdminService = Depends(get_admin_service)
):
    return service.dashboard()
