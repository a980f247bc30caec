from fastapi import APIRouter, Depends, UploadFile, File
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.storage.service import StorageService, AUTOMATION_FILES_BUCKET, AVATAR_BUCKET
from magaza.core.dependencies import get_current_user, require_admin
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/storage", tags=["storage"])


def get_storage_service(supabase: Client = Depends(get_service_supabase)) -> StorageService:
    return StorageService(supabase)


@router.post("/automation-files")
async def ensure_automation_files_bucket(
    user_data: Dict = Depends(require_admin),
    service: StorageService = Depends(get_storage_service)
):
    """Create or refresh the bucket that holds downloadable automation files"""
    return service.ensure_bucket(AUTOMATION_FILES_BUCKET)


@router.post("/profile-avatars")
async def ensure_avatar_bucket(
    user_data: Dict = Depends(require_admin),
    service: StorageService = Depends(get_storage_service)
):
    return service.ensure_bucket(AVATAR_BUCKET)


@router.post("/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user),
    service: StorageService = Depends(get_storage_service)
):
    avatar_url = await service.upload_avatar(user_data["id"], file)
    return {"success": True, "avatar_url": avatar_url}
