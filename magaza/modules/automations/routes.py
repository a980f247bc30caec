from fastapi import APIRouter, Depends, Response, UploadFile, File
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.automations.schemas import (
    AutomationCreate, AutomationUpdate, AutomationResponse, InitialDataResponse,
    FileUploadResponse, DownloadResponse, PurchasedResponse, ReviewCreate, ReviewResponse,
)
from magaza.modules.automations.service import AutomationService, ReviewService
from magaza.core.dependencies import get_current_user, get_current_profile, is_admin_user, require_developer
from supabase import Client
from typing import List, Optional, Dict, Any

router = APIRouter(prefix="/automations", tags=["automations"])


def get_automation_service(supabase: Client = Depends(get_service_supabase)) -> AutomationService:
    return AutomationService(supabase)


def get_review_service(supabase: Client = Depends(get_service_supabase)) -> ReviewService:
    return ReviewService(supabase)


@router.get("", response_model=List[Dict[str, Any]])
async def list_automations(
    category: Optional[str] = None,
    service: AutomationService = Depends(get_automation_service)
):
    """Storefront listing; `category` is a category slug"""
    return service.list_automations(category=category)


@router.post("", response_model=AutomationResponse, status_code=201)
async def create_automation(
    automation_data: AutomationCreate,
    user_data: Dict = Depends(require_developer),
    service: AutomationService = Depends(get_automation_service)
):
    return service.create_automation(automation_data, user_data["id"])


@router.get("/initial", response_model=InitialDataResponse)
async def initial_data(
    response: Response,
    service: AutomationService = Depends(get_automation_service)
):
    """Automations and categories for the first storefront render"""
    response.headers["Cache-Control"] = "no-store"
    return service.get_initial_data()


@router.get("/mine", response_model=List[AutomationResponse])
async def list_my_automations(
    user_data: Dict = Depends(require_developer),
    service: AutomationService = Depends(get_automation_service)
):
    return service.list_mine(user_data["id"])


@router.get("/{automation_id}/reviews", response_model=List[ReviewResponse])
async def list_reviews(
    automation_id: str,
    service: ReviewService = Depends(get_review_service)
):
    return service.list_reviews(automation_id)


@router.post("/{automation_id}/reviews", response_model=ReviewResponse, status_code=201)
async def create_review(
    automation_id: str,
    review_data: ReviewCreate,
    user_data: Dict = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service)
):
    """Only buyers with a completed purchase can review, once per automation"""
    return service.create_review(automation_id, user_data["id"], review_data)


@router.get("/{automation_id}/purchased", response_model=PurchasedResponse)
async def purchased(
    automation_id: str,
    user_data: Dict = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service)
):
    return service.purchased_status(user_data["id"], automation_id)


@router.get("/{automation_id}/download", response_model=DownloadResponse)
async def download(
    automation_id: str,
    user_data: Dict = Depends(get_current_user),
    profile: Optional[Dict] = Depends(get_current_profile),
    service: AutomationService = Depends(get_automation_service)
):
    return service.create_download(
        user_data["id"], automation_id, is_admin=is_admin_user(user_data, profile)
    )


@router.post("/{automation_id}/file", response_model=FileUploadResponse)
async def upload_automation_file(
    automation_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(require_developer),
    service: AutomationService = Depends(get_automation_service)
):
    return await service.upload_file(automation_id, user_data["id"], file)


@router.put("/{automation_id}", response_model=AutomationResponse)
async def update_automation(
    automation_id: str,
    automation_data: AutomationUpdate,
    user_data: Dict = Depends(require_developer),
    service: AutomationService = Depends(get_automation_service)
):
    return service.update_automation(automation_id, automation_data, user_data["id"])


@router.delete("/{automation_id}", status_code=204)
async def delete_automation(
    automation_id: str,
    user_data: Dict = Depends(require_developer),
    service: AutomationService = Depends(get_automation_service)
):
    service.delete_automation(automation_id, user_data["id"])
    return None


@router.get("/{slug}", response_model=AutomationResponse)
async def get_automation(
    slug: str,
    service: AutomationService = Depends(get_automation_service)
):
    return service.get_by_slug(slug)
