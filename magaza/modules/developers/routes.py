from fastapi import APIRouter, Depends
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.developers.schemas import (
    DeveloperRegisterRequest, DeveloperRegisterResponse, PaymentInfo, PaymentInfoUpdate,
    StripeConnectRequest, StripeConnectResponse, StripeStatusResponse, EarningsResponse,
)
from magaza.modules.developers.service import DeveloperService
from magaza.core.dependencies import get_current_user, require_developer_account
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/developers", tags=["developers"])


def get_developer_service(supabase: Client = Depends(get_service_supabase)) -> DeveloperService:
    return DeveloperService(supabase)


@router.post("/register", response_model=DeveloperRegisterResponse)
async def register_developer(
    body: DeveloperRegisterRequest,
    user_data: Dict = Depends(get_current_user),
    service: DeveloperService = Depends(get_developer_service)
):
    """Turn the account into a developer account once the agreement is accepted"""
    return service.register(user_data["id"], body.agreed)


@router.get("/payment-info", response_model=PaymentInfo)
async def get_payment_info(
    user_data: Dict = Depends(require_developer_account),
    service: DeveloperService = Depends(get_developer_service)
):
    return service.get_payment_info(user_data["id"])


@router.put("/payment-info", response_model=PaymentInfo)
async def update_payment_info(
    body: PaymentInfoUpdate,
    user_data: Dict = Depends(require_developer_account),
    service: DeveloperService = Depends(get_developer_service)
):
    return service.update_payment_info(user_data["id"], body)


@router.post("/stripe/connect", response_model=StripeConnectResponse)
async def connect_stripe(
    body: StripeConnectRequest,
    user_data: Dict = Depends(require_developer_account),
    service: DeveloperService = Depends(get_developer_service)
):
    return service.connect_stripe(user_data["id"], user_data.get("email"), body)


@router.get("/stripe/status", response_model=StripeStatusResponse)
async def stripe_status(
    user_data: Dict = Depends(require_developer_account),
    service: DeveloperService = Depends(get_developer_service)
):
    return service.stripe_status(user_data["id"])


@router.get("/earnings", response_model=EarningsResponse)
async def earnings(
    user_data: Dict = Depends(require_developer_account),
    service: DeveloperService = Depends(get_developer_service)
):
    return service.earnings(user_data["id"])
