from fastapi import APIRouter, Depends, Request, Header
from magaza.database.supabase_client import get_service_supabase
from magaza.modules.payments.schemas import (
    CheckoutRequest, CheckoutResponse, CartCheckoutRequest, CartCheckoutResponse,
    GuestCheckoutRequest, GuestCheckoutResponse, WebhookResponse,
)
from magaza.modules.payments.service import PaymentService
from magaza.modules.payments.webhook import WebhookService
from magaza.core.dependencies import get_current_user
from supabase import Client
from typing import Optional, Dict

router = APIRouter(prefix="/payments", tags=["payments"])


def get_payment_service(supabase: Client = Depends(get_service_supabase)) -> PaymentService:
    return PaymentService(supabase)


def get_webhook_service(supabase: Client = Depends(get_service_supabase)) -> WebhookService:
    return WebhookService(supabase)


@router.post("/checkout", response_model=CheckoutResponse)
async def checkout(
    body: CheckoutRequest,
    user_data: Dict = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    """Start a single-item payment; the client confirms it with the returned client_secret"""
    return service.create_checkout(body.automation_id, user_data["id"])


@router.post("/cart-checkout", response_model=CartCheckoutResponse)
async def cart_checkout(
    body: CartCheckoutRequest,
    user_data: Dict = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service)
):
    return service.create_cart_checkout(body.automation_ids, user_data["id"], user_data.get("email"))


@router.post("/guest-checkout", response_model=GuestCheckoutResponse)
async def guest_checkout(
    body: GuestCheckoutRequest,
    service: PaymentService = Depends(get_payment_service)
):
    return service.create_guest_order(body)


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    service: WebhookService = Depends(get_webhook_service)
):
    """Stripe events; the raw body is needed for signature verification"""
    payload = await request.body()
    return service.handle(payload, stripe_signature or "")
