from fastapi import APIRouter, Depends, Request
from magaza.config import settings
from magaza.core.dependencies import require_admin
from magaza.core.rate_limit import limiter
from magaza.modules.contact.schemas import (
    ContactRequest, SendEmailRequest, SendSmsRequest, MailResponse, SmsResponse,
)
from magaza.modules.contact.service import ContactService
from typing import Dict

router = APIRouter(prefix="/contact", tags=["contact"])


def get_contact_service() -> ContactService:
    return ContactService()


@router.post("", response_model=MailResponse)
@limiter.limit(settings.contact_rate_limit)
async def submit_contact_form(
    request: Request,
    form: ContactRequest,
    service: ContactService = Depends(get_contact_service)
):
    """Public contact form, delivered to the site inbox with Reply-To set to the sender"""
    return service.submit(form)


@router.post("/send-email", response_model=MailResponse)
async def send_email(
    body: SendEmailRequest,
    user_data: Dict = Depends(require_admin),
    service: ContactService = Depends(get_contact_service)
):
    return service.send_email(body)


@router.post("/send-sms", response_model=SmsResponse)
async def send_sms(
    body: SendSmsRequest,
    user_data: Dict = Depends(require_admin),
    service: ContactService = Depends(get_contact_service)
):
    return service.send_sms(body)
