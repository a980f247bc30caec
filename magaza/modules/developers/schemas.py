from pydantic import BaseModel, Field, AliasChoices
from typing import Optional, List, Dict, Any


class DeveloperRegisterRequest(BaseModel):
    agreed: bool = False


class DeveloperRegisterResponse(BaseModel):
    success: bool
    already_developer: bool = False
    message: str


class PaymentInfo(BaseModel):
    full_name: Optional[str] = None
    tc_no: Optional[str] = None
    tax_office: Optional[str] = None
    iban: Optional[str] = None
    bank_name: Optional[str] = None


class PaymentInfoUpdate(BaseModel):
    full_name: str = ""
    tc_no: str = ""
    tax_office: str = ""
    iban: str = ""


class StripeConnectRequest(BaseModel):
    refresh_url: Optional[str] = Field(None, validation_alias=AliasChoices("refresh_url", "refreshUrl"))
    return_url: Optional[str] = Field(None, validation_alias=AliasChoices("return_url", "returnUrl"))


class StripeConnectResponse(BaseModel):
    stripe_account_id: str
    onboarding_url: Optional[str] = None
    onboarding_complete: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False


class StripeStatusResponse(BaseModel):
    connected: bool
    stripe_account_id: Optional[str] = None
    onboarding_complete: bool = False
    charges_enabled: bool = False
    payouts_enabled: bool = False
    details_submitted: Optional[bool] = None
    updated_at: Optional[str] = None


class EarningsResponse(BaseModel):
    total_products: int
    total_sales: int
    gross: float
    platform_commission: float
    net: float
    sales: List[Dict[str, Any]]
