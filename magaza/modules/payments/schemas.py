from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional, List, Dict, Any


class CheckoutRequest(BaseModel):
    automation_id: str = Field(..., validation_alias=AliasChoices("automation_id", "automationId"))


class CheckoutResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: float
    currency: str = "TRY"
    platform_fee: float
    developer_earnings: float


class CartCheckoutRequest(BaseModel):
    automation_ids: List[str] = Field(
        ..., min_length=1, validation_alias=AliasChoices("automation_ids", "automationIds")
    )


class CartCheckoutResponse(BaseModel):
    session_id: str
    checkout_url: Optional[str] = None
    amount: float
    currency: str = "TRY"
    platform_fee: float
    developer_earnings: float
    automation_ids: List[str]


class GuestCartItem(BaseModel):
    id: str
    price: float = Field(..., ge=0)


class GuestCustomerInfo(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class GuestCheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: Optional[List[GuestCartItem]] = None
    customer_info: Optional[GuestCustomerInfo] = Field(
        None, validation_alias=AliasChoices("customer_info", "customerInfo")
    )


class GuestCheckoutResponse(BaseModel):
    success: bool
    order_id: Optional[str] = None
    orders: List[Dict[str, Any]]
    subtotal: float
    tax: float
    total: float
    message: str


class WebhookResponse(BaseModel):
    received: bool
    event: str
