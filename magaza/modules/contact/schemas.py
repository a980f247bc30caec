from pydantic import BaseModel
from typing import Any, Optional


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


class SendEmailRequest(BaseModel):
    to: Optional[str] = None
    from_name: Optional[str] = None
    subject: Optional[str] = None
    text: Optional[str] = None
    html: Optional[str] = None


class SendSmsRequest(BaseModel):
    # non-strings are rejected with "Invalid payload"
    to: Any = None
    message: Any = None


class MailResponse(BaseModel):
    success: bool
    message: str
    message_id: Optional[str] = None


class SmsResponse(BaseModel):
    success: bool
    sid: Optional[str] = None
