from pydantic import BaseModel
from typing import Optional, Dict, Any


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    username: str
    full_name: Optional[str] = None
    phone: Optional[str] = None


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class PasswordResetRequest(BaseModel):
    email: str = ""


class PasswordUpdateRequest(BaseModel):
    password: str = ""


class CheckEmailRequest(BaseModel):
    email: Optional[str] = None


class CheckEmailResponse(BaseModel):
    available: bool
    email: str
    message: str


class CheckUsernameResponse(BaseModel):
    available: bool
    username: str
    message: str


class CreateProfileRequest(BaseModel):
    username: str = ""
    full_name: Optional[str] = None
    phone: Optional[str] = None


class EnsureUsernameResponse(BaseModel):
    success: bool = True
    username: str
    message: str


class MeResponse(BaseModel):
    user: Dict[str, Any]
    profile: Optional[Dict[str, Any]] = None
    is_admin: bool = False


class OAuthUrlResponse(BaseModel):
    provider: str
    url: str
