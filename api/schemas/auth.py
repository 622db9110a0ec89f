"""
Auth Schemas
Pydantic models for sign-up, sign-in and the current account
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, ConfigDict


# ==================== REQUEST SCHEMAS ====================

class SignUpRequest(BaseModel):
    email: EmailStr
    # Length is checked by the auth service so the message matches sign-in errors
    password: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, max_length=200)


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# ==================== RESPONSE SCHEMAS ====================

class AccountResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    """Issued bearer token"""
    token: str
    token_type: str = "bearer"
    account: AccountResponse


class SignOutResponse(BaseModel):
    signed_out: bool
