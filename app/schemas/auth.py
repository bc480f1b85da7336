"""
Pydantic schemas for authentication and tokens
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Optional

from app.models.tenant import TenantPlan
from app.schemas.user import UserResponse


class LoginRequest(BaseModel):
    """User login schema"""
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=100)
    # Used only when the host does not name a tenant
    subdomain: Optional[str] = Field(default=None, max_length=63)


class RegisterRequest(BaseModel):
    """Self-service signup: creates tenant, company and admin user"""
    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    tenant_name: str = Field(..., min_length=1, max_length=100)
    subdomain: str = Field(..., min_length=3, max_length=63)
    tenant_email: Optional[EmailStr] = None
    company_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    plan: TenantPlan = TenantPlan.TRIAL

    @field_validator("subdomain")
    @classmethod
    def lower_subdomain(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=100)


class TokenResponse(BaseModel):
    """Token response"""
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserResponse
