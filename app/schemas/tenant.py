"""
Pydantic schemas for tenants and super-admin tenant management
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Literal, Optional
from datetime import datetime
import uuid

from app.models.tenant import TenantPlan, TenantStatus
from app.schemas.common import UTCDateTime


class TenantSettings(BaseModel):
    timezone: str = "UTC"
    currency: str = Field(default="USD", min_length=3, max_length=3)
    date_format: str = "MM/DD/YYYY"
    language: str = "en"


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    subdomain: str
    email: str
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[dict] = None
    plan: TenantPlan
    status: TenantStatus
    max_users: int
    current_users: int
    max_storage: int
    current_storage: int
    features: dict
    settings: dict
    trial_ends_at: Optional[datetime] = None
    subscription_ends_at: Optional[datetime] = None
    is_trial_active: bool
    trial_days_remaining: int
    monthly_price: float
    yearly_price: float
    created_at: datetime
    updated_at: Optional[datetime] = None


class TenantSettingsUpdate(BaseModel):
    """Fields a tenant administrator may change"""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[dict] = None
    website: Optional[str] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    settings: Optional[TenantSettings] = None


class CheckLimitRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    action: Literal["add_user", "add_storage"]
    quantity: int = Field(default=1, ge=1)


class TenantAdminCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)


class TenantCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    subdomain: str = Field(..., min_length=3, max_length=63)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    plan: TenantPlan = TenantPlan.TRIAL
    company_name: Optional[str] = Field(default=None, max_length=100)
    admin_user: Optional[TenantAdminCreate] = None

    @field_validator("subdomain")
    @classmethod
    def lower_subdomain(cls, v: str) -> str:
        return v.strip().lower()


class TenantUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    plan: Optional[TenantPlan] = None
    status: Optional[TenantStatus] = None
    max_users: Optional[int] = Field(default=None, ge=1)
    max_storage: Optional[int] = Field(default=None, ge=0)
    features: Optional[dict] = None
    subscription_ends_at: Optional[UTCDateTime] = None


class TenantStats(BaseModel):
    companies: int
    users: int
    active_users: int
    clients: int
    leads: int


class TenantDetailResponse(TenantResponse):
    stats: TenantStats
