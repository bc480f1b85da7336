"""
Pydantic schemas for companies
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import Optional
from datetime import datetime
import uuid

from app.models.company import CompanyPlan


class CompanySettings(BaseModel):
    timezone: str = "UTC"
    currency: str = Field(default="USD", min_length=3, max_length=3)
    date_format: str = "MM/DD/YYYY"


class CompanyCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tenant_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    address: Optional[dict] = None
    plan: CompanyPlan = CompanyPlan.STARTER
    max_users: int = Field(default=5, ge=1, le=10000)
    settings: Optional[CompanySettings] = None


class CompanyUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = Field(default=None, max_length=100)
    address: Optional[dict] = None
    settings: Optional[CompanySettings] = None
    is_active: Optional[bool] = None


class CompanyPlanUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plan: CompanyPlan
    max_users: Optional[int] = Field(default=None, ge=1, le=10000)


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[dict] = None
    plan: CompanyPlan
    max_users: int
    current_users: int
    monthly_price: float
    is_active: bool
    settings: dict
    created_at: datetime
    updated_at: Optional[datetime] = None
