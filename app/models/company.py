"""
Company model - organizational unit within a tenant
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid


class CompanyPlan(str, Enum):
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"


COMPANY_PLAN_PRICES = {
    CompanyPlan.STARTER: 10,
    CompanyPlan.PROFESSIONAL: 25,
    CompanyPlan.ENTERPRISE: 50,
}

DEFAULT_COMPANY_SETTINGS = {
    "timezone": "UTC",
    "currency": "USD",
    "date_format": "MM/DD/YYYY",
}


def calculate_company_price(plan: CompanyPlan, max_users: int) -> float:
    """Monthly price for a company plan with volume discounts"""
    price = COMPANY_PLAN_PRICES[CompanyPlan(plan)] * max_users
    if max_users >= 50:
        price *= 0.8
    elif max_users >= 20:
        price *= 0.9
    return round(price, 2)


class Company(SQLModel, table=True):
    """Company owned by a tenant; owns users, clients and leads"""

    __tablename__ = "companies"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")

    name: str = Field(index=True, max_length=100)
    email: str = Field(max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    plan: CompanyPlan = Field(default=CompanyPlan.STARTER)
    max_users: int = Field(default=5, ge=1)
    current_users: int = Field(default=0, ge=0)
    monthly_price: float = Field(default=0, ge=0)

    is_active: bool = Field(default=True, index=True)
    settings: dict = Field(default_factory=lambda: dict(DEFAULT_COMPANY_SETTINGS), sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    class Config:
        indexes = [
            {"name": "idx_company_tenant_id", "columns": ["tenant_id"]},
            {"name": "idx_company_is_active", "columns": ["is_active"]},
        ]

    def refresh_price(self):
        self.monthly_price = calculate_company_price(self.plan, self.max_users)

    def can_add_user(self, count: int = 1) -> bool:
        return self.current_users + count <= self.max_users
