"""
Tenant model - Multi-tenancy foundation
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime, timedelta
from typing import Optional
from enum import Enum
import math
import uuid

from app.core.config import get_settings

app_settings = get_settings()


class TenantPlan(str, Enum):
    """Subscription plans"""
    TRIAL = "trial"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"
    CUSTOM = "custom"


class TenantStatus(str, Enum):
    """Tenant account status"""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    TRIAL_EXPIRED = "trial_expired"


# Per-user monthly price by plan
PLAN_PRICES = {
    TenantPlan.TRIAL: 0,
    TenantPlan.STARTER: 15,
    TenantPlan.PROFESSIONAL: 35,
    TenantPlan.ENTERPRISE: 65,
}

PLAN_LIMITS = {
    TenantPlan.TRIAL: {
        "max_users": 5,
        "max_storage": 1000,
        "features": {"custom_branding": False, "api_access": False, "advanced_reporting": False, "integrations": False},
    },
    TenantPlan.STARTER: {
        "max_users": 10,
        "max_storage": 5000,
        "features": {"custom_branding": False, "api_access": False, "advanced_reporting": False, "integrations": True},
    },
    TenantPlan.PROFESSIONAL: {
        "max_users": 50,
        "max_storage": 20000,
        "features": {"custom_branding": True, "api_access": True, "advanced_reporting": True, "integrations": True},
    },
    TenantPlan.ENTERPRISE: {
        "max_users": 1000,
        "max_storage": 100000,
        "features": {"custom_branding": True, "api_access": True, "advanced_reporting": True, "integrations": True},
    },
}

DEFAULT_TENANT_SETTINGS = {
    "timezone": "UTC",
    "currency": "USD",
    "date_format": "MM/DD/YYYY",
    "language": "en",
}


def _trial_end() -> datetime:
    return datetime.utcnow() + timedelta(days=app_settings.TRIAL_DAYS)


class Tenant(SQLModel, table=True):
    """Tenant model for multi-tenant architecture"""

    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True, max_length=100)
    subdomain: str = Field(unique=True, index=True, max_length=63, description="Unique tenant identifier for subdomain routing")
    email: str = Field(index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    website: Optional[str] = None
    industry: Optional[str] = None
    address: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Subscription
    plan: TenantPlan = Field(default=TenantPlan.TRIAL, index=True)
    status: TenantStatus = Field(default=TenantStatus.ACTIVE, index=True)
    trial_ends_at: Optional[datetime] = Field(default_factory=_trial_end)
    subscription_ends_at: Optional[datetime] = None

    # Limits and usage
    max_users: int = Field(default=5, ge=1)
    current_users: int = Field(default=0, ge=0)
    max_storage: int = Field(default=1000, ge=0, description="Storage limit in MB")
    current_storage: int = Field(default=0, ge=0)

    features: dict = Field(default_factory=lambda: dict(PLAN_LIMITS[TenantPlan.TRIAL]["features"]), sa_column=Column(JSON))
    settings: dict = Field(default_factory=lambda: dict(DEFAULT_TENANT_SETTINGS), sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None

    class Config:
        indexes = [
            {"name": "idx_tenant_subdomain", "columns": ["subdomain"]},
            {"name": "idx_tenant_status", "columns": ["status"]},
        ]

    @property
    def is_trial_active(self) -> bool:
        if self.plan != TenantPlan.TRIAL:
            return False
        return self.trial_ends_at is not None and self.trial_ends_at > datetime.utcnow()

    @property
    def trial_days_remaining(self) -> int:
        if not self.is_trial_active:
            return 0
        remaining = (self.trial_ends_at - datetime.utcnow()).total_seconds() / 86400
        return max(0, math.ceil(remaining))

    @property
    def is_subscription_active(self) -> bool:
        if self.plan == TenantPlan.TRIAL:
            return self.is_trial_active
        if self.subscription_ends_at is None:
            return self.status == TenantStatus.ACTIVE
        return self.subscription_ends_at > datetime.utcnow()

    @property
    def user_usage_percent(self) -> int:
        return round(self.current_users / self.max_users * 100) if self.max_users else 0

    @property
    def storage_usage_percent(self) -> int:
        return round(self.current_storage / self.max_storage * 100) if self.max_storage else 0

    @property
    def monthly_price(self) -> float:
        base = PLAN_PRICES.get(self.plan, 0) * self.max_users
        if self.max_users >= 100:
            base *= 0.75
        elif self.max_users >= 50:
            base *= 0.85
        elif self.max_users >= 20:
            base *= 0.9
        return round(base, 2)

    @property
    def yearly_price(self) -> float:
        return round(self.monthly_price * 12 * 0.85, 2)

    def is_usable(self) -> bool:
        """Active and, for trials, not past the trial end"""
        if self.status != TenantStatus.ACTIVE:
            return False
        if self.plan == TenantPlan.TRIAL and not self.is_trial_active:
            return False
        return True

    def can_add_user(self, count: int = 1) -> bool:
        return self.current_users + count <= self.max_users

    def can_add_storage(self, megabytes: int) -> bool:
        return self.current_storage + megabytes <= self.max_storage

    def has_feature(self, name: str) -> bool:
        return bool((self.features or {}).get(name))

    def apply_plan(self, plan: TenantPlan):
        """Switch plan and copy its preset limits and features"""
        self.plan = TenantPlan(plan)
        preset = PLAN_LIMITS.get(self.plan)
        if preset:
            self.max_users = preset["max_users"]
            self.max_storage = preset["max_storage"]
            self.features = dict(preset["features"])
        if self.plan == TenantPlan.TRIAL and self.trial_ends_at is None:
            self.trial_ends_at = _trial_end()

    def expire_trial_if_due(self) -> bool:
        """Move an active trial past its end date to trial_expired"""
        if (
            self.plan == TenantPlan.TRIAL
            and self.status == TenantStatus.ACTIVE
            and self.trial_ends_at is not None
            and self.trial_ends_at <= datetime.utcnow()
        ):
            self.status = TenantStatus.TRIAL_EXPIRED
            self.updated_at = datetime.utcnow()
            return True
        return False
