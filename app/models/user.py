"""
User model with roles and tenant/company scoping
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import UniqueConstraint
from datetime import datetime
from typing import Optional
import uuid


class User(SQLModel, table=True):
    """User model with tenant isolation"""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    tenant_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="tenants.id",
        index=True,
        description="Tenant ID for multi-tenant isolation (null for super admins)"
    )
    company_id: Optional[uuid.UUID] = Field(default=None, foreign_key="companies.id", index=True)
    role_id: uuid.UUID = Field(foreign_key="roles.id", index=True)

    # Authentication
    email: str = Field(index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)

    # Profile
    first_name: str = Field(nullable=False, max_length=50)
    last_name: str = Field(nullable=False, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)

    # Status
    is_active: bool = Field(default=True, index=True)
    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    class Config:
        indexes = [
            {"name": "idx_user_tenant_id", "columns": ["tenant_id"]},
            {"name": "idx_user_company_id", "columns": ["company_id"]},
            {"name": "idx_user_email", "columns": ["email"]},
            {"name": "idx_user_is_active", "columns": ["is_active"]},
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
