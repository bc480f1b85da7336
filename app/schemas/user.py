"""
Pydantic schemas for users
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import List, Optional
from datetime import datetime
import uuid

from app.core.permissions import RoleName
from app.models.role import Role
from app.models.user import User


class UserCreate(BaseModel):
    """User creation by an administrator"""
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)
    role: RoleName = Field(default=RoleName.USER)
    company_id: Optional[uuid.UUID] = None
    is_active: bool = True


class UserUpdate(BaseModel):
    """Partial user update; role, company and is_active are admin-only"""
    model_config = ConfigDict(extra="forbid")

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=50)
    role: Optional[RoleName] = None
    company_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    """User response model"""
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: Optional[str] = None
    role: RoleName
    role_display_name: str
    permissions: List[str] = []
    tenant_id: Optional[uuid.UUID] = None
    company_id: Optional[uuid.UUID] = None
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User, role: Role) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            phone=user.phone,
            role=role.name,
            role_display_name=role.display_name,
            permissions=sorted(role.permissions or []),
            tenant_id=user.tenant_id,
            company_id=user.company_id,
            is_active=user.is_active,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


class RoleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: RoleName
    display_name: str
    description: Optional[str] = None
    permissions: List[str]
    is_system_role: bool
