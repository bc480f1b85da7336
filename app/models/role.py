"""
Role model - named permission bundles assigned to users
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON
from datetime import datetime
from typing import List, Optional
import uuid

from app.core.permissions import RoleName


class Role(SQLModel, table=True):
    """Reference data: seeded at startup, read-only through the API"""

    __tablename__ = "roles"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: RoleName = Field(unique=True, index=True)
    display_name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    permissions: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    is_system_role: bool = Field(default=True)
    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = None

    @property
    def is_super_admin(self) -> bool:
        return self.name == RoleName.SUPER_ADMIN
