"""
Contact fields shared by clients and leads
"""

from sqlmodel import Field, SQLModel
from sqlalchemy import JSON
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional
import uuid


class ContactBase(SQLModel):
    """Person, employer and follow-up fields common to clients and leads"""

    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", index=True, description="Tenant ID for multi-tenant isolation")
    company_id: uuid.UUID = Field(foreign_key="companies.id", index=True, description="Owning company for the scoping rule")

    first_name: str = Field(max_length=50)
    last_name: str = Field(max_length=50)
    email: str = Field(index=True, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)

    company_name: Optional[str] = Field(default=None, max_length=100)
    job_title: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = None

    currency: str = Field(default="USD", max_length=3)
    assigned_to: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)

    # Separate columns per table; sa_column objects cannot be shared
    address: Optional[dict] = Field(default=None, sa_type=JSON)
    tags: List[str] = Field(default_factory=list, sa_type=JSON)
    custom_fields: Optional[dict] = Field(default=None, sa_type=JSON)

    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None

    created_by: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: Optional[datetime] = None

    # Fields an update may explicitly set back to null
    CLEARABLE_FIELDS: ClassVar[frozenset] = frozenset({
        "phone", "company_name", "job_title", "industry", "website", "address",
        "custom_fields", "last_contact", "next_follow_up", "expected_close_date", "social_media",
    })

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def apply_changes(self, changes: Dict[str, Any]):
        """Copy a partial update onto the record, ignoring nulls for required fields"""
        for key, value in changes.items():
            if value is None and key not in self.CLEARABLE_FIELDS:
                continue
            setattr(self, key, value)
        self.updated_at = datetime.utcnow()
