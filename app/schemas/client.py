"""
Pydantic schemas for clients and notes
"""

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import List, Optional
from datetime import datetime
import uuid

from app.models.client import ClientStatus
from app.schemas.common import UTCDateTime


class NoteCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(..., min_length=1, max_length=2000)
    is_private: bool = False

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Note content is required")
        return v


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    is_private: bool
    created_by: uuid.UUID
    created_at: datetime


class ContactFields(BaseModel):
    """Person and employer fields shared by client and lead payloads"""
    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=100)
    job_title: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    assigned_to: Optional[uuid.UUID] = None
    address: Optional[dict] = None
    tags: List[str] = []
    custom_fields: Optional[dict] = None
    last_contact: Optional[UTCDateTime] = None
    next_follow_up: Optional[UTCDateTime] = None
    # Only honoured for super admins
    company_id: Optional[uuid.UUID] = None


class ContactUpdateFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=50)
    company_name: Optional[str] = Field(default=None, max_length=100)
    job_title: Optional[str] = Field(default=None, max_length=100)
    industry: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    assigned_to: Optional[uuid.UUID] = None
    address: Optional[dict] = None
    tags: Optional[List[str]] = None
    custom_fields: Optional[dict] = None
    last_contact: Optional[UTCDateTime] = None
    next_follow_up: Optional[UTCDateTime] = None


class ClientCreate(ContactFields):
    status: ClientStatus = ClientStatus.POTENTIAL
    source: Optional[str] = Field(default=None, max_length=50)
    value: float = Field(default=0, ge=0)


class ClientUpdate(ContactUpdateFields):
    status: Optional[ClientStatus] = None
    source: Optional[str] = Field(default=None, max_length=50)
    value: Optional[float] = Field(default=None, ge=0)


class ClientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    tenant_id: uuid.UUID
    company_id: uuid.UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: Optional[str] = None
    company_name: Optional[str] = None
    job_title: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    status: ClientStatus
    source: Optional[str] = None
    value: float
    currency: str
    assigned_to: Optional[uuid.UUID] = None
    address: Optional[dict] = None
    tags: List[str] = []
    custom_fields: Optional[dict] = None
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    is_overdue: bool
    converted_from_lead_id: Optional[uuid.UUID] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ClientDetailResponse(ClientResponse):
    notes: List[NoteResponse] = []
