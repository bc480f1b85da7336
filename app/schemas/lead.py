"""
Pydantic schemas for leads, activities and conversion
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
import uuid

from app.models.lead import LeadPriority, LeadSource, LeadStatus
from app.models.note import ActivityStatus, ActivityType
from app.schemas.client import ClientResponse, ContactFields, ContactUpdateFields, NoteResponse
from app.schemas.common import UTCDateTime


class LeadCreate(ContactFields):
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM
    source: LeadSource = LeadSource.WEBSITE
    estimated_value: float = Field(default=0, ge=0)
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[UTCDateTime] = None
    social_media: Optional[dict] = None


class LeadUpdate(ContactUpdateFields):
    status: Optional[LeadStatus] = None
    priority: Optional[LeadPriority] = None
    source: Optional[LeadSource] = None
    estimated_value: Optional[float] = Field(default=None, ge=0)
    probability: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[UTCDateTime] = None
    social_media: Optional[dict] = None


class ActivityCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: ActivityType
    subject: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    scheduled_date: Optional[UTCDateTime] = None
    status: ActivityStatus = ActivityStatus.SCHEDULED


class ActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: ActivityType
    subject: str
    description: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    status: ActivityStatus
    created_by: uuid.UUID
    created_at: datetime


class LeadResponse(BaseModel):
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
    status: LeadStatus
    priority: LeadPriority
    source: LeadSource
    estimated_value: float
    probability: int
    weighted_value: float
    currency: str
    expected_close_date: Optional[datetime] = None
    is_overdue: bool
    days_until_close: Optional[int] = None
    assigned_to: Optional[uuid.UUID] = None
    address: Optional[dict] = None
    tags: List[str] = []
    custom_fields: Optional[dict] = None
    social_media: Optional[dict] = None
    last_contact: Optional[datetime] = None
    next_follow_up: Optional[datetime] = None
    converted_to_client: bool
    converted_date: Optional[datetime] = None
    client_id: Optional[uuid.UUID] = None
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class LeadDetailResponse(LeadResponse):
    notes: List[NoteResponse] = []
    activities: List[ActivityResponse] = []


class ConversionResult(BaseModel):
    lead: LeadResponse
    client: ClientResponse
