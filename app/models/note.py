"""
Append-only notes and lead activities

Integer primary keys give insertion order; no update or delete path exists.
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid


class ActivityType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    DEMO = "demo"
    PROPOSAL = "proposal"
    FOLLOW_UP = "follow_up"
    OTHER = "other"


class ActivityStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NoteBase(SQLModel):
    content: str = Field(max_length=2000)
    is_private: bool = Field(default=False)
    created_by: uuid.UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ClientNote(NoteBase, table=True):
    __tablename__ = "client_notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: uuid.UUID = Field(foreign_key="clients.id", index=True)


class LeadNote(NoteBase, table=True):
    __tablename__ = "lead_notes"

    id: Optional[int] = Field(default=None, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="leads.id", index=True)


class LeadActivity(SQLModel, table=True):
    """Scheduled action against a lead (call, meeting, demo...)"""

    __tablename__ = "lead_activities"

    id: Optional[int] = Field(default=None, primary_key=True)
    lead_id: uuid.UUID = Field(foreign_key="leads.id", index=True)

    type: ActivityType = Field(index=True)
    subject: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    scheduled_date: Optional[datetime] = Field(default=None, index=True)
    completed_date: Optional[datetime] = None
    status: ActivityStatus = Field(default=ActivityStatus.SCHEDULED, index=True)

    created_by: uuid.UUID = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
