"""
Client model - a confirmed customer contact
"""

from sqlmodel import Field
from datetime import datetime
from typing import Optional
from enum import Enum
import uuid

from app.models.contact import ContactBase


class ClientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    POTENTIAL = "potential"
    LOST = "lost"


class Client(ContactBase, table=True):
    """Client owned by a company; may originate from a converted lead"""

    __tablename__ = "clients"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    status: ClientStatus = Field(default=ClientStatus.POTENTIAL, index=True)
    source: Optional[str] = Field(default=None, max_length=50)
    value: float = Field(default=0, ge=0)

    converted_from_lead_id: Optional[uuid.UUID] = Field(default=None, index=True)

    class Config:
        indexes = [
            {"name": "idx_client_company_id", "columns": ["company_id"]},
            {"name": "idx_client_status", "columns": ["status"]},
            {"name": "idx_client_created_at", "columns": ["created_at"]},
        ]

    @property
    def is_overdue(self) -> bool:
        return self.next_follow_up is not None and self.next_follow_up < datetime.utcnow()
