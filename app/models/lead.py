"""
Lead model with conversion state machine
"""

from sqlmodel import Field
from sqlalchemy import JSON
from datetime import datetime
from typing import Optional
from enum import Enum
import math
import uuid

from app.models.contact import ContactBase


class LeadStatus(str, Enum):
    """Pipeline stage of a lead"""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class LeadPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class LeadSource(str, Enum):
    WEBSITE = "website"
    REFERRAL = "referral"
    SOCIAL_MEDIA = "social_media"
    EMAIL_CAMPAIGN = "email_campaign"
    COLD_CALL = "cold_call"
    TRADE_SHOW = "trade_show"
    ADVERTISEMENT = "advertisement"
    OTHER = "other"


# Pipeline order, used by the funnel and stats
PIPELINE_ORDER = [
    LeadStatus.NEW,
    LeadStatus.CONTACTED,
    LeadStatus.QUALIFIED,
    LeadStatus.PROPOSAL,
    LeadStatus.NEGOTIATION,
    LeadStatus.CLOSED_WON,
    LeadStatus.CLOSED_LOST,
]

CLOSED_STATUSES = {LeadStatus.CLOSED_WON, LeadStatus.CLOSED_LOST}

STATUS_PROBABILITY = {
    LeadStatus.NEW: 10,
    LeadStatus.CONTACTED: 20,
    LeadStatus.QUALIFIED: 40,
    LeadStatus.PROPOSAL: 60,
    LeadStatus.NEGOTIATION: 80,
    LeadStatus.CLOSED_WON: 100,
    LeadStatus.CLOSED_LOST: 0,
}


def compute_weighted_value(estimated_value: float, probability: int) -> float:
    """Expected value of a deal given its win probability in percent"""
    return (estimated_value or 0) * (probability or 0) / 100


class Lead(ContactBase, table=True):
    """Prospective customer tracked through the sales pipeline"""

    __tablename__ = "leads"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    status: LeadStatus = Field(default=LeadStatus.NEW, index=True)
    priority: LeadPriority = Field(default=LeadPriority.MEDIUM, index=True)
    source: LeadSource = Field(default=LeadSource.WEBSITE, index=True)

    estimated_value: float = Field(default=0, ge=0)
    probability: int = Field(default=10, ge=0, le=100)
    expected_close_date: Optional[datetime] = None

    social_media: Optional[dict] = Field(default=None, sa_type=JSON)

    # Conversion
    converted_to_client: bool = Field(default=False, index=True)
    converted_date: Optional[datetime] = None
    client_id: Optional[uuid.UUID] = Field(default=None, foreign_key="clients.id")

    class Config:
        indexes = [
            {"name": "idx_lead_company_id", "columns": ["company_id"]},
            {"name": "idx_lead_status", "columns": ["status"]},
            {"name": "idx_lead_converted", "columns": ["converted_to_client"]},
            {"name": "idx_lead_created_at", "columns": ["created_at"]},
        ]

    @property
    def weighted_value(self) -> float:
        return compute_weighted_value(self.estimated_value, self.probability)

    @property
    def is_open(self) -> bool:
        return self.status not in CLOSED_STATUSES

    @property
    def is_overdue(self) -> bool:
        return (
            self.expected_close_date is not None
            and self.expected_close_date < datetime.utcnow()
            and self.is_open
        )

    @property
    def days_until_close(self) -> Optional[int]:
        if self.expected_close_date is None:
            return None
        delta = self.expected_close_date - datetime.utcnow()
        return math.ceil(delta.total_seconds() / 86400)

    # State machine methods
    def can_convert(self) -> bool:
        """Conversion is allowed exactly once, whatever the pipeline stage"""
        return not self.converted_to_client

    def can_modify(self) -> bool:
        return not self.converted_to_client

    def change_status(self, status: LeadStatus, probability: Optional[int] = None):
        """Move to another pipeline stage.

        Probability follows the stage unless one is given explicitly.
        """
        status = LeadStatus(status)
        if status != self.status and probability is None:
            self.probability = STATUS_PROBABILITY[status]
        self.status = status
        if probability is not None:
            self.probability = probability

