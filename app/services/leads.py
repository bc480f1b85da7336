"""
Lead workflow: conversion to client and activity scheduling
"""

from datetime import datetime
from sqlalchemy import update
from sqlmodel import Session, col, select
from typing import Optional, Tuple
import uuid
import structlog

from app.core.dependencies import AuthContext
from app.core.errors import AlreadyConverted, CRMError, ServerError
from app.models.client import Client, ClientStatus
from app.models.lead import Lead
from app.models.note import ActivityStatus, ActivityType, ClientNote, LeadActivity, LeadNote
from app.models.user import User
from app.services.scoping import get_scoped_or_404

logger = structlog.get_logger(__name__)


def claim_conversion(session: Session, lead_id: uuid.UUID, now: datetime) -> bool:
    """Compare-and-set the converted flag.

    A single conditional UPDATE: only a row still reading
    converted_to_client = false is changed, so concurrent callers cannot
    both succeed.
    """
    result = session.connection().execute(
        update(Lead.__table__)
        .where(
            Lead.__table__.c.id == lead_id,
            Lead.__table__.c.converted_to_client.is_(False),
        )
        .values(converted_to_client=True, converted_date=now, updated_at=now)
    )
    return result.rowcount == 1


def build_client_from_lead(lead: Lead, session: Session, created_by: uuid.UUID) -> Client:
    """Copy contact, company, address and currency fields into a new client"""
    assigned_to = None
    if lead.assigned_to:
        assignee = session.get(User, lead.assigned_to)
        if assignee and assignee.company_id == lead.company_id:
            assigned_to = assignee.id

    return Client(
        tenant_id=lead.tenant_id,
        company_id=lead.company_id,
        first_name=lead.first_name,
        last_name=lead.last_name,
        email=lead.email,
        phone=lead.phone,
        company_name=lead.company_name,
        job_title=lead.job_title,
        industry=lead.industry,
        website=lead.website,
        address=dict(lead.address) if lead.address else None,
        tags=list(lead.tags or []),
        currency=lead.currency,
        value=lead.estimated_value or 0,
        status=ClientStatus.ACTIVE,
        source="lead_conversion",
        assigned_to=assigned_to,
        last_contact=lead.last_contact,
        next_follow_up=lead.next_follow_up,
        converted_from_lead_id=lead.id,
        created_by=created_by,
    )


def convert_lead(session: Session, lead_id: uuid.UUID, context: AuthContext) -> Tuple[Lead, Client]:
    """Convert a lead into a client at most once.

    The lead keeps its own status. A lost race surfaces as AlreadyConverted;
    any other failure rolls back the flag together with the new client.
    """
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    if not lead.can_convert():
        raise AlreadyConverted()

    now = datetime.utcnow()
    try:
        if not claim_conversion(session, lead.id, now):
            session.rollback()
            logger.info("Lead conversion rejected, already converted", lead_id=str(lead_id))
            raise AlreadyConverted()

        session.refresh(lead)
        client = build_client_from_lead(lead, session, context.user_id)
        session.add(client)
        session.flush()

        notes = session.exec(
            select(LeadNote).where(LeadNote.lead_id == lead.id).order_by(col(LeadNote.id))
        ).all()
        for note in notes:
            session.add(ClientNote(
                client_id=client.id,
                content=note.content,
                is_private=note.is_private,
                created_by=note.created_by,
                created_at=note.created_at,
            ))

        lead.client_id = client.id
        session.add(lead)
        session.commit()
    except CRMError:
        raise
    except Exception as e:
        session.rollback()
        logger.error("Lead conversion failed", lead_id=str(lead_id), error=str(e))
        raise ServerError("Failed to convert lead")

    session.refresh(lead)
    session.refresh(client)
    logger.info("Lead converted", lead_id=str(lead.id), client_id=str(client.id), user_id=str(context.user_id))
    return lead, client


def add_activity(
    session: Session,
    lead: Lead,
    context: AuthContext,
    *,
    type: ActivityType,
    subject: str,
    description: Optional[str] = None,
    scheduled_date: Optional[datetime] = None,
    status: ActivityStatus = ActivityStatus.SCHEDULED,
) -> LeadActivity:
    """Append a scheduled action to a lead"""
    now = datetime.utcnow()
    activity = LeadActivity(
        lead_id=lead.id,
        type=type,
        subject=subject,
        description=description,
        scheduled_date=scheduled_date,
        status=status,
        completed_date=now if status == ActivityStatus.COMPLETED else None,
        created_by=context.user_id,
        created_at=now,
    )
    lead.last_contact = now
    lead.updated_at = now
    session.add(activity)
    session.add(lead)
    return activity


def list_activities(session: Session, lead_id: uuid.UUID):
    return list(session.exec(
        select(LeadActivity).where(LeadActivity.lead_id == lead_id).order_by(col(LeadActivity.id))
    ).all())
