"""
Leads API endpoints
Pipeline management, notes, activities and conversion to clients
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlmodel import Session, col, select
from datetime import datetime, timedelta
from typing import List, Optional
import structlog
import uuid

from app.core.database import get_session
from app.core.dependencies import AuthContext, require_permission
from app.core.errors import AlreadyConverted, CRMError, ServerError
from app.core.permissions import Permission
from app.models.company import Company
from app.models.lead import (
    CLOSED_STATUSES, PIPELINE_ORDER, STATUS_PROBABILITY, Lead, LeadPriority, LeadSource, LeadStatus,
)
from app.models.note import LeadActivity, LeadNote
from app.schemas.client import ClientResponse, NoteCreate, NoteResponse
from app.schemas.common import DataResponse, ListResponse, MessageResponse, list_response, to_utc_naive
from app.schemas.lead import (
    ActivityCreate, ActivityResponse, ConversionResult, LeadCreate, LeadDetailResponse, LeadResponse, LeadUpdate,
)
from app.services.leads import add_activity, convert_lead, list_activities
from app.services.notes import add_note, list_notes
from app.services.pagination import PageParams, page_params, paginate, search_clause
from app.services.scoping import get_scoped_or_404, resolve_target_company, scope_statement, validate_assignee

logger = structlog.get_logger(__name__)
router = APIRouter()

OPEN_STATUSES = [s for s in PIPELINE_ORDER if s not in CLOSED_STATUSES]


def _detail(session: Session, lead: Lead, context: AuthContext) -> LeadDetailResponse:
    detail = LeadDetailResponse.model_validate(lead)
    detail.notes = [NoteResponse.model_validate(n) for n in list_notes(session, Lead, lead.id, context)]
    detail.activities = [ActivityResponse.model_validate(a) for a in list_activities(session, lead.id)]
    return detail


@router.get("", response_model=ListResponse[LeadResponse])
def list_leads(
    search: Optional[str] = None,
    status: Optional[LeadStatus] = None,
    priority: Optional[LeadPriority] = None,
    source: Optional[LeadSource] = None,
    assigned_to: Optional[uuid.UUID] = None,
    converted: Optional[bool] = None,
    overdue: Optional[bool] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    company_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    context: AuthContext = Depends(require_permission(Permission.READ_LEADS)),
    session: Session = Depends(get_session)
):
    """List leads with optional filters"""
    statement = scope_statement(select(Lead), Lead, context, company_id=company_id)

    clause = search_clause(search, Lead.first_name, Lead.last_name, Lead.email, Lead.company_name, Lead.phone)
    if clause is not None:
        statement = statement.where(clause)
    if status is not None:
        statement = statement.where(Lead.status == status)
    if priority is not None:
        statement = statement.where(Lead.priority == priority)
    if source is not None:
        statement = statement.where(Lead.source == source)
    if assigned_to is not None:
        statement = statement.where(Lead.assigned_to == assigned_to)
    if converted is not None:
        statement = statement.where(Lead.converted_to_client == converted)
    if overdue:
        statement = statement.where(
            col(Lead.expected_close_date) < datetime.utcnow(),
            col(Lead.status).in_(OPEN_STATUSES),
        )
    if created_from is not None:
        statement = statement.where(col(Lead.created_at) >= to_utc_naive(created_from))
    if created_to is not None:
        statement = statement.where(col(Lead.created_at) <= to_utc_naive(created_to))

    page = paginate(session, statement, params, col(Lead.created_at).desc())
    return list_response(page, [LeadResponse.model_validate(lead) for lead in page.items])


@router.get("/stats", response_model=DataResponse[dict])
def lead_stats(
    company_id: Optional[uuid.UUID] = None,
    context: AuthContext = Depends(require_permission(Permission.READ_LEADS)),
    session: Session = Depends(get_session)
):
    """Pipeline breakdown, totals, weighted value and conversion rate"""
    def scoped(statement):
        return scope_statement(statement, Lead, context, company_id=company_id)

    def grouped(column, enum_type):
        counts = {member.value: 0 for member in enum_type}
        for key, count in session.exec(scoped(select(column, func.count()).group_by(column))).all():
            counts[enum_type(key).value] = count
        return counts

    by_status = grouped(Lead.status, LeadStatus)
    total = sum(by_status.values())

    total_value, weighted_value = session.exec(scoped(select(
        func.coalesce(func.sum(Lead.estimated_value), 0),
        func.coalesce(func.sum(Lead.estimated_value * Lead.probability / 100.0), 0),
    ))).one()
    converted = session.exec(scoped(
        select(func.count()).select_from(Lead).where(col(Lead.converted_to_client).is_(True))
    )).one()
    overdue = session.exec(scoped(
        select(func.count()).select_from(Lead).where(
            col(Lead.expected_close_date) < datetime.utcnow(),
            col(Lead.status).in_(OPEN_STATUSES),
        )
    )).one()
    recent = session.exec(scoped(
        select(func.count()).select_from(Lead).where(col(Lead.created_at) >= datetime.utcnow() - timedelta(days=30))
    )).one()

    return DataResponse(data={
        "total": total,
        "by_status": by_status,
        "by_priority": grouped(Lead.priority, LeadPriority),
        "by_source": grouped(Lead.source, LeadSource),
        "total_value": float(total_value or 0),
        "weighted_value": round(float(weighted_value or 0), 2),
        "converted": converted,
        "conversion_rate": round(converted / total * 100, 2) if total else 0,
        "overdue": overdue,
        "recent": recent,
    })


@router.get("/{lead_id}", response_model=DataResponse[LeadDetailResponse])
def get_lead(
    lead_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_LEADS)),
    session: Session = Depends(get_session)
):
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    return DataResponse(data=_detail(session, lead, context))


@router.post("", response_model=DataResponse[LeadResponse], status_code=status.HTTP_201_CREATED)
def create_lead(
    data: LeadCreate,
    context: AuthContext = Depends(require_permission(Permission.CREATE_LEADS)),
    session: Session = Depends(get_session)
):
    """Create a lead; probability follows the stage unless given"""
    company: Company = resolve_target_company(session, context, data.company_id)
    assigned_to = validate_assignee(session, company, data.assigned_to)

    probability = data.probability if data.probability is not None else STATUS_PROBABILITY[data.status]

    try:
        lead = Lead(
            **data.model_dump(exclude={"company_id", "assigned_to", "email", "probability"}),
            email=data.email.lower(),
            probability=probability,
            tenant_id=company.tenant_id,
            company_id=company.id,
            assigned_to=assigned_to,
            created_by=context.user_id,
        )
        session.add(lead)
        session.commit()
        session.refresh(lead)
    except CRMError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error("Failed to create lead", company_id=str(company.id), error=str(e))
        raise ServerError("Failed to create lead")

    logger.info("Lead created", lead_id=str(lead.id), company_id=str(company.id))
    return DataResponse(data=LeadResponse.model_validate(lead), message="Lead created successfully")


@router.put("/{lead_id}", response_model=DataResponse[LeadResponse])
def update_lead(
    lead_id: uuid.UUID,
    data: LeadUpdate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_LEADS)),
    session: Session = Depends(get_session)
):
    """Update an unconverted lead"""
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    if not lead.can_modify():
        raise AlreadyConverted("Converted leads cannot be modified")

    changes = data.model_dump(exclude_unset=True)
    if "assigned_to" in changes:
        company = session.get(Company, lead.company_id)
        lead.assigned_to = validate_assignee(session, company, changes.pop("assigned_to"))
    if changes.get("email"):
        changes["email"] = changes["email"].lower()

    new_status = changes.pop("status", None)
    probability = changes.pop("probability", None)

    try:
        if new_status is not None:
            lead.change_status(new_status, probability)
        elif probability is not None:
            lead.probability = probability
        lead.apply_changes(changes)
        session.add(lead)
        session.commit()
        session.refresh(lead)
    except Exception as e:
        session.rollback()
        logger.error("Failed to update lead", lead_id=str(lead_id), error=str(e))
        raise ServerError("Failed to update lead")

    return DataResponse(data=LeadResponse.model_validate(lead), message="Lead updated successfully")


@router.delete("/{lead_id}", response_model=MessageResponse)
def delete_lead(
    lead_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.DELETE_LEADS)),
    session: Session = Depends(get_session)
):
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")

    try:
        for note in session.exec(select(LeadNote).where(LeadNote.lead_id == lead.id)).all():
            session.delete(note)
        for activity in session.exec(select(LeadActivity).where(LeadActivity.lead_id == lead.id)).all():
            session.delete(activity)
        session.delete(lead)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("Failed to delete lead", lead_id=str(lead_id), error=str(e))
        raise ServerError("Failed to delete lead")

    logger.info("Lead deleted", lead_id=str(lead_id), by=str(context.user_id))
    return MessageResponse(message="Lead deleted successfully")


@router.get("/{lead_id}/notes", response_model=DataResponse[List[NoteResponse]])
def get_lead_notes(
    lead_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_LEADS)),
    session: Session = Depends(get_session)
):
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    return DataResponse(data=[NoteResponse.model_validate(n) for n in list_notes(session, Lead, lead.id, context)])


@router.post("/{lead_id}/notes", response_model=DataResponse[NoteResponse], status_code=status.HTTP_201_CREATED)
def add_lead_note(
    lead_id: uuid.UUID,
    data: NoteCreate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_LEADS)),
    session: Session = Depends(get_session)
):
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    note = add_note(session, lead, context, data.content, data.is_private)
    session.commit()
    session.refresh(note)
    return DataResponse(data=NoteResponse.model_validate(note), message="Note added successfully")


@router.get("/{lead_id}/activities", response_model=DataResponse[List[ActivityResponse]])
def get_lead_activities(
    lead_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_LEADS)),
    session: Session = Depends(get_session)
):
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    return DataResponse(data=[ActivityResponse.model_validate(a) for a in list_activities(session, lead.id)])


@router.post(
    "/{lead_id}/activities",
    response_model=DataResponse[ActivityResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_lead_activity(
    lead_id: uuid.UUID,
    data: ActivityCreate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_LEADS)),
    session: Session = Depends(get_session)
):
    """Schedule or record an activity against a lead"""
    lead = get_scoped_or_404(session, Lead, lead_id, context, "Lead")
    activity = add_activity(
        session,
        lead,
        context,
        type=data.type,
        subject=data.subject,
        description=data.description,
        scheduled_date=data.scheduled_date,
        status=data.status,
    )
    session.commit()
    session.refresh(activity)
    return DataResponse(data=ActivityResponse.model_validate(activity), message="Activity added successfully")


@router.post("/{lead_id}/convert", response_model=DataResponse[ConversionResult])
def convert_lead_endpoint(
    lead_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.CREATE_CLIENTS, Permission.UPDATE_LEADS)),
    session: Session = Depends(get_session)
):
    """Convert a lead into a client; succeeds at most once per lead"""
    lead, client = convert_lead(session, lead_id, context)
    return DataResponse(
        data=ConversionResult(
            lead=LeadResponse.model_validate(lead),
            client=ClientResponse.model_validate(client),
        ),
        message="Lead converted to client successfully",
    )
