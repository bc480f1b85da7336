"""
Clients API endpoints
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
from app.core.errors import CRMError, ServerError
from app.core.permissions import Permission
from app.models.client import Client, ClientStatus
from app.models.company import Company
from app.models.lead import Lead
from app.models.note import ClientNote
from app.schemas.client import (
    ClientCreate, ClientDetailResponse, ClientResponse, ClientUpdate, NoteCreate, NoteResponse
)
from app.schemas.common import DataResponse, ListResponse, MessageResponse, list_response
from app.services.notes import add_note, list_notes
from app.services.pagination import PageParams, page_params, paginate, search_clause
from app.services.scoping import get_scoped_or_404, resolve_target_company, scope_statement, validate_assignee

logger = structlog.get_logger(__name__)
router = APIRouter()


def _detail(session: Session, client: Client, context: AuthContext) -> ClientDetailResponse:
    detail = ClientDetailResponse.model_validate(client)
    detail.notes = [NoteResponse.model_validate(n) for n in list_notes(session, Client, client.id, context)]
    return detail


@router.get("", response_model=ListResponse[ClientResponse])
def list_clients(
    search: Optional[str] = None,
    status: Optional[ClientStatus] = None,
    assigned_to: Optional[uuid.UUID] = None,
    source: Optional[str] = None,
    overdue: Optional[bool] = None,
    company_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    context: AuthContext = Depends(require_permission(Permission.READ_CLIENTS)),
    session: Session = Depends(get_session)
):
    statement = scope_statement(select(Client), Client, context, company_id=company_id)

    clause = search_clause(
        search, Client.first_name, Client.last_name, Client.email, Client.company_name, Client.phone
    )
    if clause is not None:
        statement = statement.where(clause)
    if status is not None:
        statement = statement.where(Client.status == status)
    if assigned_to is not None:
        statement = statement.where(Client.assigned_to == assigned_to)
    if source:
        statement = statement.where(Client.source == source)
    if overdue:
        statement = statement.where(col(Client.next_follow_up) < datetime.utcnow())

    page = paginate(session, statement, params, col(Client.created_at).desc())
    return list_response(page, [ClientResponse.model_validate(c) for c in page.items])


@router.get("/stats", response_model=DataResponse[dict])
def client_stats(
    company_id: Optional[uuid.UUID] = None,
    context: AuthContext = Depends(require_permission(Permission.READ_CLIENTS)),
    session: Session = Depends(get_session)
):
    """Counts by status, total value, overdue follow-ups and recent additions"""
    def scoped(statement):
        return scope_statement(statement, Client, context, company_id=company_id)

    by_status = {s.value: 0 for s in ClientStatus}
    rows = session.exec(scoped(select(Client.status, func.count()).group_by(Client.status))).all()
    for client_status, count in rows:
        by_status[ClientStatus(client_status).value] = count

    total_value = session.exec(scoped(select(func.coalesce(func.sum(Client.value), 0)))).one()
    overdue = session.exec(scoped(
        select(func.count()).select_from(Client).where(col(Client.next_follow_up) < datetime.utcnow())
    )).one()
    recent = session.exec(scoped(
        select(func.count()).select_from(Client).where(
            col(Client.created_at) >= datetime.utcnow() - timedelta(days=30)
        )
    )).one()

    return DataResponse(data={
        "total": sum(by_status.values()),
        "by_status": by_status,
        "total_value": float(total_value or 0),
        "overdue_follow_ups": overdue,
        "recent": recent,
    })


@router.get("/{client_id}", response_model=DataResponse[ClientDetailResponse])
def get_client(
    client_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_CLIENTS)),
    session: Session = Depends(get_session)
):
    client = get_scoped_or_404(session, Client, client_id, context, "Client")
    return DataResponse(data=_detail(session, client, context))


@router.post("", response_model=DataResponse[ClientResponse], status_code=status.HTTP_201_CREATED)
def create_client(
    data: ClientCreate,
    context: AuthContext = Depends(require_permission(Permission.CREATE_CLIENTS)),
    session: Session = Depends(get_session)
):
    """Create a client in the caller's company"""
    company: Company = resolve_target_company(session, context, data.company_id)
    assigned_to = validate_assignee(session, company, data.assigned_to)

    try:
        client = Client(
            **data.model_dump(exclude={"company_id", "assigned_to", "email"}),
            email=data.email.lower(),
            tenant_id=company.tenant_id,
            company_id=company.id,
            assigned_to=assigned_to,
            created_by=context.user_id,
        )
        session.add(client)
        session.commit()
        session.refresh(client)
    except CRMError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error("Failed to create client", company_id=str(company.id), error=str(e))
        raise ServerError("Failed to create client")

    logger.info("Client created", client_id=str(client.id), company_id=str(company.id))
    return DataResponse(data=ClientResponse.model_validate(client), message="Client created successfully")


@router.put("/{client_id}", response_model=DataResponse[ClientResponse])
def update_client(
    client_id: uuid.UUID,
    data: ClientUpdate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_CLIENTS)),
    session: Session = Depends(get_session)
):
    client = get_scoped_or_404(session, Client, client_id, context, "Client")
    changes = data.model_dump(exclude_unset=True)

    if "assigned_to" in changes:
        company = session.get(Company, client.company_id)
        client.assigned_to = validate_assignee(session, company, changes.pop("assigned_to"))
    if changes.get("email"):
        changes["email"] = changes["email"].lower()

    try:
        client.apply_changes(changes)
        session.add(client)
        session.commit()
        session.refresh(client)
    except Exception as e:
        session.rollback()
        logger.error("Failed to update client", client_id=str(client_id), error=str(e))
        raise ServerError("Failed to update client")

    return DataResponse(data=ClientResponse.model_validate(client), message="Client updated successfully")


@router.delete("/{client_id}", response_model=MessageResponse)
def delete_client(
    client_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.DELETE_CLIENTS)),
    session: Session = Depends(get_session)
):
    client = get_scoped_or_404(session, Client, client_id, context, "Client")

    try:
        for note in session.exec(select(ClientNote).where(ClientNote.client_id == client.id)).all():
            session.delete(note)
        for lead in session.exec(select(Lead).where(Lead.client_id == client.id)).all():
            lead.client_id = None
            session.add(lead)
        session.delete(client)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("Failed to delete client", client_id=str(client_id), error=str(e))
        raise ServerError("Failed to delete client")

    logger.info("Client deleted", client_id=str(client_id), by=str(context.user_id))
    return MessageResponse(message="Client deleted successfully")


@router.get("/{client_id}/notes", response_model=DataResponse[List[NoteResponse]])
def get_client_notes(
    client_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_CLIENTS)),
    session: Session = Depends(get_session)
):
    client = get_scoped_or_404(session, Client, client_id, context, "Client")
    notes = list_notes(session, Client, client.id, context)
    return DataResponse(data=[NoteResponse.model_validate(n) for n in notes])


@router.post("/{client_id}/notes", response_model=DataResponse[NoteResponse], status_code=status.HTTP_201_CREATED)
def add_client_note(
    client_id: uuid.UUID,
    data: NoteCreate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_CLIENTS)),
    session: Session = Depends(get_session)
):
    """Append a note; notes cannot be edited or removed"""
    client = get_scoped_or_404(session, Client, client_id, context, "Client")
    note = add_note(session, client, context, data.content, data.is_private)
    session.commit()
    session.refresh(note)
    return DataResponse(data=NoteResponse.model_validate(note), message="Note added successfully")
