"""
Companies API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlmodel import Session, col, select
from datetime import datetime
from typing import Optional
import structlog
import uuid

from app.core.database import get_session
from app.core.dependencies import AuthContext, require_permission, require_super_admin
from app.core.errors import CRMError, NotFound, ServerError, ValidationError
from app.core.permissions import Permission
from app.models.client import Client, ClientStatus
from app.models.company import Company, CompanyPlan
from app.models.lead import CLOSED_STATUSES, Lead
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.common import DataResponse, ListResponse, MessageResponse, list_response
from app.schemas.company import CompanyCreate, CompanyPlanUpdate, CompanyResponse, CompanyUpdate
from app.services.pagination import PageParams, page_params, paginate, search_clause
from app.services.scoping import get_scoped_or_404, scope_statement
from app.services.tenants import create_company

logger = structlog.get_logger(__name__)
router = APIRouter()


def _count(session: Session, model, *conditions) -> int:
    return session.exec(select(func.count()).select_from(model).where(*conditions)).one()


@router.get("", response_model=ListResponse[CompanyResponse])
def list_companies(
    search: Optional[str] = None,
    plan: Optional[CompanyPlan] = None,
    is_active: Optional[bool] = None,
    tenant_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    context: AuthContext = Depends(require_permission(Permission.READ_COMPANIES)),
    session: Session = Depends(get_session)
):
    statement = scope_statement(select(Company), Company, context, tenant_id=tenant_id)

    clause = search_clause(search, Company.name, Company.email, Company.industry)
    if clause is not None:
        statement = statement.where(clause)
    if plan is not None:
        statement = statement.where(Company.plan == plan)
    if is_active is not None:
        statement = statement.where(Company.is_active == is_active)

    page = paginate(session, statement, params, col(Company.created_at).desc())
    return list_response(page, [CompanyResponse.model_validate(c) for c in page.items])


@router.get("/{company_id}", response_model=DataResponse[CompanyResponse])
def get_company(
    company_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_COMPANIES)),
    session: Session = Depends(get_session)
):
    company = get_scoped_or_404(session, Company, company_id, context, "Company")
    return DataResponse(data=CompanyResponse.model_validate(company))


@router.post("", response_model=DataResponse[CompanyResponse], status_code=status.HTTP_201_CREATED)
def create_company_endpoint(
    data: CompanyCreate,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    """Create a company inside an existing tenant"""
    tenant = session.get(Tenant, data.tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")

    fields = data.model_dump(exclude={"tenant_id", "name", "email", "plan", "max_users", "settings"})
    if data.settings is not None:
        fields["settings"] = data.settings.model_dump()

    try:
        company = create_company(
            session,
            tenant,
            name=data.name,
            email=data.email,
            plan=data.plan,
            max_users=data.max_users,
            **fields,
        )
        session.commit()
        session.refresh(company)
    except CRMError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error("Failed to create company", tenant_id=str(tenant.id), error=str(e))
        raise ServerError("Failed to create company")

    return DataResponse(data=CompanyResponse.model_validate(company), message="Company created successfully")


@router.put("/{company_id}", response_model=DataResponse[CompanyResponse])
def update_company(
    company_id: uuid.UUID,
    data: CompanyUpdate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_COMPANIES)),
    session: Session = Depends(get_session)
):
    company = get_scoped_or_404(session, Company, company_id, context, "Company")
    changes = data.model_dump(exclude_unset=True)

    # Deactivating a company is reserved for super admins
    if not context.is_super_admin:
        changes.pop("is_active", None)

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
    if "settings" in changes and changes["settings"] is not None:
        changes["settings"] = {**(company.settings or {}), **changes["settings"]}

    for key, value in changes.items():
        if value is not None:
            setattr(company, key, value)
    company.updated_at = datetime.utcnow()
    session.add(company)
    session.commit()
    session.refresh(company)

    logger.info("Company updated", company_id=str(company.id), by=str(context.user_id))
    return DataResponse(data=CompanyResponse.model_validate(company), message="Company updated successfully")


@router.delete("/{company_id}", response_model=MessageResponse)
def delete_company(
    company_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.DELETE_COMPANIES)),
    session: Session = Depends(get_session)
):
    """Deactivate a company that has no active users"""
    company = get_scoped_or_404(session, Company, company_id, context, "Company")

    active_users = _count(session, User, User.company_id == company.id, col(User.is_active).is_(True))
    if active_users > 0:
        raise ValidationError("Cannot delete company with active users. Please deactivate all users first.")

    company.is_active = False
    company.updated_at = datetime.utcnow()
    session.add(company)
    session.commit()

    logger.info("Company deactivated", company_id=str(company.id), by=str(context.user_id))
    return MessageResponse(message="Company deactivated successfully")


@router.get("/{company_id}/stats", response_model=DataResponse[dict])
def company_stats(
    company_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_COMPANIES)),
    session: Session = Depends(get_session)
):
    """Head counts, client and lead totals for a company"""
    company = get_scoped_or_404(session, Company, company_id, context, "Company")

    total_users = _count(session, User, User.company_id == company.id)
    active_users = _count(session, User, User.company_id == company.id, col(User.is_active).is_(True))
    total_clients = _count(session, Client, Client.company_id == company.id)
    active_clients = _count(session, Client, Client.company_id == company.id, Client.status == ClientStatus.ACTIVE)
    total_leads = _count(session, Lead, Lead.company_id == company.id)
    open_leads = _count(session, Lead, Lead.company_id == company.id, col(Lead.status).not_in(list(CLOSED_STATUSES)))
    converted_leads = _count(session, Lead, Lead.company_id == company.id, col(Lead.converted_to_client).is_(True))

    return DataResponse(data={
        "company": {
            "name": company.name,
            "plan": company.plan.value,
            "max_users": company.max_users,
            "current_users": company.current_users,
            "monthly_price": company.monthly_price,
        },
        "users": {"total": total_users, "active": active_users, "inactive": total_users - active_users},
        "clients": {"total": total_clients, "active": active_clients},
        "leads": {"total": total_leads, "open": open_leads, "converted": converted_leads},
    })


@router.put("/{company_id}/plan", response_model=DataResponse[CompanyResponse])
def update_company_plan(
    company_id: uuid.UUID,
    data: CompanyPlanUpdate,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    """Change plan and seat count; the monthly price is recomputed"""
    company = session.get(Company, company_id)
    if not company:
        raise NotFound("Company not found")

    max_users = data.max_users if data.max_users is not None else company.max_users
    if max_users < company.current_users:
        raise ValidationError.for_field(
            "max_users",
            f"Company already has {company.current_users} active users",
        )

    company.plan = data.plan
    company.max_users = max_users
    company.refresh_price()
    company.updated_at = datetime.utcnow()
    session.add(company)
    session.commit()
    session.refresh(company)

    logger.info("Company plan changed", company_id=str(company.id), plan=company.plan.value)
    return DataResponse(data=CompanyResponse.model_validate(company), message="Company plan updated successfully")
