"""
Super-admin API endpoints
Cross-tenant dashboard and tenant lifecycle management
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlmodel import Session, col, select
from datetime import datetime
from typing import Optional
import structlog
import uuid

from app.core.database import get_session
from app.core.dependencies import AuthContext, require_super_admin
from app.core.errors import CRMError, NotFound, ServerError
from app.models.client import Client
from app.models.company import Company
from app.models.lead import Lead
from app.models.tenant import Tenant, TenantPlan, TenantStatus
from app.models.user import User
from app.schemas.common import DataResponse, ListResponse, list_response
from app.schemas.tenant import (
    TenantCreate, TenantDetailResponse, TenantResponse, TenantStats, TenantUpdate,
)
from app.services.pagination import PageParams, page_params, paginate, search_clause
from app.services.tenants import provision_tenant

logger = structlog.get_logger(__name__)
router = APIRouter()


def _count(session: Session, model, *conditions) -> int:
    return session.exec(select(func.count()).select_from(model).where(*conditions)).one()


def _get_tenant(session: Session, tenant_id: uuid.UUID) -> Tenant:
    tenant = session.get(Tenant, tenant_id)
    if not tenant:
        raise NotFound("Tenant not found")
    return tenant


def _detail(session: Session, tenant: Tenant) -> TenantDetailResponse:
    stats = TenantStats(
        companies=_count(session, Company, Company.tenant_id == tenant.id),
        users=_count(session, User, User.tenant_id == tenant.id),
        active_users=_count(session, User, User.tenant_id == tenant.id, col(User.is_active).is_(True)),
        clients=_count(session, Client, Client.tenant_id == tenant.id),
        leads=_count(session, Lead, Lead.tenant_id == tenant.id),
    )
    return TenantDetailResponse(**TenantResponse.model_validate(tenant).model_dump(), stats=stats)


def _set_status(session: Session, tenant: Tenant, new_status: TenantStatus, context: AuthContext) -> Tenant:
    tenant.status = new_status
    tenant.updated_at = datetime.utcnow()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    logger.info("Tenant status changed", tenant_id=str(tenant.id), status=new_status.value, by=str(context.user_id))
    return tenant


@router.get("/dashboard", response_model=DataResponse[dict])
def dashboard(
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    """Platform-wide totals, plan distribution and recent signups"""
    total_tenants = _count(session, Tenant)
    active_tenants = _count(session, Tenant, Tenant.status == TenantStatus.ACTIVE)
    trial_tenants = _count(session, Tenant, Tenant.plan == TenantPlan.TRIAL)

    paid = session.exec(
        select(Tenant).where(Tenant.plan != TenantPlan.TRIAL, Tenant.status == TenantStatus.ACTIVE)
    ).all()

    plan_distribution = {plan.value: 0 for plan in TenantPlan}
    for plan, count in session.exec(select(Tenant.plan, func.count()).group_by(Tenant.plan)).all():
        plan_distribution[TenantPlan(plan).value] = count

    recent = session.exec(select(Tenant).order_by(col(Tenant.created_at).desc()).limit(5)).all()

    return DataResponse(data={
        "overview": {
            "total_tenants": total_tenants,
            "active_tenants": active_tenants,
            "trial_tenants": trial_tenants,
            "inactive_tenants": total_tenants - active_tenants,
            "total_users": _count(session, User),
            "total_leads": _count(session, Lead),
            "total_clients": _count(session, Client),
            "monthly_revenue": round(sum(t.monthly_price for t in paid), 2),
        },
        "plan_distribution": plan_distribution,
        "recent_tenants": [
            {
                "id": str(t.id),
                "name": t.name,
                "subdomain": t.subdomain,
                "plan": t.plan.value,
                "status": t.status.value,
                "created_at": t.created_at.isoformat(),
            }
            for t in recent
        ],
    })


@router.get("/tenants", response_model=ListResponse[TenantResponse])
def list_tenants(
    search: Optional[str] = None,
    status: Optional[TenantStatus] = None,
    plan: Optional[TenantPlan] = None,
    params: PageParams = Depends(page_params),
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    statement = select(Tenant)

    clause = search_clause(search, Tenant.name, Tenant.subdomain, Tenant.email)
    if clause is not None:
        statement = statement.where(clause)
    if status is not None:
        statement = statement.where(Tenant.status == status)
    if plan is not None:
        statement = statement.where(Tenant.plan == plan)

    page = paginate(session, statement, params, col(Tenant.created_at).desc())
    return list_response(page, [TenantResponse.model_validate(t) for t in page.items])


@router.get("/tenants/{tenant_id}", response_model=DataResponse[TenantDetailResponse])
def get_tenant(
    tenant_id: uuid.UUID,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    return DataResponse(data=_detail(session, _get_tenant(session, tenant_id)))


@router.post("/tenants", response_model=DataResponse[TenantDetailResponse], status_code=status.HTTP_201_CREATED)
def create_tenant(
    data: TenantCreate,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    """Provision a tenant with its default company and optional admin user"""
    try:
        tenant, company, admin = provision_tenant(
            session,
            tenant_data=data.model_dump(exclude={"company_name", "admin_user"}),
            company_name=data.company_name,
            admin={**data.admin_user.model_dump(), "created_by": context.user_id} if data.admin_user else None,
        )
        session.commit()
        session.refresh(tenant)
    except CRMError:
        session.rollback()
        raise
    except Exception as e:
        session.rollback()
        logger.error("Failed to create tenant", subdomain=data.subdomain, error=str(e))
        raise ServerError("Failed to create tenant")

    logger.info(
        "Tenant provisioned",
        tenant_id=str(tenant.id),
        company_id=str(company.id),
        admin_id=str(admin.id) if admin else None,
        by=str(context.user_id),
    )
    return DataResponse(data=_detail(session, tenant), message="Tenant created successfully")


@router.put("/tenants/{tenant_id}", response_model=DataResponse[TenantResponse])
def update_tenant(
    tenant_id: uuid.UUID,
    data: TenantUpdate,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    """Update a tenant; a plan change re-applies the plan's limits"""
    tenant = _get_tenant(session, tenant_id)
    changes = data.model_dump(exclude_unset=True)

    plan = changes.pop("plan", None)
    if plan is not None and plan != tenant.plan:
        tenant.apply_plan(plan)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()

    for key, value in changes.items():
        if value is not None:
            setattr(tenant, key, value)
    tenant.updated_at = datetime.utcnow()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)

    logger.info("Tenant updated", tenant_id=str(tenant.id), by=str(context.user_id))
    return DataResponse(data=TenantResponse.model_validate(tenant), message="Tenant updated successfully")


@router.delete("/tenants/{tenant_id}", response_model=DataResponse[TenantResponse])
def delete_tenant(
    tenant_id: uuid.UUID,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    """Cancel a tenant; its data is kept"""
    tenant = _set_status(session, _get_tenant(session, tenant_id), TenantStatus.CANCELLED, context)
    return DataResponse(data=TenantResponse.model_validate(tenant), message="Tenant cancelled successfully")


@router.put("/tenants/{tenant_id}/suspend", response_model=DataResponse[TenantResponse])
def suspend_tenant(
    tenant_id: uuid.UUID,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    tenant = _set_status(session, _get_tenant(session, tenant_id), TenantStatus.SUSPENDED, context)
    return DataResponse(data=TenantResponse.model_validate(tenant), message="Tenant suspended successfully")


@router.put("/tenants/{tenant_id}/activate", response_model=DataResponse[TenantResponse])
def activate_tenant(
    tenant_id: uuid.UUID,
    context: AuthContext = Depends(require_super_admin()),
    session: Session = Depends(get_session)
):
    tenant = _set_status(session, _get_tenant(session, tenant_id), TenantStatus.ACTIVE, context)
    return DataResponse(data=TenantResponse.model_validate(tenant), message="Tenant activated successfully")
