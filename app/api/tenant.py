"""
Current-tenant API endpoints: info, settings, usage and plan limits
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session
from datetime import datetime
import structlog

from app.core.database import get_session
from app.core.dependencies import AuthContext, get_current_user, require_permission
from app.core.errors import NotFound
from app.core.permissions import Permission
from app.models.tenant import Tenant
from app.schemas.common import DataResponse
from app.schemas.tenant import CheckLimitRequest, TenantResponse, TenantSettingsUpdate
from app.services.tenants import check_limit, tenant_usage

logger = structlog.get_logger(__name__)
router = APIRouter()


def _current_tenant(context: AuthContext, session: Session) -> Tenant:
    """The tenant the caller is acting in"""
    tenant = context.tenant
    if tenant is None and context.tenant_id:
        tenant = session.get(Tenant, context.tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")
    return tenant


@router.get("/info", response_model=DataResponse[TenantResponse])
def tenant_info(
    context: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    tenant = _current_tenant(context, session)
    return DataResponse(data=TenantResponse.model_validate(tenant))


@router.put("/settings", response_model=DataResponse[TenantResponse])
def update_tenant_settings(
    data: TenantSettingsUpdate,
    context: AuthContext = Depends(require_permission(Permission.MANAGE_SETTINGS)),
    session: Session = Depends(get_session)
):
    """Update the whitelisted profile fields and display settings"""
    tenant = _current_tenant(context, session)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
    if changes.get("settings") is not None:
        changes["settings"] = {**(tenant.settings or {}), **changes["settings"]}

    for key, value in changes.items():
        if value is not None:
            setattr(tenant, key, value)
    tenant.updated_at = datetime.utcnow()
    session.add(tenant)
    session.commit()
    session.refresh(tenant)

    logger.info("Tenant settings updated", tenant_id=str(tenant.id), by=str(context.user_id))
    return DataResponse(data=TenantResponse.model_validate(tenant), message="Tenant settings updated successfully")


@router.get("/usage", response_model=DataResponse[dict])
def get_tenant_usage(
    context: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    tenant = _current_tenant(context, session)
    return DataResponse(data=tenant_usage(session, tenant))


@router.post("/check-limit", response_model=DataResponse[dict])
def check_tenant_limit(
    data: CheckLimitRequest,
    context: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Whether the tenant's plan allows adding users or storage"""
    tenant = _current_tenant(context, session)
    return DataResponse(data=check_limit(tenant, data.action, data.quantity))
