"""
Authentication and authorization dependencies for FastAPI
"""

from dataclasses import dataclass, field
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session
from typing import Optional, Set
import uuid
import structlog

from app.core.auth import verify_token
from app.core.database import get_session
from app.core.errors import AccountInactive, SessionInvalid
from app.core.permissions import Permission, Requirement, RoleName, ensure
from app.core.tenant_resolver import enforce_tenant_policy, ensure_tenant_usable, get_request_tenant
from app.models.company import Company
from app.models.role import Role
from app.models.tenant import Tenant
from app.models.user import User

logger = structlog.get_logger(__name__)
security = HTTPBearer(auto_error=False)


@dataclass
class AuthContext:
    """The caller as re-read from the store for this request"""
    user: User
    role: Role
    permissions: Set[str] = field(default_factory=set)
    tenant: Optional[Tenant] = None
    company: Optional[Company] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role.name == RoleName.SUPER_ADMIN

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def tenant_id(self) -> Optional[uuid.UUID]:
        return self.tenant.id if self.tenant else self.user.tenant_id

    @property
    def company_id(self) -> Optional[uuid.UUID]:
        return self.user.company_id

    @property
    def role_name(self) -> str:
        return RoleName(self.role.name).value


def load_auth_context(session: Session, user_id: uuid.UUID, tenant: Optional[Tenant], host: str) -> AuthContext:
    """Resolve user, role, company and tenant for an authenticated user id"""
    user = session.get(User, user_id)
    if not user:
        raise SessionInvalid()
    if not user.is_active:
        raise AccountInactive()

    role = session.get(Role, user.role_id)
    if not role or not role.is_active:
        raise SessionInvalid()

    is_super_admin = role.name == RoleName.SUPER_ADMIN
    enforce_tenant_policy(tenant, user, is_super_admin, host)

    company = session.get(Company, user.company_id) if user.company_id else None
    if not is_super_admin:
        if tenant is None and user.tenant_id:
            tenant = session.get(Tenant, user.tenant_id)
        if tenant is not None:
            ensure_tenant_usable(tenant)
        if company is not None and not company.is_active:
            raise AccountInactive("Company account is inactive")

    return AuthContext(
        user=user,
        role=role,
        permissions=set(role.permissions or []),
        tenant=tenant,
        company=company,
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tenant: Optional[Tenant] = Depends(get_request_tenant),
    session: Session = Depends(get_session)
) -> AuthContext:
    """Authenticate the bearer token and load the caller from the store"""
    if credentials is None:
        raise SessionInvalid()

    user_id = verify_token(credentials.credentials)
    context = load_auth_context(session, user_id, tenant, request.headers.get("host", ""))

    request.state.user = context.user
    logger.debug("User authenticated", user_id=str(user_id), role=context.role_name)
    return context


def require(*requirements: Requirement):
    """Dependency factory enforcing one or more requirements"""
    def check_requirements(context: AuthContext = Depends(get_current_user)) -> AuthContext:
        ensure(context, *requirements)
        return context
    return check_requirements


def require_permission(*permissions: Permission):
    """Shortcut for require(Requirement.has(p), ...)"""
    return require(*(Requirement.has(p) for p in permissions))


def require_super_admin():
    return require(Requirement.super_admin_only())
