"""
Credential checks, session issuing and self-service registration
"""

from datetime import datetime
from sqlmodel import Session, select
from typing import Optional, Tuple
import structlog

from app.core.auth import create_access_token, verify_password
from app.core.errors import AccountInactive, InvalidCredentials
from app.core.permissions import RoleName
from app.core.tenant_resolver import ensure_tenant_usable, find_tenant_by_subdomain
from app.models.company import Company
from app.models.role import Role
from app.models.tenant import Tenant
from app.models.user import User
from app.services.tenants import provision_tenant

logger = structlog.get_logger(__name__)


def _find_login_user(session: Session, email: str, tenant: Optional[Tenant]) -> Optional[User]:
    email = email.lower()
    super_admin = session.exec(
        select(User).join(Role, Role.id == User.role_id).where(
            User.email == email, Role.name == RoleName.SUPER_ADMIN
        )
    ).first()

    if tenant is not None:
        user = session.exec(
            select(User).where(User.email == email, User.tenant_id == tenant.id)
        ).first()
        return user or super_admin

    if super_admin:
        return super_admin
    candidates = session.exec(select(User).where(User.email == email)).all()
    if len(candidates) == 1:
        return candidates[0]
    if candidates:
        logger.info("Ambiguous login without tenant", email=email, matches=len(candidates))
    return None


def authenticate(
    session: Session,
    email: str,
    password: str,
    tenant: Optional[Tenant] = None,
    subdomain: Optional[str] = None,
) -> Tuple[User, str]:
    """Check credentials and issue a session token.

    The tenant comes from the request host; the subdomain login field is
    only consulted when the host names none.
    """
    if tenant is None and subdomain:
        tenant = find_tenant_by_subdomain(session, subdomain)

    user = _find_login_user(session, email, tenant)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Login failed", email=email.lower())
        raise InvalidCredentials()

    if not user.is_active:
        logger.info("Login refused for inactive user", user_id=str(user.id))
        raise AccountInactive()

    if user.tenant_id:
        ensure_tenant_usable(session.get(Tenant, user.tenant_id))
    if user.company_id:
        company = session.get(Company, user.company_id)
        if company is not None and not company.is_active:
            raise AccountInactive("Company account is inactive")

    user.last_login_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)

    logger.info("User logged in", user_id=str(user.id), tenant_id=str(user.tenant_id))
    return user, create_access_token(user.id, user.tenant_id)


def register_account(session: Session, data) -> Tuple[Tenant, Company, User, str]:
    """Create a trial tenant, its company and the first company admin"""
    tenant, company, user = provision_tenant(
        session,
        tenant_data={
            "name": data.tenant_name,
            "subdomain": data.subdomain,
            "email": data.tenant_email or data.email,
            "plan": data.plan,
            "phone": data.phone,
            "website": data.website,
            "industry": data.industry,
        },
        company_name=data.company_name,
        admin={
            "email": data.email,
            "password": data.password,
            "first_name": data.first_name,
            "last_name": data.last_name,
            "phone": data.phone,
        },
    )
    user.last_login_at = datetime.utcnow()
    session.add(user)
    session.commit()
    session.refresh(user)
    session.refresh(tenant)
    session.refresh(company)

    logger.info("Account registered", tenant_id=str(tenant.id), user_id=str(user.id))
    return tenant, company, user, create_access_token(user.id, tenant.id)
