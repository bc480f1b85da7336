"""
Tenant provisioning, user accounting and usage reporting
"""

from datetime import datetime, timedelta
from sqlalchemy import func
from sqlmodel import Session, col, select
from typing import Any, Dict, Optional
import re
import structlog

from app.core.auth import hash_password
from app.core.errors import ValidationError
from app.core.permissions import RoleName
from app.models.company import Company, CompanyPlan
from app.models.role import Role
from app.models.tenant import Tenant, TenantPlan
from app.models.user import User
from app.services.seed import get_role

logger = structlog.get_logger(__name__)

SUBDOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{1,61}[a-z0-9])$")
RESERVED_SUBDOMAINS = {"www", "api", "admin", "app", "mail"}


def normalize_subdomain(subdomain: str) -> str:
    subdomain = (subdomain or "").strip().lower()
    if not SUBDOMAIN_RE.match(subdomain) or subdomain in RESERVED_SUBDOMAINS:
        raise ValidationError.for_field(
            "subdomain",
            "Subdomain must be 3-63 lowercase letters, digits or hyphens and not reserved",
        )
    return subdomain


def create_tenant(
    session: Session,
    *,
    name: str,
    subdomain: str,
    email: str,
    plan: TenantPlan = TenantPlan.TRIAL,
    **fields: Any,
) -> Tenant:
    """Add a tenant to the session after checking subdomain uniqueness"""
    subdomain = normalize_subdomain(subdomain)
    existing = session.exec(select(Tenant).where(Tenant.subdomain == subdomain)).first()
    if existing:
        raise ValidationError.for_field("subdomain", "Subdomain is already taken")

    tenant = Tenant(name=name, subdomain=subdomain, email=email.lower(), **fields)
    tenant.apply_plan(plan)
    session.add(tenant)
    session.flush()
    logger.info("Tenant created", tenant_id=str(tenant.id), subdomain=subdomain, plan=tenant.plan.value)
    return tenant


def create_company(
    session: Session,
    tenant: Tenant,
    *,
    name: str,
    email: str,
    plan: CompanyPlan = CompanyPlan.STARTER,
    max_users: int = 5,
    **fields: Any,
) -> Company:
    company = Company(
        tenant_id=tenant.id,
        name=name,
        email=email.lower(),
        plan=plan,
        max_users=max_users,
        **fields,
    )
    company.refresh_price()
    session.add(company)
    session.flush()
    logger.info("Company created", company_id=str(company.id), tenant_id=str(tenant.id))
    return company


def email_taken(session: Session, email: str, tenant_id, exclude_user_id=None) -> bool:
    statement = select(User).where(User.email == email.lower(), User.tenant_id == tenant_id)
    if exclude_user_id is not None:
        statement = statement.where(User.id != exclude_user_id)
    return session.exec(statement).first() is not None


def ensure_user_capacity(tenant: Optional[Tenant], count: int = 1):
    if tenant is not None and not tenant.can_add_user(count):
        raise ValidationError(f"User limit reached. Current plan allows {tenant.max_users} users.")


def ensure_company_capacity(company: Optional[Company], count: int = 1):
    if company is not None and not company.can_add_user(count):
        raise ValidationError(f"Company has reached maximum user limit ({company.max_users})")


def create_user(
    session: Session,
    *,
    role: Role,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    tenant: Optional[Tenant] = None,
    company: Optional[Company] = None,
    phone: Optional[str] = None,
    created_by=None,
    is_active: bool = True,
) -> User:
    """Create a user and update tenant/company head counts"""
    email = email.lower()
    if role.name == RoleName.SUPER_ADMIN:
        tenant = company = None
        duplicate = session.exec(
            select(User).where(User.email == email, User.role_id == role.id)
        ).first() is not None
    else:
        if tenant is None or company is None:
            raise ValidationError.for_field("company_id", "Users must belong to a company")
        duplicate = email_taken(session, email, tenant.id)
    if duplicate:
        raise ValidationError.for_field("email", "User already exists with this email")

    if is_active:
        ensure_user_capacity(tenant)
        ensure_company_capacity(company)

    user = User(
        tenant_id=tenant.id if tenant else None,
        company_id=company.id if company else None,
        role_id=role.id,
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        is_active=is_active,
        created_by=created_by,
    )
    session.add(user)
    if is_active:
        adjust_head_count(session, user, 1)
    session.flush()
    return user


def adjust_head_count(session: Session, user: User, delta: int):
    """Keep current_users on tenant and company in step with active users"""
    now = datetime.utcnow()
    if user.tenant_id:
        tenant = session.get(Tenant, user.tenant_id)
        if tenant:
            tenant.current_users = max(0, tenant.current_users + delta)
            tenant.updated_at = now
            session.add(tenant)
    if user.company_id:
        company = session.get(Company, user.company_id)
        if company:
            company.current_users = max(0, company.current_users + delta)
            company.updated_at = now
            session.add(company)


def provision_tenant(
    session: Session,
    *,
    tenant_data: Dict[str, Any],
    company_name: Optional[str] = None,
    admin: Optional[Dict[str, Any]] = None,
):
    """Create a tenant, its first company and optionally a company admin.

    Adds to the session without committing so callers control the
    transaction.
    """
    tenant = create_tenant(session, **tenant_data)
    company = create_company(
        session,
        tenant,
        name=company_name or tenant.name,
        email=tenant.email,
        phone=tenant.phone,
        website=tenant.website,
        industry=tenant.industry,
        max_users=tenant.max_users,
    )

    user = None
    if admin:
        user = create_user(
            session,
            role=get_role(session, RoleName.COMPANY_ADMIN),
            tenant=tenant,
            company=company,
            **admin,
        )
    return tenant, company, user


def tenant_usage(session: Session, tenant: Tenant) -> Dict[str, Any]:
    """Usage, limits and subscription summary for a tenant"""
    user_filter = col(User.tenant_id) == tenant.id
    total = session.exec(select(func.count()).select_from(User).where(user_filter)).one()
    active = session.exec(
        select(func.count()).select_from(User).where(user_filter, col(User.is_active).is_(True))
    ).one()
    recent = session.exec(
        select(func.count()).select_from(User).where(
            user_filter, col(User.created_at) >= datetime.utcnow() - timedelta(days=30)
        )
    ).one()

    return {
        "limits": {"max_users": tenant.max_users, "max_storage": tenant.max_storage},
        "usage": {
            "users": {
                "total": total,
                "active": active,
                "inactive": total - active,
                "recent": recent,
                "percentage": tenant.user_usage_percent,
                "remaining": max(0, tenant.max_users - tenant.current_users),
            },
            "storage": {
                "used": tenant.current_storage,
                "percentage": tenant.storage_usage_percent,
                "remaining": max(0, tenant.max_storage - tenant.current_storage),
            },
        },
        "subscription": {
            "plan": tenant.plan.value,
            "status": tenant.status.value,
            "is_trial_active": tenant.is_trial_active,
            "trial_days_remaining": tenant.trial_days_remaining,
            "is_subscription_active": tenant.is_subscription_active,
            "monthly_price": tenant.monthly_price,
            "yearly_price": tenant.yearly_price,
        },
    }


def check_limit(tenant: Tenant, action: str, quantity: int = 1) -> Dict[str, Any]:
    """Whether the tenant can add users or storage"""
    if action == "add_user":
        can_perform = tenant.can_add_user(quantity)
        limit, current = tenant.max_users, tenant.current_users
        message = "User can be added" if can_perform else f"User limit reached. Current plan allows {limit} users."
    elif action == "add_storage":
        can_perform = tenant.can_add_storage(quantity)
        limit, current = tenant.max_storage, tenant.current_storage
        message = "Storage can be added" if can_perform else f"Storage limit reached. Current plan allows {limit}MB."
    else:
        raise ValidationError.for_field("action", "Invalid action specified")

    return {
        "can_perform": can_perform,
        "message": message,
        "limit": limit,
        "current": current,
        "remaining": limit - current,
    }
