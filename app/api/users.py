"""
Users API endpoints
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select
from datetime import datetime
from typing import Dict, Optional
import structlog
import uuid

from app.core.database import get_session
from app.core.dependencies import AuthContext, require_permission
from app.core.errors import CRMError, Forbidden, ServerError, ValidationError
from app.core.permissions import ADMIN_ROLES, Permission, RoleName
from app.models.company import Company
from app.models.role import Role
from app.models.tenant import Tenant
from app.models.user import User
from app.schemas.common import DataResponse, ListResponse, MessageResponse, list_response
from app.schemas.user import UserCreate, UserResponse, UserUpdate
from app.services.pagination import PageParams, page_params, paginate, search_clause
from app.services.scoping import get_scoped_or_404, resolve_target_company, scope_statement
from app.services.seed import get_role
from app.services.tenants import (
    adjust_head_count,
    create_user,
    email_taken,
    ensure_company_capacity,
    ensure_user_capacity,
)

logger = structlog.get_logger(__name__)
router = APIRouter()


def _roles_by_id(session: Session) -> Dict[uuid.UUID, Role]:
    return {role.id: role for role in session.exec(select(Role)).all()}


def _to_response(session: Session, user: User) -> UserResponse:
    return UserResponse.from_user(user, session.get(Role, user.role_id))


@router.get("", response_model=ListResponse[UserResponse])
def list_users(
    search: Optional[str] = None,
    role: Optional[RoleName] = None,
    is_active: Optional[bool] = None,
    company_id: Optional[uuid.UUID] = None,
    params: PageParams = Depends(page_params),
    context: AuthContext = Depends(require_permission(Permission.READ_USERS)),
    session: Session = Depends(get_session)
):
    """List users in the caller's company"""
    statement = scope_statement(select(User), User, context, company_id=company_id)

    clause = search_clause(search, User.first_name, User.last_name, User.email)
    if clause is not None:
        statement = statement.where(clause)
    if role is not None:
        statement = statement.where(
            col(User.role_id).in_(select(Role.id).where(Role.name == role))
        )
    if is_active is not None:
        statement = statement.where(User.is_active == is_active)

    page = paginate(session, statement, params, col(User.created_at).desc())
    roles = _roles_by_id(session)
    items = [UserResponse.from_user(user, roles[user.role_id]) for user in page.items]
    return list_response(page, items)


@router.get("/{user_id}", response_model=DataResponse[UserResponse])
def get_user(
    user_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.READ_USERS)),
    session: Session = Depends(get_session)
):
    user = get_scoped_or_404(session, User, user_id, context, "User")
    return DataResponse(data=_to_response(session, user))


@router.post("", response_model=DataResponse[UserResponse], status_code=status.HTTP_201_CREATED)
def create_user_endpoint(
    data: UserCreate,
    context: AuthContext = Depends(require_permission(Permission.CREATE_USERS)),
    session: Session = Depends(get_session)
):
    """Create a user in a company, counting against the tenant's user limit"""
    role = get_role(session, data.role)
    if role.name == RoleName.SUPER_ADMIN and not context.is_super_admin:
        raise Forbidden()

    company = tenant = None
    if role.name != RoleName.SUPER_ADMIN:
        company = resolve_target_company(session, context, data.company_id)
        tenant = session.get(Tenant, company.tenant_id)

    try:
        user = create_user(
            session,
            role=role,
            email=data.email,
            password=data.password,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            tenant=tenant,
            company=company,
            created_by=context.user_id,
            is_active=data.is_active,
        )
        session.commit()
        session.refresh(user)
    except CRMError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ValidationError.for_field("email", "User already exists with this email")
    except Exception as e:
        session.rollback()
        logger.error("Failed to create user", email=data.email, error=str(e))
        raise ServerError("Failed to create user")

    logger.info("User created", user_id=str(user.id), role=role.name.value, created_by=str(context.user_id))
    return DataResponse(data=UserResponse.from_user(user, role), message="User created successfully")


@router.put("/{user_id}", response_model=DataResponse[UserResponse])
def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_USERS)),
    session: Session = Depends(get_session)
):
    """Update a user.

    Role, company and active flag are only honoured for administrators, and
    nobody changes their own role or active flag.
    """
    user = get_scoped_or_404(session, User, user_id, context, "User")
    changes = data.model_dump(exclude_unset=True)

    if context.role_name not in ADMIN_ROLES:
        for key in ("role", "company_id", "is_active"):
            changes.pop(key, None)
    if user.id == context.user_id:
        changes.pop("role", None)
        changes.pop("is_active", None)

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        if email_taken(session, changes["email"], user.tenant_id, user.id):
            raise ValidationError.for_field("email", "User already exists with this email")

    try:
        if "role" in changes:
            role_name = changes.pop("role")
            if role_name is not None:
                if role_name == RoleName.SUPER_ADMIN and not context.is_super_admin:
                    raise Forbidden()
                user.role_id = get_role(session, role_name).id

        if "company_id" in changes:
            company_id = changes.pop("company_id")
            if company_id is not None and company_id != user.company_id:
                company = resolve_target_company(session, context, company_id)
                if company.tenant_id != user.tenant_id:
                    raise ValidationError.for_field("company_id", "Company belongs to another tenant")
                if user.is_active:
                    ensure_company_capacity(company)
                    adjust_head_count(session, user, -1)
                user.company_id = company.id
                if user.is_active:
                    adjust_head_count(session, user, 1)

        if "is_active" in changes:
            is_active = changes.pop("is_active")
            if is_active is not None and is_active != user.is_active:
                if is_active:
                    ensure_user_capacity(session.get(Tenant, user.tenant_id) if user.tenant_id else None)
                    ensure_company_capacity(session.get(Company, user.company_id) if user.company_id else None)
                user.is_active = is_active
                adjust_head_count(session, user, 1 if is_active else -1)

        for key, value in changes.items():
            if value is not None:
                setattr(user, key, value)
        user.updated_at = datetime.utcnow()
        session.add(user)
        session.commit()
        session.refresh(user)
    except CRMError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ValidationError.for_field("email", "User already exists with this email")
    except Exception as e:
        session.rollback()
        logger.error("Failed to update user", user_id=str(user_id), error=str(e))
        raise ServerError("Failed to update user")

    return DataResponse(data=_to_response(session, user), message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.DELETE_USERS)),
    session: Session = Depends(get_session)
):
    """Deactivate a user; accounts are never hard-deleted"""
    user = get_scoped_or_404(session, User, user_id, context, "User")
    if user.id == context.user_id:
        raise ValidationError("Cannot delete your own account")

    if user.is_active:
        user.is_active = False
        user.updated_at = datetime.utcnow()
        adjust_head_count(session, user, -1)
        session.add(user)
        session.commit()

    logger.info("User deactivated", user_id=str(user.id), by=str(context.user_id))
    return MessageResponse(message="User deactivated successfully")


@router.put("/{user_id}/activate", response_model=DataResponse[UserResponse])
def activate_user(
    user_id: uuid.UUID,
    context: AuthContext = Depends(require_permission(Permission.UPDATE_USERS)),
    session: Session = Depends(get_session)
):
    user = get_scoped_or_404(session, User, user_id, context, "User")
    if context.role_name not in ADMIN_ROLES:
        raise Forbidden()

    if not user.is_active:
        ensure_user_capacity(session.get(Tenant, user.tenant_id) if user.tenant_id else None)
        company = session.get(Company, user.company_id) if user.company_id else None
        if company is not None and not company.is_active:
            raise ValidationError("Cannot activate a user of an inactive company")
        ensure_company_capacity(company)
        user.is_active = True
        user.updated_at = datetime.utcnow()
        adjust_head_count(session, user, 1)
        session.add(user)
        session.commit()
        session.refresh(user)

    return DataResponse(data=_to_response(session, user), message="User activated successfully")
