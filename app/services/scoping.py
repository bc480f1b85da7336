"""
Company/tenant scoping for entity queries

Non-super-admin callers only ever see rows of their own company. Rows
outside that scope are indistinguishable from rows that do not exist.
"""

from sqlalchemy import false
from sqlmodel import Session, col, select
from typing import Optional, Type
import uuid

from app.core.dependencies import AuthContext
from app.core.errors import NotFound, ValidationError
from app.models.company import Company
from app.models.user import User


def _company_column(model: Type):
    return col(model.id) if model is Company else col(model.company_id)


def scope_statement(
    statement,
    model: Type,
    context: AuthContext,
    company_id: Optional[uuid.UUID] = None,
    tenant_id: Optional[uuid.UUID] = None,
):
    """Restrict a select to the rows the caller may address.

    Super admins are unrestricted but may narrow with explicit filters.
    """
    company_column = _company_column(model)

    if context.is_super_admin:
        if company_id:
            statement = statement.where(company_column == company_id)
        if tenant_id:
            statement = statement.where(col(model.tenant_id) == tenant_id)
        return statement

    if context.company_id is None or context.user.tenant_id is None:
        return statement.where(false())

    return statement.where(
        company_column == context.company_id,
        col(model.tenant_id) == context.user.tenant_id,
    )


def get_scoped_or_404(session: Session, model: Type, entity_id: uuid.UUID, context: AuthContext, label: str = "Resource"):
    """Fetch one row by id within the caller's scope or raise NotFound"""
    statement = scope_statement(select(model).where(col(model.id) == entity_id), model, context)
    entity = session.exec(statement).first()
    if not entity:
        raise NotFound(f"{label} not found")
    return entity


def resolve_target_company(session: Session, context: AuthContext, company_id: Optional[uuid.UUID]) -> Company:
    """Company that newly created records belong to.

    Regular users always write into their own company; super admins must
    name an existing one.
    """
    if not context.is_super_admin:
        if context.company is None:
            raise NotFound("Company not found")
        return context.company

    if company_id is None:
        raise ValidationError.for_field("company_id", "Company is required")
    company = session.get(Company, company_id)
    if not company:
        raise NotFound("Company not found")
    return company


def validate_assignee(session: Session, company: Company, user_id: Optional[uuid.UUID]) -> Optional[uuid.UUID]:
    """Ensure an assigned user belongs to the record's company"""
    if user_id is None:
        return None
    assignee = session.get(User, user_id)
    if not assignee or assignee.company_id != company.id or not assignee.is_active:
        raise ValidationError.for_field("assigned_to", "Assigned user must be an active member of the company")
    return assignee.id
