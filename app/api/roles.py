"""
Roles API endpoints
"""

from fastapi import APIRouter, Depends
from sqlmodel import Session, col, select
from typing import List

from app.core.database import get_session
from app.core.dependencies import AuthContext, get_current_user
from app.core.permissions import RoleName
from app.models.role import Role
from app.schemas.common import DataResponse
from app.schemas.user import RoleResponse

router = APIRouter()


@router.get("", response_model=DataResponse[List[RoleResponse]])
def list_roles(
    context: AuthContext = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Active roles; super_admin is only listed for super admins"""
    statement = select(Role).where(col(Role.is_active).is_(True))
    if not context.is_super_admin:
        statement = statement.where(Role.name != RoleName.SUPER_ADMIN)
    roles = session.exec(statement.order_by(col(Role.created_at))).all()
    return DataResponse(data=[RoleResponse.model_validate(role) for role in roles])
