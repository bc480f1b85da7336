"""
Dashboard API endpoints
"""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
from typing import List, Optional
import uuid

from app.core.database import get_session
from app.core.dependencies import AuthContext, require_permission
from app.core.permissions import Permission
from app.schemas.common import DataResponse
from app.services import analytics

router = APIRouter()


@router.get("/overview", response_model=DataResponse[dict])
def dashboard_overview(
    company_id: Optional[uuid.UUID] = None,
    context: AuthContext = Depends(require_permission(Permission.VIEW_DASHBOARD)),
    session: Session = Depends(get_session)
):
    scope = analytics.Scope(session, context, company_id)
    return DataResponse(data=analytics.overview(scope))


@router.get("/funnel", response_model=DataResponse[List[dict]])
def sales_funnel(
    company_id: Optional[uuid.UUID] = None,
    context: AuthContext = Depends(require_permission(Permission.VIEW_DASHBOARD)),
    session: Session = Depends(get_session)
):
    scope = analytics.Scope(session, context, company_id)
    return DataResponse(data=analytics.funnel(scope))


@router.get("/performance", response_model=DataResponse[dict])
def performance_metrics(
    months: int = Query(6, ge=1, le=36),
    company_id: Optional[uuid.UUID] = None,
    context: AuthContext = Depends(require_permission(Permission.VIEW_DASHBOARD, Permission.VIEW_ANALYTICS)),
    session: Session = Depends(get_session)
):
    scope = analytics.Scope(session, context, company_id)
    return DataResponse(data=analytics.performance(scope, months))


@router.get("/tasks", response_model=DataResponse[dict])
def upcoming_tasks(
    company_id: Optional[uuid.UUID] = None,
    context: AuthContext = Depends(require_permission(Permission.VIEW_DASHBOARD)),
    session: Session = Depends(get_session)
):
    scope = analytics.Scope(session, context, company_id)
    return DataResponse(data=analytics.upcoming_tasks(scope))
