"""
Dashboard aggregates over a company's users, clients and leads

All queries go through scope_statement, so a non-super-admin only ever
aggregates their own company.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from sqlalchemy import func
from sqlmodel import Session, col, select
from typing import Any, Dict, List, Optional
import uuid

from app.core.dependencies import AuthContext
from app.models.client import Client, ClientStatus
from app.models.company import Company
from app.models.lead import CLOSED_STATUSES, PIPELINE_ORDER, Lead, LeadStatus
from app.models.note import ActivityStatus, LeadActivity
from app.models.user import User
from app.services.scoping import scope_statement

OPEN_STATUSES = [s for s in PIPELINE_ORDER if s not in CLOSED_STATUSES]
TASK_WINDOW = timedelta(days=7)
RECENT_WINDOW = timedelta(days=30)


class Scope:
    """Binds the caller and an optional company filter to statements"""

    def __init__(self, session: Session, context: AuthContext, company_id: Optional[uuid.UUID] = None):
        self.session = session
        self.context = context
        self.company_id = company_id

    def apply(self, statement, model):
        return scope_statement(statement, model, self.context, company_id=self.company_id)

    def count(self, model, *conditions) -> int:
        statement = select(func.count()).select_from(model).where(*conditions)
        return self.session.exec(self.apply(statement, model)).one()

    def scalar(self, expression, model):
        return self.session.exec(self.apply(select(expression), model)).one()


def _months_ago(now: datetime, months: int) -> datetime:
    month_index = now.year * 12 + (now.month - 1) - months
    return now.replace(year=month_index // 12, month=month_index % 12 + 1, day=1,
                       hour=0, minute=0, second=0, microsecond=0)


def overview(scope: Scope) -> Dict[str, Any]:
    """Headline counts, revenue, pipeline and 30-day activity"""
    now = datetime.utcnow()
    since = now - RECENT_WINDOW

    company = None
    company_id = scope.company_id if scope.context.is_super_admin else scope.context.company_id
    if company_id:
        company = scope.session.get(Company, company_id)

    revenue_total = scope.scalar(func.coalesce(func.sum(Client.value), 0), Client)
    revenue_average = scope.scalar(func.coalesce(func.avg(Client.value), 0), Client)
    open_filter = col(Lead.status).in_(OPEN_STATUSES)
    pipeline_total = scope.session.exec(scope.apply(
        select(func.coalesce(func.sum(Lead.estimated_value), 0)).where(open_filter), Lead
    )).one()
    pipeline_weighted = scope.session.exec(scope.apply(
        select(func.coalesce(func.sum(Lead.estimated_value * Lead.probability / 100.0), 0)).where(open_filter), Lead
    )).one()

    return {
        "company": {
            "name": company.name,
            "plan": company.plan.value,
            "max_users": company.max_users,
            "current_users": company.current_users,
            "monthly_price": company.monthly_price,
        } if company else None,
        "users": {
            "total": scope.count(User),
            "active": scope.count(User, col(User.is_active).is_(True)),
        },
        "clients": {
            "total": scope.count(Client),
            "active": scope.count(Client, Client.status == ClientStatus.ACTIVE),
        },
        "leads": {
            "total": scope.count(Lead),
            "open": scope.count(Lead, open_filter),
        },
        "revenue": {
            "total": float(revenue_total or 0),
            "average": round(float(revenue_average or 0), 2),
        },
        "pipeline": {
            "total": float(pipeline_total or 0),
            "weighted": round(float(pipeline_weighted or 0), 2),
        },
        "recent": {
            "clients": scope.count(Client, col(Client.created_at) >= since),
            "leads": scope.count(Lead, col(Lead.created_at) >= since),
            "conversions": scope.count(
                Lead, col(Lead.converted_to_client).is_(True), col(Lead.converted_date) >= since
            ),
        },
    }


def funnel(scope: Scope) -> List[Dict[str, Any]]:
    """Count and value per pipeline stage, in pipeline order"""
    rows = scope.session.exec(scope.apply(
        select(
            Lead.status,
            func.count(),
            func.coalesce(func.sum(Lead.estimated_value), 0),
            func.coalesce(func.sum(Lead.estimated_value * Lead.probability / 100.0), 0),
        ).group_by(Lead.status),
        Lead,
    )).all()
    by_stage = {LeadStatus(stage): (count, total, weighted) for stage, count, total, weighted in rows}

    stages = []
    for stage in PIPELINE_ORDER:
        count, total, weighted = by_stage.get(stage, (0, 0, 0))
        stages.append({
            "stage": stage.value,
            "count": count,
            "total_value": float(total or 0),
            "weighted_value": round(float(weighted or 0), 2),
        })
    return stages


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0


def performance(scope: Scope, months: int = 6) -> Dict[str, Any]:
    """Monthly, per-user and per-source results over the last N months.

    A lead counts as won when its status is closed_won.
    """
    start = _months_ago(datetime.utcnow(), months)
    leads = scope.session.exec(scope.apply(
        select(Lead).where(col(Lead.created_at) >= start), Lead
    )).all()

    monthly = defaultdict(lambda: {"leads_created": 0, "leads_won": 0, "revenue": 0.0})
    per_user = defaultdict(lambda: {"leads_assigned": 0, "leads_won": 0, "revenue": 0.0})
    per_source = defaultdict(lambda: {"count": 0, "won": 0, "revenue": 0.0})

    for lead in leads:
        won = lead.status == LeadStatus.CLOSED_WON
        value = float(lead.estimated_value or 0) if won else 0.0

        month = monthly[(lead.created_at.year, lead.created_at.month)]
        month["leads_created"] += 1
        month["leads_won"] += int(won)
        month["revenue"] += value

        source = per_source[lead.source.value]
        source["count"] += 1
        source["won"] += int(won)
        source["revenue"] += value

        if lead.assigned_to:
            user = per_user[lead.assigned_to]
            user["leads_assigned"] += 1
            user["leads_won"] += int(won)
            user["revenue"] += value

    users = {}
    if per_user:
        users = {
            u.id: u for u in scope.session.exec(select(User).where(col(User.id).in_(list(per_user)))).all()
        }

    return {
        "months": months,
        "monthly": [
            {"year": year, "month": month, **data}
            for (year, month), data in sorted(monthly.items())
        ],
        "users": sorted(
            (
                {
                    "user_id": str(user_id),
                    "name": users[user_id].full_name if user_id in users else None,
                    "email": users[user_id].email if user_id in users else None,
                    **data,
                    "conversion_rate": _rate(data["leads_won"], data["leads_assigned"]),
                }
                for user_id, data in per_user.items()
            ),
            key=lambda row: row["revenue"],
            reverse=True,
        ),
        "sources": sorted(
            (
                {"source": source, **data, "conversion_rate": _rate(data["won"], data["count"])}
                for source, data in per_source.items()
            ),
            key=lambda row: row["revenue"],
            reverse=True,
        ),
    }


def upcoming_tasks(scope: Scope) -> Dict[str, Any]:
    """Follow-ups and scheduled activities due within a week, plus overdue counts"""
    now = datetime.utcnow()
    horizon = now + TASK_WINDOW

    client_follow_ups = scope.session.exec(scope.apply(
        select(Client)
        .where(col(Client.next_follow_up) >= now, col(Client.next_follow_up) <= horizon)
        .order_by(col(Client.next_follow_up))
        .limit(20),
        Client,
    )).all()

    lead_follow_ups = scope.session.exec(scope.apply(
        select(Lead)
        .where(col(Lead.next_follow_up) >= now, col(Lead.next_follow_up) <= horizon)
        .order_by(col(Lead.next_follow_up))
        .limit(20),
        Lead,
    )).all()

    activities = scope.session.exec(scope.apply(
        select(LeadActivity, Lead)
        .join(Lead, Lead.id == LeadActivity.lead_id)
        .where(
            LeadActivity.status == ActivityStatus.SCHEDULED,
            col(LeadActivity.scheduled_date) >= now,
            col(LeadActivity.scheduled_date) <= horizon,
        )
        .order_by(col(LeadActivity.scheduled_date))
        .limit(20),
        Lead,
    )).all()

    overdue_activities = scope.session.exec(scope.apply(
        select(func.count())
        .select_from(LeadActivity)
        .join(Lead, Lead.id == LeadActivity.lead_id)
        .where(LeadActivity.status == ActivityStatus.SCHEDULED, col(LeadActivity.scheduled_date) < now),
        Lead,
    )).one()

    return {
        "client_follow_ups": [
            {
                "id": str(c.id),
                "name": c.full_name,
                "email": c.email,
                "next_follow_up": c.next_follow_up.isoformat(),
                "assigned_to": str(c.assigned_to) if c.assigned_to else None,
            }
            for c in client_follow_ups
        ],
        "lead_follow_ups": [
            {
                "id": str(lead.id),
                "name": lead.full_name,
                "email": lead.email,
                "next_follow_up": lead.next_follow_up.isoformat(),
                "assigned_to": str(lead.assigned_to) if lead.assigned_to else None,
            }
            for lead in lead_follow_ups
        ],
        "lead_activities": [
            {
                "id": activity.id,
                "lead_id": str(lead.id),
                "lead_name": lead.full_name,
                "type": activity.type.value,
                "subject": activity.subject,
                "scheduled_date": activity.scheduled_date.isoformat(),
            }
            for activity, lead in activities
        ],
        "overdue": {
            "clients": scope.count(Client, col(Client.next_follow_up) < now),
            "leads": scope.count(Lead, col(Lead.expected_close_date) < now, col(Lead.status).in_(OPEN_STATUSES)),
            "activities": overdue_activities,
        },
    }
