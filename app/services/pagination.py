"""
Page-based pagination for list endpoints
"""

from dataclasses import dataclass
from fastapi import Query
from sqlalchemy import func, or_
from sqlmodel import Session, col, select
from typing import Any, Dict, List, Optional

from app.core.config import get_settings

settings = get_settings()


@dataclass
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> PageParams:
    """Dependency reading page/limit query parameters"""
    return PageParams(page=page, limit=limit)


@dataclass
class Page:
    items: List[Any]
    total: int
    params: PageParams

    @property
    def pagination(self) -> Dict[str, Dict[str, int]]:
        links = {}
        if self.params.offset + self.params.limit < self.total:
            links["next"] = {"page": self.params.page + 1, "limit": self.params.limit}
        if self.params.page > 1:
            links["prev"] = {"page": self.params.page - 1, "limit": self.params.limit}
        return links


def paginate(session: Session, statement, params: PageParams, order_by) -> Page:
    """Count and slice a select statement"""
    total = session.exec(select(func.count()).select_from(statement.subquery())).one()
    items = session.exec(
        statement.order_by(order_by).offset(params.offset).limit(params.limit)
    ).all()
    return Page(items=list(items), total=total, params=params)


def search_clause(search: Optional[str], *columns):
    """Case-insensitive substring match over several columns"""
    if not search:
        return None
    pattern = f"%{search.strip()}%"
    return or_(*(col(column).ilike(pattern) for column in columns))
