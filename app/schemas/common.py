"""
Canonical response envelopes

Single entities are always wrapped as {"success": true, "data": ...} and
lists as {"success", "count", "total", "pagination", "data"}.
"""

from pydantic import AfterValidator, BaseModel
from datetime import datetime, timezone
from typing import Annotated, Generic, List, Optional, TypeVar

T = TypeVar("T")


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Columns hold naive UTC; aware input is shifted to UTC before the offset is dropped"""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(to_utc_naive)]


class PageLink(BaseModel):
    page: int
    limit: int


class Pagination(BaseModel):
    next: Optional[PageLink] = None
    prev: Optional[PageLink] = None


class DataResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: Optional[str] = None


class ListResponse(BaseModel, Generic[T]):
    success: bool = True
    count: int
    total: int
    pagination: Pagination
    data: List[T]


class MessageResponse(BaseModel):
    success: bool = True
    data: None = None
    message: str


def list_response(page, items: list) -> dict:
    """Envelope fields for a page of already-serialized items"""
    return {
        "success": True,
        "count": len(items),
        "total": page.total,
        "pagination": page.pagination,
        "data": items,
    }
