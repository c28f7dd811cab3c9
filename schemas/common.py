from __future__ import annotations

from datetime import date
from typing import Generic, List, Optional, TypeVar

from fastapi import Query
from pydantic import BaseModel

from utils.pagination import PageParams

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    pages: int


class MessageOut(BaseModel):
    status: int = 200
    message: str


def page_params(
    page: Optional[int] = Query(default=None, ge=1),
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    search: Optional[str] = Query(default=None, max_length=120),
    date_from: Optional[date] = Query(default=None, alias="from"),
    date_to: Optional[date] = Query(default=None, alias="to"),
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortingMethod", pattern="^(asc|desc)$"),
) -> PageParams:
    return PageParams(
        page=page,
        limit=limit,
        search=search,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
    )
