from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.orm import Query


@dataclass
class PageParams:
    page: Optional[int] = None
    limit: Optional[int] = None
    search: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_by: Optional[str] = None
    sort_order: str = "desc"

    @property
    def paginated(self) -> bool:
        return self.page is not None and self.limit is not None


def day_bounds(date_from: Optional[date], date_to: Optional[date]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive calendar-day range as [start, end) UTC datetimes."""
    start = datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
    end = (
        datetime.combine(date_to, time.min, tzinfo=timezone.utc) + timedelta(days=1)
        if date_to
        else None
    )
    return start, end


def paginate(query: Query, params: PageParams) -> dict[str, Any]:
    """
    Run ``query`` and wrap the rows with paging metadata.

    Without page/limit every row is returned on a single page.
    """
    total = query.order_by(None).count()
    if not params.paginated:
        items = query.all()
        return {"items": items, "total": total, "page": 1, "limit": total, "pages": 1}

    page = max(params.page or 1, 1)
    limit = max(params.limit or 1, 1)
    items = query.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if total else 0
    return {"items": items, "total": total, "page": page, "limit": limit, "pages": pages}
