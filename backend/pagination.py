# pagination.py — Page/per_page query parameters and the paginated envelope
import math
from dataclasses import dataclass
from typing import Callable, Sequence

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

DEFAULT_PER_PAGE = 15
MAX_PER_PAGE = 100


@dataclass
class PageParams:
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def page_params(default_per_page: int = DEFAULT_PER_PAGE):
    """Dependency factory; ``per_page`` is clamped to MAX_PER_PAGE rather than rejected."""
    def _params(
        page: int = Query(default=1, ge=1),
        per_page: int = Query(default=default_per_page, ge=1),
    ) -> PageParams:
        return PageParams(page=page, per_page=min(per_page, MAX_PER_PAGE))
    return _params


async def paginate(
    db: AsyncSession,
    stmt: Select,
    params: PageParams,
    serialize: Callable,
    options: Sequence = (),
) -> dict:
    """Run ``stmt`` for one page and wrap the rows in the list envelope.

    Loader ``options`` are applied to the page query only, so the count
    query stays a plain subquery.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    page_stmt = stmt.options(*options).offset(params.offset).limit(params.per_page)
    rows = (await db.execute(page_stmt)).scalars().unique().all()

    return {
        "data": [serialize(r) for r in rows],
        "current_page": params.page,
        "per_page": params.per_page,
        "total": total,
        "last_page": max(1, math.ceil(total / params.per_page)),
    }
