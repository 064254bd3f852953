"""Page/limit pagination shared by list endpoints."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def page_info(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def offset_for(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit


async def count_rows(db: AsyncSession, query: Select[Any]) -> int:
    """Row count of an unordered, unpaginated select."""
    result = await db.execute(select(func.count()).select_from(query.order_by(None).subquery()))
    return int(result.scalar_one())
