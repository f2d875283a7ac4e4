"""Query helpers shared by list endpoints."""
from typing import Tuple, List, Any
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select


async def paginate(db: AsyncSession, query: Select, page: int, page_size: int) -> Tuple[List[Any], int]:
    """Return one page of ``query`` results and the total row count."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    return list(result.scalars().all()), total
