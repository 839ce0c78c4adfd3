"""
Pagination and sorting shared by every list endpoint.

Query convention: page (>=1, default 1), limit (>=1, default 10),
sortBy (default createdAt, camelCase or snake_case column name),
sortOrder (asc|desc, default desc).
"""

import re
from typing import List, Tuple
from fastapi import Query
from sqlalchemy.orm import Query as SAQuery
from config import settings
from utils.errors import BadRequestError

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


class PaginationParams:
    """FastAPI dependency carrying page/limit/sortBy/sortOrder"""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
        sort_by: str = Query("createdAt", alias="sortBy"),
        sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    ):
        self.page = page
        self.limit = limit
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def resolve_sort_column(model, sort_by: str):
    """Map an API sort field (createdAt / created_at) onto a model column"""
    name = _CAMEL_BOUNDARY.sub('_', sort_by).lower()
    if name not in model.__table__.columns:
        raise BadRequestError(f"Cannot sort by '{sort_by}'")
    return getattr(model, name)


def paginate(query: SAQuery, model, params: PaginationParams) -> Tuple[List, int]:
    """Apply sorting and paging to a query; returns (rows, total matching rows)"""
    column = resolve_sort_column(model, params.sort_by)
    # Primary key as tie-breaker so equal timestamps page deterministically
    pk = model.__table__.primary_key.columns.values()[0]
    pk_attr = getattr(model, pk.name)

    if params.sort_order == "asc":
        ordering = [column.asc(), pk_attr.asc()]
    else:
        ordering = [column.desc(), pk_attr.desc()]

    total = query.order_by(None).count()
    rows = query.order_by(*ordering).offset(params.offset).limit(params.limit).all()
    return rows, total
